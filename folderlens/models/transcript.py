"""Result model for a video transcription."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TranscriptResult(BaseModel):
    """Transcript of one video plus where it was stored, if uploaded."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    title: str = "Untitled Video"
    transcript: str = ""
    file_id: str | None = Field(
        default=None, description="File store id of the uploaded transcript, if any."
    )
    file_name: str | None = None
    view_link: str | None = None
