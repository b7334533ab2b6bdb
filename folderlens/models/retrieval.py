"""Query-time models: index matches, assembled context, Q&A and previews."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from folderlens.models.documents import ChunkMetadata


class RetrievalMatch(BaseModel):
    """One ranked hit returned by the vector index."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Vector id.")
    score: float = Field(ge=0.0, le=1.0, description="Similarity, higher is more relevant.")
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)


class SourceReference(BaseModel):
    """A citation shown to the user, derived from a RetrievalMatch."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Untitled Document"
    text: str = ""
    score: float = 0.0
    source_file_id: str = ""
    chunk_index: int = 0


class RetrievalResult(BaseModel):
    """Everything the generation step needs from one retrieval."""

    model_config = ConfigDict(frozen=True)

    matches: list[RetrievalMatch] = Field(default_factory=list)
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Score of the top match, 0 without matches."
    )
    context_text: str = Field(default="", description="Rendered context, most relevant first.")
    sources: list[SourceReference] = Field(
        default_factory=list, description="Citations in rank order."
    )

    @property
    def context_used(self) -> bool:
        return bool(self.matches)


class ChatMessage(BaseModel):
    """One turn of conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class AskResult(BaseModel):
    """Answer to a user question, with the evidence it was built on."""

    model_config = ConfigDict(frozen=True)

    answer: str
    context_used: bool
    sources: list[SourceReference] = Field(default_factory=list)
    confidence: float = 0.0


class PreviewChunk(BaseModel):
    """One stored chunk of a document, as shown in the document preview."""

    model_config = ConfigDict(frozen=True)

    id: str
    chunk_index: int
    text: str
    title: str = "Untitled"
    score: float = 0.0


class DocumentPreview(BaseModel):
    """All indexed chunks of one source file in sequence order."""

    model_config = ConfigDict(frozen=True)

    source_file_id: str
    chunks: list[PreviewChunk] = Field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)
