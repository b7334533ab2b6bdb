"""Unit tests for video id parsing and the transcript workflow."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from folderlens.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from folderlens.services.transcript_service import (
    DEFAULT_TITLE,
    TranscriptService,
    extract_video_id,
    transcript_file_name,
)
from folderlens.utils.errors import AcquisitionError, PipelineError
from tests.conftest import MockFileStore

_URL = "https://www.youtube.com/watch?v=abc123XYZ"


class _FakeTranscriber(ITranscriptionProvider):
    def __init__(self, text: str = "Welcome to the course.") -> None:
        self.text = text
        self.paths: list[str] = []

    async def transcribe(self, audio_path: str, language: str | None = "en") -> TranscriptionResult:
        self.paths.append(audio_path)
        assert Path(audio_path).exists()
        return TranscriptionResult(text=self.text, language=language or "en")

    def get_provider_name(self) -> str:
        return "fake-transcriber"

    def is_available(self) -> bool:
        return True


class _LocalAudioService(TranscriptService):
    """Writes a placeholder audio file instead of running a downloader."""

    async def _download_audio(self, url: str, out_dir: Path, video_id: str) -> Path:
        path = out_dir / f"{video_id}.mp3"
        path.write_bytes(b"ID3")
        return path


def _oembed_client(title: str | None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if title is None:
            return httpx.Response(404)
        return httpx.Response(200, json={"title": title})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestVideoIds:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://www.youtube.com/watch?v=abc123XYZ", "abc123XYZ"),
            ("https://youtu.be/abc123XYZ?t=42", "abc123XYZ"),
            ("https://www.youtube.com/embed/abc123XYZ", "abc123XYZ"),
            ("https://www.youtube.com/watch?feature=share&v=abc123XYZ", "abc123XYZ"),
            ("https://example.com/video.mp4", None),
            ("", None),
        ],
    )
    def test_extract(self, url: str, expected: str | None) -> None:
        assert extract_video_id(url) == expected

    def test_file_name(self) -> None:
        assert transcript_file_name("My Video: Part 1", "abc") == "My_Video__Part_1_abc_transcript.txt"


class TestTranscribeVideo:
    @pytest.mark.asyncio
    async def test_transcript_uploaded(self) -> None:
        store = MockFileStore()
        transcriber = _FakeTranscriber()
        service = _LocalAudioService(
            transcriber=transcriber, file_store=store, http_client=_oembed_client("Intro Lecture")
        )

        result = await service.transcribe_video(_URL)

        assert result.video_id == "abc123XYZ"
        assert result.title == "Intro Lecture"
        assert result.transcript == "Welcome to the course."
        assert result.file_id == "stored-1"
        assert result.file_name == "Intro_Lecture_abc123XYZ_transcript.txt"
        assert result.view_link == "https://drive.example/stored-1"
        name, data, content_type, _ = store.stored[0]
        assert name == result.file_name
        assert data == b"Welcome to the course."
        assert content_type == "text/plain"
        assert not Path(transcriber.paths[0]).exists()

    @pytest.mark.asyncio
    async def test_no_upload(self) -> None:
        store = MockFileStore()
        service = _LocalAudioService(
            transcriber=_FakeTranscriber(), file_store=store, http_client=_oembed_client("T")
        )

        result = await service.transcribe_video(_URL, auto_upload=False)

        assert result.file_id is None
        assert store.stored == []

    @pytest.mark.asyncio
    async def test_title_lookup_failure_uses_default(self) -> None:
        service = _LocalAudioService(
            transcriber=_FakeTranscriber(), file_store=MockFileStore(), http_client=_oembed_client(None)
        )

        result = await service.transcribe_video(_URL)

        assert result.title == DEFAULT_TITLE

    @pytest.mark.asyncio
    async def test_empty_transcript_not_uploaded(self) -> None:
        store = MockFileStore()
        service = _LocalAudioService(
            transcriber=_FakeTranscriber(text=""), file_store=store, http_client=_oembed_client("T")
        )

        result = await service.transcribe_video(_URL)

        assert result.file_id is None
        assert store.stored == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("url", "message"),
        [("", "YouTube URL is required"), ("https://example.com/clip", "Invalid YouTube URL")],
    )
    async def test_bad_url(self, url: str, message: str) -> None:
        service = _LocalAudioService(transcriber=_FakeTranscriber(), file_store=MockFileStore())

        with pytest.raises(PipelineError, match=message):
            await service.transcribe_video(url)

    @pytest.mark.asyncio
    async def test_upload_without_store(self) -> None:
        service = _LocalAudioService(transcriber=_FakeTranscriber())

        with pytest.raises(PipelineError, match="no file store"):
            await service.transcribe_video(_URL)

    @pytest.mark.asyncio
    async def test_no_downloader_installed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            "folderlens.services.transcript_service.shutil.which", lambda tool: None
        )
        service = TranscriptService(
            transcriber=_FakeTranscriber(), file_store=MockFileStore(), http_client=_oembed_client("T")
        )

        with pytest.raises(AcquisitionError, match="Neither yt-dlp nor youtube-dl"):
            await service.transcribe_video(_URL)


class _HangingProcess:
    """Stands in for a downloader subprocess that never finishes on its own."""

    def __init__(self) -> None:
        self.returncode: int | None = None
        self.killed = False
        self.started = asyncio.Event()

    async def communicate(self) -> tuple[bytes, bytes]:
        self.started.set()
        await asyncio.Event().wait()
        return b"", b""

    def kill(self) -> None:
        self.killed = True

    async def wait(self) -> int:
        if self.killed:
            self.returncode = -9
        return self.returncode


class TestDownloaderProcess:
    @pytest.fixture
    def process(self, monkeypatch: pytest.MonkeyPatch) -> _HangingProcess:
        proc = _HangingProcess()

        async def spawn(*args, **kwargs) -> _HangingProcess:  # noqa: ANN002, ANN003
            return proc

        monkeypatch.setattr(
            "folderlens.services.transcript_service.shutil.which", lambda tool: f"/usr/bin/{tool}"
        )
        monkeypatch.setattr(
            "folderlens.services.transcript_service.asyncio.create_subprocess_exec", spawn
        )
        return proc

    @pytest.mark.asyncio
    async def test_cancelled_download_kills_process(
        self, process: _HangingProcess, tmp_path: Path
    ) -> None:
        service = TranscriptService(transcriber=_FakeTranscriber())
        task = asyncio.create_task(service._download_audio(_URL, tmp_path, "abc123XYZ"))
        await process.started.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert process.killed
        assert process.returncode == -9

    @pytest.mark.asyncio
    async def test_timed_out_download_kills_process(
        self, process: _HangingProcess, tmp_path: Path
    ) -> None:
        service = TranscriptService(transcriber=_FakeTranscriber(), download_timeout=0.01)

        with pytest.raises(AcquisitionError, match="yt-dlp timed out; youtube-dl timed out"):
            await service._download_audio(_URL, tmp_path, "abc123XYZ")

        assert process.killed
