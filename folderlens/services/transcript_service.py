"""Video transcription into the source folder.

Downloads a video's audio track with ``yt-dlp`` (or ``youtube-dl`` when
yt-dlp is not installed), transcribes it, and optionally writes the
transcript back to the file store as a ``text/plain`` file so the next
sync indexes it like any other document.

The audio lives in a temporary directory that is removed whether or not
transcription succeeds.
"""

from __future__ import annotations

import asyncio
import contextlib
import re
import shutil
import tempfile
from pathlib import Path

import httpx
import structlog

from folderlens.interfaces.file_store_provider import IFileStoreProvider
from folderlens.interfaces.transcription_provider import ITranscriptionProvider
from folderlens.models.transcript import TranscriptResult
from folderlens.utils.errors import AcquisitionError, PipelineError

logger = structlog.get_logger(logger_name=__name__)

_VIDEO_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/watch\?.*v=([^&\n?#]+)"),
)
_OEMBED_URL = "https://www.youtube.com/oembed"
_DOWNLOADERS = ("yt-dlp", "youtube-dl")
_AUDIO_SUFFIXES = (".mp3", ".m4a", ".webm")
DEFAULT_TITLE = "Untitled Video"


def extract_video_id(url: str) -> str | None:
    """Return the video id from a watch, short or embed URL, else ``None``."""
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url or "")
        if match and match.group(1):
            return match.group(1)
    return None


def transcript_file_name(title: str, video_id: str) -> str:
    """Build ``<title with non-alphanumerics as _>_<video id>_transcript.txt``."""
    return f"{re.sub(r'[^a-z0-9]', '_', title, flags=re.IGNORECASE)}_{video_id}_transcript.txt"


class TranscriptService:
    """Turns a video URL into a transcript stored alongside the folder's documents.

    Parameters
    ----------
    transcriber:
        Audio transcription backend.
    file_store:
        Where transcripts are uploaded when ``auto_upload`` is set.
    http_client:
        Client for the oEmbed title lookup.  One is created per call if
        omitted.
    download_timeout:
        Seconds allowed for one audio download.
    """

    def __init__(
        self,
        transcriber: ITranscriptionProvider,
        file_store: IFileStoreProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        download_timeout: float = 600.0,
    ) -> None:
        self._transcriber = transcriber
        self._file_store = file_store
        self._http_client = http_client
        self._download_timeout = download_timeout

    async def transcribe_video(self, url: str, auto_upload: bool = True) -> TranscriptResult:
        """Download, transcribe and (optionally) upload one video's transcript.

        Raises
        ------
        PipelineError
            If *url* is not a recognisable video URL, or an upload is
            requested without a file store.
        AcquisitionError
            If no downloader is installed, the download fails, or
            transcription fails.
        """
        if not url:
            raise PipelineError(message="YouTube URL is required")
        video_id = extract_video_id(url)
        if video_id is None:
            raise PipelineError(message="Invalid YouTube URL")
        if auto_upload and self._file_store is None:
            raise PipelineError(message="Transcript upload requested but no file store is configured")

        title = await self._fetch_title(video_id)

        with tempfile.TemporaryDirectory(prefix="folderlens_audio_") as tmpdir:
            audio_path = await self._download_audio(url, Path(tmpdir), video_id)
            logger.info("audio_downloaded", video_id=video_id, path=str(audio_path))
            result = await self._transcriber.transcribe(str(audio_path), language="en")

        transcript = result.text
        logger.info("video_transcribed", video_id=video_id, chars=len(transcript))

        file_id: str | None = None
        file_name: str | None = None
        view_link: str | None = None
        if auto_upload and transcript:
            file_name = transcript_file_name(title, video_id)
            stored = await self._file_store.store_bytes(
                file_name, transcript.encode("utf-8"), content_type="text/plain"
            )
            file_id = stored.id
            view_link = stored.view_link
            logger.info("transcript_uploaded", video_id=video_id, file_id=file_id)

        return TranscriptResult(
            video_id=video_id,
            title=title,
            transcript=transcript,
            file_id=file_id,
            file_name=file_name,
            view_link=view_link,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch_title(self, video_id: str) -> str:
        params = {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"}
        try:
            if self._http_client is not None:
                response = await self._http_client.get(_OEMBED_URL, params=params, timeout=10.0)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.get(_OEMBED_URL, params=params)
            response.raise_for_status()
            return response.json().get("title") or DEFAULT_TITLE
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("video_title_unavailable", video_id=video_id, error=str(exc))
            return DEFAULT_TITLE

    async def _download_audio(self, url: str, out_dir: Path, video_id: str) -> Path:
        """Extract the audio track to ``out_dir`` with the first available downloader."""
        template = str(out_dir / f"{video_id}.%(ext)s")
        errors: list[str] = []

        for tool in _DOWNLOADERS:
            if not shutil.which(tool):
                errors.append(f"{tool} not installed")
                continue

            proc = await asyncio.create_subprocess_exec(
                tool, "-x", "--audio-format", "mp3", "--no-playlist", "-o", template, url,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            timed_out = False
            try:
                _, stderr = await asyncio.wait_for(
                    proc.communicate(), timeout=self._download_timeout
                )
            except asyncio.TimeoutError:
                timed_out = True
            finally:
                # Also reached on cancellation; never leave the downloader running.
                if proc.returncode is None:
                    with contextlib.suppress(ProcessLookupError):
                        proc.kill()
                    await proc.wait()
            if timed_out:
                errors.append(f"{tool} timed out")
                continue

            if proc.returncode != 0:
                errors.append(f"{tool} failed: {stderr.decode(errors='replace')[:200]}")
                continue

            for candidate in sorted(out_dir.glob(f"{video_id}.*")):
                if candidate.suffix in _AUDIO_SUFFIXES:
                    return candidate
            errors.append(f"{tool} produced no audio file")

        if all(e.endswith("not installed") for e in errors):
            raise AcquisitionError(
                message="Neither yt-dlp nor youtube-dl is installed. Install yt-dlp "
                "(e.g. `pip install yt-dlp` or `apt-get install yt-dlp`).",
                provider_name="audio_download",
            )
        raise AcquisitionError(
            message=f"Failed to download audio: {'; '.join(errors)}",
            provider_name="audio_download",
        )
