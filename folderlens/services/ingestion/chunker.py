"""Tiered text chunking with overlapping fixed windows.

Splits extracted document text into bounded fragments for embedding.  The
first tier that yields at least one fragment wins:

1. **Paragraph tier** -- split on runs of two or more newlines.
2. **Sentence tier** -- split on ``.``, ``!`` or ``?`` followed by
   whitespace.
3. **Fixed-size tier** -- slide the window straight over the raw text.

Within a tier, a fragment no longer than ``max_size`` is emitted whole;
a longer one is cut into windows of ``max_size`` characters advancing by
``max_size - overlap``, so a concept straddling a cut still appears
intact in one of the two neighbouring windows.  Every emitted chunk is
whitespace-trimmed and fragments shorter than ``min_length`` are dropped
as noise.  A fragment of exactly ``min_length`` characters is kept, so the
default threshold admits 20-character fragments that a strict
``len > 20`` rule would discard.
"""

from __future__ import annotations

import re

import structlog

from folderlens.models.documents import Chunk, ExtractedDocument

logger = structlog.get_logger(logger_name=__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\n+")
_SENTENCE_BREAK = re.compile(r"[.!?]+\s+")

DEFAULT_MAX_SIZE = 2000
DEFAULT_OVERLAP = 200
DEFAULT_MIN_LENGTH = 20


class TextChunker:
    """Splits text into bounded, overlapping chunks.

    Parameters
    ----------
    max_size:
        Maximum chunk length in characters (default 2000, about 500 tokens).
    overlap:
        Characters shared by consecutive windows of one long fragment
        (default 200).  Must satisfy ``0 <= overlap < max_size``.
    min_length:
        Trimmed fragments shorter than this are discarded (default 20).
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        min_length: int = DEFAULT_MIN_LENGTH,
    ) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if overlap < 0 or overlap >= max_size:
            raise ValueError(
                f"overlap must satisfy 0 <= overlap < max_size, got overlap={overlap}, "
                f"max_size={max_size}"
            )
        if min_length < 0:
            raise ValueError(f"min_length must be >= 0, got {min_length}")
        self._max_size = max_size
        self._overlap = overlap
        self._min_length = min_length

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def overlap(self) -> int:
        return self._overlap

    @property
    def min_length(self) -> int:
        return self._min_length

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        """Split *text* into ordered chunk strings.

        Returns an empty list for empty or whitespace-only input; callers
        treat that as "no text", not as a chunking failure.
        """
        if not text or not text.strip():
            return []

        tier = "paragraph"
        chunks = self._chunk_fragments(_PARAGRAPH_BREAK.split(text))
        if not chunks:
            tier = "sentence"
            chunks = self._chunk_fragments(_SENTENCE_BREAK.split(text))
        if not chunks:
            tier = "fixed"
            chunks = self._window(text)

        logger.debug(
            "chunking_complete",
            tier=tier,
            num_chunks=len(chunks),
            text_length=len(text),
        )
        return chunks

    def chunk_document(self, document: ExtractedDocument) -> list[Chunk]:
        """Split an extracted document into indexed :class:`Chunk` objects."""
        return [
            Chunk(source_file_id=document.source_file_id, index=index, text=text)
            for index, text in enumerate(self.chunk(document.text))
        ]

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def _chunk_fragments(self, fragments: list[str]) -> list[str]:
        """Emit every viable fragment whole, or windowed when too long."""
        chunks: list[str] = []
        for fragment in fragments:
            fragment = fragment.strip()
            if not fragment or len(fragment) < self._min_length:
                continue
            if len(fragment) <= self._max_size:
                chunks.append(fragment)
            else:
                chunks.extend(self._window(fragment))
        return chunks

    def _window(self, text: str) -> list[str]:
        """Slide a ``max_size`` window over *text* from offset 0."""
        step = self._max_size - self._overlap
        pieces: list[str] = []
        for start in range(0, len(text), step):
            piece = text[start:start + self._max_size].strip()
            if piece and len(piece) >= self._min_length:
                pieces.append(piece)
        return pieces
