"""Plain-text extraction from raw file bytes, dispatched on declared MIME type.

Supported inputs:

- ``text/*`` (plain, markdown, CSV, TSV) and ``application/json`` -- decoded as UTF-8
- ``text/html`` -- BeautifulSoup text with scripts and styles removed
- ``application/pdf`` -- PyMuPDF page text
- DOCX -- python-docx paragraphs and table cells
- RTF -- striprtf
- Google Docs / Slides / Sheets -- already exported to text or CSV by the
  file store, so decoded as text

Structurally invalid bytes raise :class:`ExtractionError`.  A valid
document with nothing readable in it (e.g. a scanned PDF) returns ``""``.
The extractor never decides whether a file is skipped; the ingestion
pipeline does.
"""

from __future__ import annotations

import io

import fitz  # PyMuPDF
import structlog
from bs4 import BeautifulSoup
from docx import Document
from striprtf.striprtf import rtf_to_text

from folderlens.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MIME = "application/pdf"
HTML_MIMES = frozenset({"text/html", "application/xhtml+xml"})
RTF_MIMES = frozenset({"application/rtf", "text/rtf"})
TEXT_LIKE_MIMES = frozenset(
    {
        "application/json",
        "application/xml",
        "application/x-yaml",
        # Google-native files arrive exported as text/plain or text/csv.
        "application/vnd.google-apps.document",
        "application/vnd.google-apps.presentation",
        "application/vnd.google-apps.spreadsheet",
    }
)


class TextExtractor:
    """Converts raw bytes plus a declared content type into plain text."""

    def extract(self, data: bytes, content_type: str) -> str:
        """Return the plain text of *data*.

        Parameters
        ----------
        data:
            Raw file bytes.
        content_type:
            Declared MIME type; parameters such as ``; charset=`` are ignored.

        Returns
        -------
        str
            Extracted text, possibly empty.

        Raises
        ------
        ExtractionError
            If *data* cannot be decoded as the declared type, or the type
            is unsupported and the bytes are not UTF-8 text.
        """
        mime = (content_type or "text/plain").split(";", 1)[0].strip().lower()

        if mime == PDF_MIME:
            text = self._extract_pdf(data)
        elif mime == DOCX_MIME:
            text = self._extract_docx(data)
        elif mime in RTF_MIMES:
            text = rtf_to_text(self._decode(data, strict=False))
        elif mime in HTML_MIMES:
            text = self._extract_html(data)
        elif mime.startswith("text/") or mime in TEXT_LIKE_MIMES:
            text = self._decode(data, strict=False)
        else:
            text = self._decode_unknown(data, mime)

        text = text.replace("\r\n", "\n").replace("\r", "\n")
        logger.debug("text_extracted", content_type=mime, bytes=len(data), chars=len(text))
        return text

    # ------------------------------------------------------------------
    # Format handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:  # noqa: BLE001
            raise ExtractionError(message=f"Invalid PDF: {exc}", provider_name="pymupdf") from exc

        pages: list[str] = []
        try:
            for page in doc:
                page_text = page.get_text("text").strip()
                if page_text:
                    pages.append(page_text)
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", bytes=len(data))
        return "\n\n".join(pages)

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        try:
            document = Document(io.BytesIO(data))
        except Exception as exc:  # noqa: BLE001
            raise ExtractionError(
                message=f"Invalid DOCX document: {exc}", provider_name="python-docx"
            ) from exc

        blocks = [para.text for para in document.paragraphs if para.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" | ".join(cells))
        return "\n\n".join(blocks)

    def _extract_html(self, data: bytes) -> str:
        soup = BeautifulSoup(self._decode(data, strict=False), "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        lines = (line.strip() for line in soup.get_text("\n").splitlines())
        return "\n".join(line for line in lines if line)

    def _decode_unknown(self, data: bytes, mime: str) -> str:
        try:
            text = self._decode(data, strict=True)
        except UnicodeDecodeError as exc:
            raise ExtractionError(message=f"Unsupported content type: {mime}") from exc
        if "\x00" in text:
            raise ExtractionError(message=f"Unsupported content type: {mime}")
        logger.info("unknown_type_decoded_as_text", content_type=mime)
        return text

    @staticmethod
    def _decode(data: bytes, strict: bool) -> str:
        return data.decode("utf-8-sig", errors="strict" if strict else "replace")
