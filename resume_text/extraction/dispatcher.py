"""Format dispatch for uploaded resumes.

Routes PDFs into the tiered OCR pipeline and every other supported
format to direct extraction, then applies the length check used to ask
the user about condensing long resumes.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from resume_text.errors import EmptyResultError, UnsupportedFormatError
from resume_text.ocr.document_processor import Document, DocumentProcessor
from resume_text.utils.config import AppConfig, load_config
from resume_text.utils.logger import get_logger

from .formats import extract_docx, extract_rtf, extract_txt

logger = get_logger(__name__)

GENERIC_EMPTY_MESSAGE = (
    "Could not extract text from this file. Please try a different file."
)


class DocumentFormat(StrEnum):
    """Supported upload formats."""

    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    RTF = "rtf"


# Checked in this order; the first media type or extension match wins.
_FORMAT_SIGNATURES: list[tuple[DocumentFormat, frozenset[str], str]] = [
    (DocumentFormat.PDF, frozenset({"application/pdf"}), ".pdf"),
    (
        DocumentFormat.DOCX,
        frozenset(
            {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}
        ),
        ".docx",
    ),
    (DocumentFormat.TXT, frozenset({"text/plain"}), ".txt"),
    (DocumentFormat.RTF, frozenset({"application/rtf", "text/rtf"}), ".rtf"),
]

_DIRECT_EXTRACTORS: dict[DocumentFormat, Callable[[bytes], str]] = {
    DocumentFormat.DOCX: extract_docx,
    DocumentFormat.TXT: extract_txt,
    DocumentFormat.RTF: extract_rtf,
}


@dataclass
class ExtractionResult:
    """Text extracted from an upload."""

    text: str
    too_long: bool
    method: str


def detect_format(media_type: str | None, filename: str | None) -> DocumentFormat:
    """Determine the upload format from its media type or file name.

    Args:
        media_type: Declared content type, possibly empty.
        filename: Uploaded file name, possibly empty.

    Returns:
        The detected format.

    Raises:
        UnsupportedFormatError: If neither matches a supported format.
    """
    mime = (media_type or "").split(";")[0].strip().lower()
    name = (filename or "").lower()
    for fmt, media_types, extension in _FORMAT_SIGNATURES:
        if mime in media_types or name.endswith(extension):
            return fmt
    raise UnsupportedFormatError(media_type or "", filename or "")


class TextExtractor:
    """Entry point for turning an uploaded document into plain text.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.processor = DocumentProcessor(config)

    def extract(
        self, content: bytes, media_type: str | None, filename: str | None
    ) -> ExtractionResult:
        """Extract the text of one uploaded document.

        Args:
            content: Raw file bytes.
            media_type: Declared content type.
            filename: Uploaded file name.

        Returns:
            Trimmed text, the too-long flag, and the extraction method.

        Raises:
            UnsupportedFormatError: If the format is not supported.
            EmptyResultError: If no text could be extracted.
        """
        fmt = detect_format(media_type, filename)
        name = filename or "document"
        logger.info("Extracting %s as %s", name, fmt.value)

        if fmt is DocumentFormat.PDF:
            document = Document(content, media_type or "application/pdf", name)
            result = self.processor.process(document)
            text, method = result.text.strip(), result.method
        else:
            text, method = self._extract_direct(fmt, content, name), fmt.value

        if not text:
            raise EmptyResultError(GENERIC_EMPTY_MESSAGE)

        too_long = len(text) > self.config.pipeline.too_long_chars
        logger.info(
            "Extracted %d characters from %s via %s (too_long=%s)",
            len(text),
            name,
            method,
            too_long,
        )
        return ExtractionResult(text=text, too_long=too_long, method=method)

    def _extract_direct(self, fmt: DocumentFormat, content: bytes, name: str) -> str:
        try:
            return _DIRECT_EXTRACTORS[fmt](content).strip()
        except Exception as exc:
            logger.warning("Failed to read %s as %s: %s", name, fmt.value, exc)
            return ""


def extract_text(
    content: bytes,
    media_type: str | None,
    filename: str | None,
    config: AppConfig | None = None,
) -> ExtractionResult:
    """Extract plain text from an uploaded PDF, DOCX, TXT, or RTF file.

    Args:
        content: Raw file bytes.
        media_type: Declared content type.
        filename: Uploaded file name.
        config: Configuration. Loaded from disk and environment if omitted.

    Returns:
        The extraction result.
    """
    return TextExtractor(config or load_config()).extract(content, media_type, filename)
