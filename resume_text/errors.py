"""Typed failures raised by the text-extraction pipeline.

Tier-level errors are caught at the tier boundary and turned into a
fallback to the next tier. Only ``UnsupportedFormatError`` and
``EmptyResultError`` ever reach the caller of ``extract_text``.
"""


class ExtractionError(Exception):
    """Base class for all extraction pipeline errors."""


class SizeExceededError(ExtractionError):
    """Document is larger than the cloud OCR byte ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Document is {size} bytes, cloud OCR limit is {limit}")
        self.size = size
        self.limit = limit


class ServiceUnavailableError(ExtractionError):
    """OCR service could not be reached or answered with garbage."""


class LocalOCRUnavailableError(ServiceUnavailableError):
    """The local OCR engine could not be started."""


class ProcessingError(ExtractionError):
    """OCR service or engine reported that it could not process the content."""


class OCRTimeoutError(ExtractionError):
    """A tier exceeded its time budget."""


class UnsupportedFormatError(ExtractionError):
    """Uploaded file is not a PDF, DOCX, TXT, or RTF document."""

    def __init__(self, media_type: str, filename: str) -> None:
        super().__init__(
            "Unsupported file type. Please upload a PDF, DOCX, TXT, or RTF file."
        )
        self.media_type = media_type
        self.filename = filename


class EmptyResultError(ExtractionError):
    """No tier produced any usable text.

    Args:
        message: User-facing explanation.
        likely_scanned: Whether the document looks like an image-only scan.
    """

    def __init__(self, message: str, likely_scanned: bool = False) -> None:
        super().__init__(message)
        self.likely_scanned = likely_scanned
