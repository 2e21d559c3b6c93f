"""OCR.space cloud OCR client.

Sends the whole document in one multipart request and returns the text
of every parsed region. Handles both text and scanned PDFs.
"""

import httpx

from resume_text.errors import (
    OCRTimeoutError,
    ProcessingError,
    ServiceUnavailableError,
    SizeExceededError,
)
from resume_text.utils.config import CloudOCRConfig
from resume_text.utils.logger import get_logger

logger = get_logger(__name__)


class OCRSpaceClient:
    """Client for the OCR.space ``parse/image`` endpoint.

    Args:
        config: Cloud OCR configuration (key, URL, limits, timeout).
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        config: CloudOCRConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def extract_text(
        self,
        content: bytes,
        filename: str = "resume.pdf",
        media_type: str = "application/pdf",
    ) -> str:
        """Run cloud OCR on a document.

        Args:
            content: Raw document bytes.
            filename: File name sent with the upload.
            media_type: Content type sent with the upload.

        Returns:
            Trimmed text of all parsed regions joined by newlines.

        Raises:
            SizeExceededError: Document exceeds the byte ceiling. No
                request is made.
            ServiceUnavailableError: No API key, network failure, HTTP
                error status, or a body that is not JSON.
            OCRTimeoutError: The request did not finish in time.
            ProcessingError: The service reported a processing error or
                returned no text.
        """
        if len(content) > self.config.max_bytes:
            raise SizeExceededError(len(content), self.config.max_bytes)
        if not self.configured:
            raise ServiceUnavailableError("OCR_SPACE_API_KEY is not set")

        form = {
            "apikey": self.config.api_key,
            "language": self.config.language,
            "OCREngine": str(self.config.engine),
        }
        files = {"file": (filename, content, media_type)}

        logger.info("Sending %d bytes to cloud OCR", len(content))
        try:
            with httpx.Client(
                timeout=self.config.timeout_s, transport=self.transport
            ) as client:
                response = client.post(self.config.url, data=form, files=files)
        except httpx.TimeoutException as exc:
            raise OCRTimeoutError(
                f"Cloud OCR timed out after {self.config.timeout_s:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise ServiceUnavailableError(f"Cloud OCR request failed: {exc}") from exc

        if response.is_error:
            raise ServiceUnavailableError(f"OCR.space HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ServiceUnavailableError("OCR.space returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise ServiceUnavailableError("OCR.space returned an unexpected body")

        if payload.get("IsErroredOnProcessing"):
            raise ProcessingError(_error_message(payload.get("ErrorMessage")))

        text = "\n".join(
            region.get("ParsedText") or ""
            for region in payload.get("ParsedResults") or []
            if isinstance(region, dict)
        ).strip()
        if not text:
            raise ProcessingError("OCR returned empty text")

        logger.info("Cloud OCR returned %d characters", len(text))
        return text


def _error_message(message: object) -> str:
    if isinstance(message, list):
        return ", ".join(str(part) for part in message)
    return str(message) if message else "OCR processing error"
