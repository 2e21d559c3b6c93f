"""Tesseract OCR worker with a hard per-page timeout.

One worker serves one document-level OCR pass: it is started once,
recognizes page bitmaps one at a time, and is terminated when the pass
ends, whatever the outcome.
"""

import io
import subprocess
from concurrent.futures import Future, ThreadPoolExecutor

import pytesseract
from PIL import Image

from resume_text.errors import LocalOCRUnavailableError, OCRTimeoutError, ProcessingError
from resume_text.utils.logger import get_logger

logger = get_logger(__name__)


class TesseractWorker:
    """Wrapper around Tesseract for bitmap-to-text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: OCR language code.
        psm: Tesseract page segmentation mode.
        timeout: Seconds to wait for one page before giving up on it.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "eng",
        psm: int = 3,
        timeout: float = 20.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.psm = psm
        self.timeout = timeout
        self._executor: ThreadPoolExecutor | None = None

    @property
    def running(self) -> bool:
        return self._executor is not None

    def start(self) -> None:
        """Check that Tesseract is usable and start the worker thread.

        Raises:
            LocalOCRUnavailableError: If the engine cannot be started.
        """
        try:
            version = pytesseract.get_tesseract_version()
        except (
            pytesseract.TesseractNotFoundError,
            OSError,
            subprocess.CalledProcessError,
            SystemExit,
        ) as exc:
            # pytesseract exits the process on an unparseable or too-old version.
            raise LocalOCRUnavailableError(f"Tesseract is not available: {exc}") from exc
        self._executor = self._new_executor()
        logger.info("Started Tesseract %s worker (lang=%s)", version, self.lang)

    def recognize(self, bitmap: bytes) -> str:
        """Recognize the text in one encoded page bitmap.

        Recognition races a timer; if the timer wins, the in-flight call
        is abandoned and the worker is replaced for the next page.

        Args:
            bitmap: Encoded image file (BMP) of the page.

        Returns:
            Trimmed recognized text.

        Raises:
            LocalOCRUnavailableError: If the worker was not started.
            OCRTimeoutError: If recognition exceeds the timeout.
            ProcessingError: If Tesseract fails on the image.
        """
        if self._executor is None:
            raise LocalOCRUnavailableError("Tesseract worker is not running")

        future: Future[str] = self._executor.submit(self._recognize, bitmap)
        try:
            return future.result(timeout=self.timeout)
        except TimeoutError as exc:
            self._abandon(future)
            raise OCRTimeoutError(
                f"Tesseract timed out after {self.timeout:g}s"
            ) from exc
        except pytesseract.TesseractError as exc:
            raise ProcessingError(f"Tesseract failed: {exc.message}") from exc
        except RuntimeError as exc:
            # pytesseract's own subprocess timeout
            raise OCRTimeoutError(str(exc)) from exc
        except OSError as exc:
            raise ProcessingError(f"Unreadable page bitmap: {exc}") from exc

    def terminate(self) -> None:
        """Stop the worker without waiting for abandoned work."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            logger.debug("Tesseract worker terminated")

    def _recognize(self, bitmap: bytes) -> str:
        with Image.open(io.BytesIO(bitmap)) as image:
            text = pytesseract.image_to_string(
                image,
                lang=self.lang,
                config=f"--psm {self.psm}",
                timeout=self.timeout,
            )
        return text.strip()

    def _abandon(self, future: Future) -> None:
        future.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self._executor = self._new_executor()

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="tesseract")
