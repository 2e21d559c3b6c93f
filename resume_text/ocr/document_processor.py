"""Tiered PDF text extraction.

Runs the extraction tiers in cost order (cloud OCR, embedded text layer,
local OCR of rendered pages), stops at the first tier whose output is
good enough, merges per-page results, and returns the longest result.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from pdfminer.pdfpage import PDFPage

from resume_text.errors import EmptyResultError, ExtractionError, LocalOCRUnavailableError
from resume_text.utils.config import AppConfig
from resume_text.utils.logger import get_logger

from .bitmap import encode_bmp
from .cloud_ocr import OCRSpaceClient
from .pdf_handler import PDFHandler
from .renderer import PageRenderer, largest_capture
from .tesseract_engine import TesseractWorker
from .text_layer import TextLayerExtractor, join_pages, open_pdf_pages

logger = get_logger(__name__)

SCANNED_PDF_MESSAGE = (
    "Could not extract text from this PDF. It may be image-based or scanned. "
    "Please try converting it to a text-based PDF or DOCX for best results."
)


@dataclass(frozen=True)
class Document:
    """An uploaded document, held in memory for one request."""

    content: bytes
    media_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class PageText:
    """Best text seen so far for one page."""

    number: int
    text: str = ""
    source: str | None = None

    def offer(self, text: str, source: str) -> bool:
        """Keep ``text`` if it is strictly longer than the current text."""
        text = text.strip()
        if text and len(text) > len(self.text):
            self.text = text
            self.source = source
            return True
        return False


@dataclass
class TierOutcome:
    """Output of one extraction tier.

    ``ok`` means the output is good enough to stop the tier chain.
    """

    tier: str
    text: str = ""
    ok: bool = False


@dataclass
class PipelineState:
    """Per-document state shared between tiers."""

    pages: list[PageText] | None = None
    needs_ocr: list[int] = field(default_factory=list)


@dataclass
class DocumentResult:
    """Complete extraction result for a PDF."""

    source_file: str
    text: str
    method: str
    outcomes: list[TierOutcome]


Tier = Callable[[Document, PipelineState], TierOutcome]


class DocumentProcessor:
    """Tier coordinator for PDF documents.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.cloud_client = OCRSpaceClient(config.cloud_ocr)
        self.text_layer = TextLayerExtractor(
            max_pages=config.pipeline.max_pages,
            min_chars_per_page=config.pipeline.min_chars_per_page,
        )
        self.renderer = PageRenderer()
        self.pdf_handler = PDFHandler(dpi=config.ocr.pdf_dpi)

    def tiers(self) -> list[tuple[str, Tier]]:
        """Return the extraction tiers in the order they are tried."""
        return [
            ("cloud_ocr", self._cloud_ocr_tier),
            ("text_layer", self._text_layer_tier),
            ("local_ocr", self._local_ocr_tier),
        ]

    def process(self, document: Document) -> DocumentResult:
        """Extract the text of a PDF document.

        Args:
            document: The uploaded PDF.

        Returns:
            The longest text produced by any completed tier. Ties go to
            the earlier tier.

        Raises:
            EmptyResultError: If no tier produced any text.
        """
        logger.info("Processing PDF: %s (%d bytes)", document.filename, document.size)
        state = PipelineState()
        outcomes: list[TierOutcome] = []

        for name, tier in self.tiers():
            outcome = self._run_tier(name, tier, document, state)
            outcomes.append(outcome)
            if outcome.ok:
                logger.info("Tier %s is sufficient, skipping remaining tiers", name)
                break

        candidates = [o for o in outcomes if o.text]
        if not candidates:
            logger.warning("No tier extracted text from %s", document.filename)
            raise EmptyResultError(SCANNED_PDF_MESSAGE, likely_scanned=True)

        best = max(candidates, key=lambda o: len(o.text))
        logger.info(
            "Selected %s result for %s (%d characters)",
            best.tier,
            document.filename,
            len(best.text),
        )
        return DocumentResult(
            source_file=document.filename,
            text=best.text,
            method=best.tier,
            outcomes=outcomes,
        )

    def _run_tier(
        self, name: str, tier: Tier, document: Document, state: PipelineState
    ) -> TierOutcome:
        logger.info("Running tier %s", name)
        try:
            outcome = tier(document, state)
        except ExtractionError as exc:
            logger.warning("Tier %s failed: %s", name, exc)
            return TierOutcome(name)
        except Exception:
            logger.exception("Tier %s crashed", name)
            return TierOutcome(name)
        logger.info(
            "Tier %s produced %d characters (sufficient=%s)",
            name,
            len(outcome.text),
            outcome.ok,
        )
        return outcome

    def _cloud_ocr_tier(self, document: Document, state: PipelineState) -> TierOutcome:
        if not self.cloud_client.configured:
            logger.info("Cloud OCR is not configured, skipping")
            return TierOutcome("cloud_ocr")
        text = self.cloud_client.extract_text(
            document.content, document.filename, document.media_type
        )
        return TierOutcome(
            "cloud_ocr",
            text,
            ok=len(text) >= self.config.pipeline.min_chars_per_page,
        )

    def _text_layer_tier(self, document: Document, state: PipelineState) -> TierOutcome:
        result = self.text_layer.extract(document.content)
        state.pages = [
            PageText(number, text, "text_layer" if text else None)
            for number, text in enumerate(result.pages, 1)
        ]
        state.needs_ocr = list(result.needs_ocr)
        return TierOutcome("text_layer", result.text, ok=not result.needs_ocr)

    def _local_ocr_tier(self, document: Document, state: PipelineState) -> TierOutcome:
        if state.pages is None or not state.needs_ocr:
            return TierOutcome("local_ocr")

        worker = TesseractWorker(
            tesseract_cmd=self.config.ocr.tesseract_cmd,
            lang=self.config.ocr.default_lang,
            psm=self.config.ocr.psm,
            timeout=self.config.ocr.timeout_s,
        )
        try:
            worker.start()
        except LocalOCRUnavailableError as exc:
            logger.warning("Skipping local OCR: %s", exc)
            return TierOutcome("local_ocr")

        pages = [PageText(p.number, p.text, p.source) for p in state.pages]
        try:
            pdf_pages = open_pdf_pages(document.content, self.config.pipeline.max_pages)
            for number in state.needs_ocr:
                try:
                    text = self._ocr_page(worker, document, pdf_pages[number - 1], number)
                except Exception as exc:
                    logger.warning("Local OCR failed on page %d: %s", number, exc)
                    continue
                if pages[number - 1].offer(text, "local_ocr"):
                    logger.info("Page %d: OCR text replaces text layer", number)
        finally:
            worker.terminate()

        return TierOutcome("local_ocr", join_pages([p.text for p in pages]), ok=True)

    def _ocr_page(
        self, worker: TesseractWorker, document: Document, page: PDFPage, number: int
    ) -> str:
        raster = largest_capture(self.renderer.render(page))
        if raster is None and self.config.ocr.raster_fallback:
            logger.info("Page %d has no embedded image, rasterizing", number)
            raster = self.pdf_handler.render_page(document.content, number)
        if raster is None:
            logger.info("Page %d has nothing to OCR", number)
            return ""
        bitmap = encode_bmp(raster.data, raster.width, raster.height)
        return worker.recognize(bitmap)
