"""Embedded text-layer extraction with per-page OCR classification.

Pulls the machine-readable text out of each PDF page with pdfminer and
marks pages whose text is too short to be real content as needing OCR.
"""

import io
from collections.abc import Iterator
from dataclasses import dataclass, field
from itertools import islice

from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LAParams, LTContainer, LTItem, LTTextLine
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdfparser import PDFParser

from resume_text.utils.logger import get_logger

logger = get_logger(__name__)


def open_pdf_pages(data: bytes, max_pages: int) -> list[PDFPage]:
    """Parse a PDF and return at most ``max_pages`` of its pages.

    Args:
        data: Raw PDF bytes.
        max_pages: Page cap. Later pages are ignored.

    Returns:
        pdfminer pages in document order.
    """
    parser = PDFParser(io.BytesIO(data))
    document = PDFDocument(parser)
    return list(islice(PDFPage.create_pages(document), max_pages))


def join_pages(pages: list[str]) -> str:
    """Join per-page texts into document text, skipping empty pages."""
    return "\n".join(text for text in pages if text).strip()


@dataclass
class TextLayerResult:
    """Text-layer content of each page and the pages that need OCR.

    ``pages[i]`` holds the text of page ``i + 1``; ``needs_ocr`` lists
    1-based page numbers.
    """

    pages: list[str] = field(default_factory=list)
    needs_ocr: list[int] = field(default_factory=list)

    @property
    def text(self) -> str:
        return join_pages(self.pages)


class TextLayerExtractor:
    """Extracts per-page text layers and classifies pages.

    Args:
        max_pages: Maximum number of pages to read.
        min_chars_per_page: Pages with fewer characters need OCR.
        laparams: pdfminer layout parameters.
    """

    def __init__(
        self,
        max_pages: int = 10,
        min_chars_per_page: int = 10,
        laparams: LAParams | None = None,
    ) -> None:
        self.max_pages = max_pages
        self.min_chars_per_page = min_chars_per_page
        self.laparams = laparams or LAParams()

    def extract(self, data: bytes) -> TextLayerResult:
        """Read the text layer of every page up to the page cap.

        A page that fails to lay out counts as empty and is marked for
        OCR; the remaining pages are still read.

        Args:
            data: Raw PDF bytes.

        Returns:
            Per-page text and the page numbers needing OCR.
        """
        result = TextLayerResult()
        for number, page in enumerate(open_pdf_pages(data, self.max_pages), 1):
            try:
                text = self.page_text(page)
            except Exception as exc:
                logger.warning("Text layer extraction failed on page %d: %s", number, exc)
                text = ""
            result.pages.append(text)
            if len(text) < self.min_chars_per_page:
                result.needs_ocr.append(number)

        logger.info(
            "Text layer read %d pages, %d need OCR",
            len(result.pages),
            len(result.needs_ocr),
        )
        return result

    def page_text(self, page: PDFPage) -> str:
        """Return the text-layer content of one page.

        Text-line fragments are joined with single spaces and trimmed.
        """
        rsrcmgr = PDFResourceManager()
        device = PDFPageAggregator(rsrcmgr, laparams=self.laparams)
        try:
            PDFPageInterpreter(rsrcmgr, device).process_page(page)
            layout = device.get_result()
        finally:
            device.close()

        fragments = (line.get_text().strip() for line in _text_lines(layout))
        return " ".join(fragment for fragment in fragments if fragment).strip()


def _text_lines(item: LTItem) -> Iterator[LTTextLine]:
    if isinstance(item, LTTextLine):
        yield item
    elif isinstance(item, LTContainer):
        for child in item:
            yield from _text_lines(child)
