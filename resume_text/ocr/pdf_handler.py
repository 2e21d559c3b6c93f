"""Poppler-backed page rasterization.

Fallback for pages that need OCR but carry no embedded image to capture,
such as pages whose glyphs were converted to vector outlines.
"""

import numpy as np
from pdf2image import convert_from_bytes

from resume_text.utils.logger import get_logger

from .surface import CapturedRaster

logger = get_logger(__name__)


class PDFHandler:
    """Handles PDF page to raster conversion for OCR processing.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 200) -> None:
        self.dpi = dpi

    def render_page(self, pdf_bytes: bytes, page_number: int) -> CapturedRaster | None:
        """Rasterize a single page.

        Args:
            pdf_bytes: Raw PDF bytes.
            page_number: 1-based page number.

        Returns:
            The page as an RGBA raster, or ``None`` if Poppler produced
            no image.

        Raises:
            RuntimeError: If PDF conversion fails.
        """
        try:
            pil_images = convert_from_bytes(
                pdf_bytes,
                dpi=self.dpi,
                first_page=page_number,
                last_page=page_number,
            )
        except Exception as exc:
            raise RuntimeError(f"PDF conversion failed: {exc}") from exc

        if not pil_images:
            return None

        pixels = np.array(pil_images[0].convert("RGBA"), dtype=np.uint8)
        height, width = pixels.shape[:2]
        logger.info(
            "Rasterized page %d at %d DPI (%dx%d)", page_number, self.dpi, width, height
        )
        return CapturedRaster(width, height, pixels.tobytes())
