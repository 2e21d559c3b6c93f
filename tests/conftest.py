"""Shared test fixtures for the resume text extractor test suite."""

import zlib
from pathlib import Path

import numpy as np
import pytest

from resume_text.utils.config import AppConfig, CloudOCRConfig, PipelineConfig


def pdf_stream(attributes: bytes, data: bytes) -> bytes:
    """Build a PDF stream object body."""
    return (
        b"<< " + attributes + b" /Length %d >>\nstream\n" % len(data)
        + data
        + b"\nendstream"
    )


def image_xobject(
    width: int,
    height: int,
    data: bytes,
    colorspace: bytes = b"/DeviceRGB",
    flate: bool = False,
) -> bytes:
    """Build an 8-bit image XObject body, optionally Flate-compressed."""
    attributes = (
        b"/Type /XObject /Subtype /Image /Width %d /Height %d "
        b"/ColorSpace %s /BitsPerComponent 8" % (width, height, colorspace)
    )
    if flate:
        attributes += b" /Filter /FlateDecode"
        data = zlib.compress(data)
    return pdf_stream(attributes, data)


def mask_xobject(width: int, height: int, data: bytes) -> bytes:
    """Build a stencil-mask image XObject with no /BitsPerComponent."""
    return pdf_stream(
        b"/Type /XObject /Subtype /Image /Width %d /Height %d /ImageMask true"
        % (width, height),
        data,
    )


def image_page(xobject: bytes) -> bytes:
    """Build a one-page PDF whose only content is the given image."""
    return build_pdf([(b"q 200 0 0 200 0 0 cm /Im1 Do Q", {"Im1": xobject})])


def text_content(text: str) -> bytes:
    """Build a content stream that shows one line of Helvetica text."""
    return b"BT /F1 12 Tf 20 100 Td (%s) Tj ET" % text.encode("latin-1")


def build_pdf(pages: list[tuple[bytes, dict[str, bytes]]]) -> bytes:
    """Build a minimal PDF in memory.

    Args:
        pages: One ``(content_stream, {xobject_name: xobject_body})``
            tuple per page.

    Returns:
        PDF file bytes with a valid cross-reference table.
    """
    objects: list[bytes] = [b"", b""]

    def add(body: bytes) -> int:
        objects.append(body)
        return len(objects)

    font = add(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    kids: list[int] = []
    for content, xobjects in pages:
        refs = b" ".join(
            b"/%s %d 0 R" % (name.encode(), add(body)) for name, body in xobjects.items()
        )
        contents = add(pdf_stream(b"", content))
        kids.append(
            add(
                b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 200 200] "
                b"/Resources << /Font << /F1 %d 0 R >> /XObject << %s >> >> "
                b"/Contents %d 0 R >>" % (font, refs, contents)
            )
        )

    objects[0] = b"<< /Type /Catalog /Pages 2 0 R >>"
    objects[1] = b"<< /Type /Pages /Kids [%s] /Count %d >>" % (
        b" ".join(b"%d 0 R" % kid for kid in kids),
        len(kids),
    )

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    out += b"".join(b"%010d 00000 n \n" % offset for offset in offsets)
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref,
    )
    return bytes(out)


@pytest.fixture
def rgb_pixels() -> np.ndarray:
    """A 2x3 RGB image with a distinct value in every channel."""
    return np.arange(2 * 3 * 3, dtype=np.uint8).reshape(2, 3, 3) * 10 + 5


@pytest.fixture
def text_pdf() -> bytes:
    """A two-page PDF: page 1 has a text layer, page 2 is blank."""
    return build_pdf(
        [
            (text_content("Experience Senior Engineer"), {}),
            (b"", {}),
        ]
    )


@pytest.fixture
def scanned_pdf(rgb_pixels: np.ndarray) -> bytes:
    """A one-page PDF whose only content is an embedded 3x2 RGB image."""
    return image_page(image_xobject(3, 2, rgb_pixels.tobytes()))


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with cloud OCR disabled."""
    return AppConfig(
        cloud_ocr=CloudOCRConfig(api_key=None),
        pipeline=PipelineConfig(max_pages=10, min_chars_per_page=10, too_long_chars=6000),
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
