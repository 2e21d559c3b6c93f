"""Minimal 24-bit BMP encoder for captured page rasters.

Turns an RGBA pixel buffer into a self-contained Windows bitmap that
Pillow (and therefore Tesseract) can read, without an image codec.
"""

import struct

import numpy as np

BMP_HEADER_SIZE = 54
_DIB_HEADER_SIZE = 40
_PIXELS_PER_METER = 2835  # 72 DPI


def row_stride(width: int) -> int:
    """Return the padded byte length of one 24-bit BMP row."""
    return (width * 3 + 3) & ~3


def encode_bmp(rgba: bytes, width: int, height: int) -> bytes:
    """Encode an RGBA buffer as a top-down 24-bit BMP.

    Rows are written top-down (negative height in the header), pixels are
    reordered from RGBA to BGR and alpha is dropped. Each row is padded to
    a 4-byte boundary.

    Args:
        rgba: Pixel data, exactly ``width * height * 4`` bytes.
        width: Image width in pixels. Must be positive.
        height: Image height in pixels. Must be positive.

    Returns:
        The complete BMP file as bytes.
    """
    stride = row_stride(width)
    image_size = stride * height
    out = bytearray(BMP_HEADER_SIZE + image_size)

    struct.pack_into(
        "<2sIHHI", out, 0, b"BM", len(out), 0, 0, BMP_HEADER_SIZE
    )
    struct.pack_into(
        "<IiiHHIIiiII",
        out,
        14,
        _DIB_HEADER_SIZE,
        width,
        -height,
        1,
        24,
        0,
        image_size,
        _PIXELS_PER_METER,
        _PIXELS_PER_METER,
        0,
        0,
    )

    pixels = np.frombuffer(rgba, dtype=np.uint8).reshape(height, width, 4)
    rows = np.frombuffer(out, dtype=np.uint8, offset=BMP_HEADER_SIZE).reshape(
        height, stride
    )
    # Channels 2, 1, 0 of RGBA are B, G, R.
    rows[:, : width * 3] = pixels[:, :, 2::-1].reshape(height, width * 3)
    return bytes(out)
