"""Page rendering onto a capture surface via pdfminer's device interface.

pdfminer's ``PDFPageInterpreter`` walks a page's content stream and calls
its device for every drawing operation. ``SurfaceDevice`` forwards those
calls to a ``CaptureSurface`` so that embedded page images (the scan of a
scanned resume) come out the other end as RGBA rasters.
"""

import io
from typing import Any

import numpy as np
from pdfminer.pdfdevice import PDFDevice
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdftypes import (
    LITERALS_DCT_DECODE,
    LITERALS_JPX_DECODE,
    PDFStream,
    resolve1,
)
from pdfminer.psparser import PSLiteral, literal_name
from PIL import Image

from resume_text.utils.logger import get_logger

from .surface import CapturedRaster, CaptureSurface, SurfaceFactory

logger = get_logger(__name__)

_RAW_MODES = {1: "L", 3: "RGB", 4: "CMYK"}

# Device and CIE colour spaces, including inline-image abbreviations.
_SPACE_COMPONENTS = {
    "DeviceGray": 1,
    "G": 1,
    "CalGray": 1,
    "DeviceRGB": 3,
    "RGB": 3,
    "CalRGB": 3,
    "Lab": 3,
    "DeviceCMYK": 4,
    "CMYK": 4,
}
_INDEXED = ("Indexed", "I")


def decode_image_stream(stream: Any) -> Image.Image | None:
    """Decode a PDF image XObject into a Pillow image.

    JPEG and JPEG 2000 streams are handed to Pillow as-is. Unfiltered or
    Flate-compressed samples are unpacked at 1, 2, 4, or 8 bits per
    component and interpreted through the image's colour space: gray,
    RGB, CMYK, ICC-based, or a palette (``/Indexed``). ``/ImageMask``
    stencils are read as 1-bit gray, and a ``/Decode`` array remaps the
    sample range, so ``[1 0]`` inverts it. Without a colour space the
    component count is inferred from the data size.

    Args:
        stream: pdfminer ``PDFStream`` of an image XObject or inline image.

    Returns:
        The decoded image (gray, RGB, or palette-expanded), or ``None``
        for layouts that are not supported.
    """
    width = resolve1(stream.get_any(("W", "Width")))
    height = resolve1(stream.get_any(("H", "Height")))
    if not width or not height:
        return None

    filters = [name for name, _ in stream.get_filters()]
    data = stream.get_data()

    if filters and filters[-1] in LITERALS_DCT_DECODE + LITERALS_JPX_DECODE:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image.convert("RGB") if image.mode == "CMYK" else image

    image_mask = bool(resolve1(stream.get_any(("IM", "ImageMask"), False)))
    bits = 1 if image_mask else resolve1(stream.get_any(("BPC", "BitsPerComponent"), 8))
    space, params = split_colorspace(stream.get_any(("CS", "ColorSpace")))
    decode = resolve1(stream.get_any(("D", "Decode")))

    if image_mask or space in _INDEXED:
        components = 1
    else:
        components = component_count(space, params)
    if components is None:
        components = len(data) // (width * height) if bits == 8 else 1

    samples = unpack_samples(data, width, height, bits, components)
    if samples is None:
        return None

    if space in _INDEXED and not image_mask:
        return _expand_palette(samples, bits, params, decode, width, height)

    mode = _RAW_MODES.get(components)
    if mode is None:
        return None
    pixels = _scale_samples(samples, bits, components, decode)
    image = Image.frombytes(mode, (width, height), pixels.tobytes())
    return image.convert("RGB") if mode == "CMYK" else image


def split_colorspace(colorspace: Any) -> tuple[str | None, list[Any]]:
    """Return a colour space's family name and its parameters.

    ``/DeviceRGB`` gives ``("DeviceRGB", [])``;
    ``[/Indexed /DeviceRGB 1 <...>]`` gives ``("Indexed", [base, 1, lookup])``.
    """
    colorspace = resolve1(colorspace)
    if isinstance(colorspace, list) and colorspace:
        return _name(resolve1(colorspace[0])), [resolve1(p) for p in colorspace[1:]]
    return _name(colorspace), []


def component_count(space: str | None, params: list[Any]) -> int | None:
    """Number of colour components per sample, or ``None`` if unknown."""
    if space in _INDEXED:
        return 1
    if space == "ICCBased" and params and isinstance(params[0], PDFStream):
        count = resolve1(params[0].get("N"))
        return count if isinstance(count, int) else None
    return _SPACE_COMPONENTS.get(space)


def unpack_samples(
    data: bytes, width: int, height: int, bits: int, components: int
) -> np.ndarray | None:
    """Unpack packed image samples into an integer array.

    Rows are padded to whole bytes, as in every PDF image.

    Returns:
        Array of shape ``(height, width * components)``, or ``None`` for an
        unsupported depth or short data.
    """
    if bits not in (1, 2, 4, 8):
        return None
    per_row = width * components
    row_bytes = (per_row * bits + 7) // 8
    if len(data) < row_bytes * height:
        return None

    rows = np.frombuffer(data, dtype=np.uint8, count=row_bytes * height)
    rows = rows.reshape(height, row_bytes)
    if bits == 8:
        return rows[:, :per_row].astype(np.int64)
    planes = np.unpackbits(rows, axis=1)[:, : per_row * bits]
    weights = 1 << np.arange(bits - 1, -1, -1)
    return planes.reshape(height, per_row, bits).astype(np.int64) @ weights


def _scale_samples(
    samples: np.ndarray, bits: int, components: int, decode: Any
) -> np.ndarray:
    maxval = (1 << bits) - 1
    values = samples.reshape(samples.shape[0], -1, components) / maxval
    ranges = _decode_ranges(decode, components)
    if ranges is not None:
        values = ranges[:, 0] + values * (ranges[:, 1] - ranges[:, 0])
    return np.clip(np.rint(values * 255), 0, 255).astype(np.uint8)


def _expand_palette(
    samples: np.ndarray,
    bits: int,
    params: list[Any],
    decode: Any,
    width: int,
    height: int,
) -> Image.Image | None:
    if len(params) < 3:
        return None
    base, base_params = split_colorspace(params[0])
    base_components = component_count(base, base_params)
    hival = resolve1(params[1])
    lookup = resolve1(params[2])
    if isinstance(lookup, PDFStream):
        lookup = lookup.get_data()
    elif isinstance(lookup, str):
        lookup = lookup.encode("latin-1")
    if base_components not in _RAW_MODES or not isinstance(lookup, bytes):
        return None

    entries = min(len(lookup) // base_components, int(hival) + 1)
    if entries < 1:
        return None
    palette = np.frombuffer(
        lookup, dtype=np.uint8, count=entries * base_components
    ).reshape(entries, base_components)

    indices = samples
    ranges = _decode_ranges(decode, 1)
    if ranges is not None:
        # Indexed /Decode maps samples onto [dmin, dmax] in index units.
        dmin, dmax = ranges[0]
        indices = np.rint(dmin + samples * (dmax - dmin) / ((1 << bits) - 1))
    indices = np.clip(indices, 0, entries - 1).astype(np.intp)

    mode = _RAW_MODES[base_components]
    image = Image.frombytes(mode, (width, height), palette[indices].tobytes())
    return image.convert("RGB") if mode == "CMYK" else image


def _decode_ranges(decode: Any, components: int) -> np.ndarray | None:
    if not isinstance(decode, list) or len(decode) < 2 * components:
        return None
    try:
        values = [float(resolve1(v)) for v in decode[: 2 * components]]
    except (TypeError, ValueError):
        return None
    return np.asarray(values).reshape(components, 2)


def _name(obj: Any) -> str | None:
    return literal_name(obj) if isinstance(obj, PSLiteral) else None


class SurfaceDevice(PDFDevice):
    """pdfminer device that replays a page onto capture surfaces.

    Form and image XObjects are drawn into a temporary child surface
    which is then composited onto its parent, the same way a canvas
    renderer uses scratch canvases.

    Args:
        rsrcmgr: Shared pdfminer resource manager.
        factory: Factory owning every surface this device uses.
        scale: Page-to-pixel scale for the page surface.
    """

    def __init__(
        self,
        rsrcmgr: PDFResourceManager,
        factory: SurfaceFactory,
        scale: float = 1.0,
    ) -> None:
        super().__init__(rsrcmgr)
        self.factory = factory
        self.scale = scale
        self.surface = factory.create(0, 0)
        self._figures: list[CaptureSurface] = []

    @property
    def current(self) -> CaptureSurface:
        return self._figures[-1] if self._figures else self.surface

    def close(self) -> None:
        while self._figures:
            self.factory.destroy(self._figures.pop())
        self.factory.destroy(self.surface)

    def set_ctm(self, ctm: Any) -> None:
        super().set_ctm(ctm)
        self.current.set_transform(*ctm)

    def begin_page(self, page: PDFPage, ctm: Any) -> None:
        x0, y0, x1, y1 = page.mediabox
        self.factory.reset(
            self.surface,
            round(abs(x1 - x0) * self.scale),
            round(abs(y1 - y0) * self.scale),
        )
        self.surface.save()
        self.surface.scale(self.scale, self.scale)

    def end_page(self, page: PDFPage) -> None:
        self.surface.restore()

    def begin_figure(self, name: str, bbox: Any, matrix: Any) -> None:
        x0, y0, x1, y1 = bbox
        child = self.factory.create(round(abs(x1 - x0)), round(abs(y1 - y0)))
        child.set_transform(*matrix)
        self._figures.append(child)

    def end_figure(self, name: str) -> None:
        if not self._figures:
            return
        child = self._figures.pop()
        self.current.draw_image(child, 0, 0)
        self.factory.destroy(child)

    def paint_path(
        self, graphicstate: Any, stroke: bool, fill: bool, evenodd: bool, path: Any
    ) -> None:
        surface = self.current
        surface.line_width = getattr(graphicstate, "linewidth", 1.0)
        surface.begin_path()
        for segment in path:
            op, args = segment[0], segment[1:]
            if op == "m":
                surface.move_to(*args[:2])
            elif op == "l":
                surface.line_to(*args[:2])
            elif op == "c":
                surface.bezier_curve_to(*args[:6])
            elif op == "v":
                x2, y2, x3, y3 = args[:4]
                surface.bezier_curve_to(x2, y2, x2, y2, x3, y3)
            elif op == "y":
                x1, y1, x3, y3 = args[:4]
                surface.bezier_curve_to(x1, y1, x3, y3, x3, y3)
            elif op == "h":
                surface.close_path()
        if fill:
            surface.fill("evenodd" if evenodd else "nonzero")
        if stroke:
            surface.stroke()

    def render_string(
        self, textstate: Any, seq: Any, ncs: Any, graphicstate: Any
    ) -> None:
        surface = self.current
        surface.save()
        surface.transform(*textstate.matrix)
        x = 0.0
        for obj in seq:
            if isinstance(obj, bytes):
                text = obj.decode("latin-1")
                surface.fill_text(text, x, 0.0)
                x += surface.measure_text(text).width
        surface.restore()

    def render_image(self, name: str, stream: Any) -> None:
        try:
            image = decode_image_stream(stream)
        except Exception as exc:
            logger.debug("Skipping undecodable image %s: %s", name, exc)
            return
        if image is not None:
            self.current.draw_image(image, 0, 0, 1, 1)


class PageRenderer:
    """Renders PDF pages and returns the images captured on each.

    Args:
        factory: Surface factory. A fresh ``SurfaceFactory`` by default.
        scale: Page-to-pixel scale for the page surface.
    """

    def __init__(self, factory: SurfaceFactory | None = None, scale: float = 1.0) -> None:
        self.factory = factory or SurfaceFactory()
        self.scale = scale

    def render(self, page: PDFPage) -> list[CapturedRaster]:
        """Render one page and collect its image captures.

        Args:
            page: pdfminer page to render.

        Returns:
            Every valid raster placed on the page, in drawing order.
        """
        rsrcmgr = PDFResourceManager()
        device = SurfaceDevice(rsrcmgr, self.factory, self.scale)
        try:
            PDFPageInterpreter(rsrcmgr, device).process_page(page)
            captures = list(device.surface.captures)
        finally:
            device.close()
        logger.debug("Captured %d images from page", len(captures))
        return captures


def largest_capture(captures: list[CapturedRaster]) -> CapturedRaster | None:
    """Pick the largest-area capture, taken to be the page scan."""
    if not captures:
        return None
    return max(captures, key=lambda raster: raster.area)
