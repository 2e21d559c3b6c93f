"""Capture-only drawing surface for obtaining page rasters.

The page renderer drives a full 2D drawing API. ``CaptureSurface``
implements all of it, but the only calls with an effect are image
placements, whose pixel buffers are collected for OCR.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np
from PIL import Image

from resume_text.utils.logger import get_logger

logger = get_logger(__name__)

IDENTITY = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


@dataclass
class CapturedRaster:
    """An RGBA pixel buffer intercepted during rendering."""

    width: int
    height: int
    data: bytes

    @property
    def area(self) -> int:
        return self.width * self.height

    def is_valid(self) -> bool:
        return (
            self.width > 0
            and self.height > 0
            and len(self.data) == self.width * self.height * 4
        )


@dataclass
class TextMetrics:
    """Text measurement result. Always zero on a capture surface."""

    width: float = 0.0
    actual_bounding_box_left: float = 0.0
    actual_bounding_box_right: float = 0.0
    actual_bounding_box_ascent: float = 0.0
    actual_bounding_box_descent: float = 0.0
    font_bounding_box_ascent: float = 0.0
    font_bounding_box_descent: float = 0.0


class NullPaint:
    """Gradient or pattern handle that accepts and ignores configuration."""

    def add_color_stop(self, offset: float, color: str) -> None:
        pass

    def set_transform(self, *matrix: float) -> None:
        pass


class DrawingSurface(ABC):
    """The drawing API a page renderer expects from its target surface."""

    width: int
    height: int

    # State
    @abstractmethod
    def save(self) -> None: ...

    @abstractmethod
    def restore(self) -> None: ...

    # Transforms
    @abstractmethod
    def scale(self, x: float, y: float) -> None: ...

    @abstractmethod
    def rotate(self, angle: float) -> None: ...

    @abstractmethod
    def translate(self, x: float, y: float) -> None: ...

    @abstractmethod
    def transform(
        self, a: float, b: float, c: float, d: float, e: float, f: float
    ) -> None: ...

    @abstractmethod
    def set_transform(
        self, a: float, b: float, c: float, d: float, e: float, f: float
    ) -> None: ...

    @abstractmethod
    def reset_transform(self) -> None: ...

    @abstractmethod
    def get_transform(self) -> tuple[float, ...]: ...

    # Paths
    @abstractmethod
    def begin_path(self) -> None: ...

    @abstractmethod
    def close_path(self) -> None: ...

    @abstractmethod
    def move_to(self, x: float, y: float) -> None: ...

    @abstractmethod
    def line_to(self, x: float, y: float) -> None: ...

    @abstractmethod
    def bezier_curve_to(
        self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float
    ) -> None: ...

    @abstractmethod
    def quadratic_curve_to(
        self, cpx: float, cpy: float, x: float, y: float
    ) -> None: ...

    @abstractmethod
    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start: float,
        end: float,
        counterclockwise: bool = False,
    ) -> None: ...

    @abstractmethod
    def arc_to(
        self, x1: float, y1: float, x2: float, y2: float, radius: float
    ) -> None: ...

    @abstractmethod
    def ellipse(self, x: float, y: float, rx: float, ry: float, *args: Any) -> None: ...

    @abstractmethod
    def rect(self, x: float, y: float, w: float, h: float) -> None: ...

    # Painting
    @abstractmethod
    def fill(self, rule: str = "nonzero") -> None: ...

    @abstractmethod
    def stroke(self) -> None: ...

    @abstractmethod
    def clip(self, rule: str = "nonzero") -> None: ...

    @abstractmethod
    def fill_rect(self, x: float, y: float, w: float, h: float) -> None: ...

    @abstractmethod
    def stroke_rect(self, x: float, y: float, w: float, h: float) -> None: ...

    @abstractmethod
    def clear_rect(self, x: float, y: float, w: float, h: float) -> None: ...

    @abstractmethod
    def is_point_in_path(self, x: float, y: float, rule: str = "nonzero") -> bool: ...

    @abstractmethod
    def is_point_in_stroke(self, x: float, y: float) -> bool: ...

    @abstractmethod
    def set_line_dash(self, segments: list[float]) -> None: ...

    @abstractmethod
    def get_line_dash(self) -> list[float]: ...

    # Text
    @abstractmethod
    def fill_text(self, text: str, x: float, y: float) -> None: ...

    @abstractmethod
    def stroke_text(self, text: str, x: float, y: float) -> None: ...

    @abstractmethod
    def measure_text(self, text: str) -> TextMetrics: ...

    # Gradients and patterns
    @abstractmethod
    def create_linear_gradient(
        self, x0: float, y0: float, x1: float, y1: float
    ) -> NullPaint: ...

    @abstractmethod
    def create_radial_gradient(
        self, x0: float, y0: float, r0: float, x1: float, y1: float, r1: float
    ) -> NullPaint: ...

    @abstractmethod
    def create_pattern(self, image: Any, repetition: str) -> NullPaint: ...

    # Images
    @abstractmethod
    def draw_image(self, source: Any, *args: float) -> None: ...

    @abstractmethod
    def put_image_data(self, image_data: Any, dx: float, dy: float) -> None: ...

    @abstractmethod
    def create_image_data(self, width: int, height: int) -> CapturedRaster: ...

    @abstractmethod
    def get_image_data(
        self, x: int, y: int, width: int, height: int
    ) -> CapturedRaster: ...


class CaptureSurface(DrawingSurface):
    """Drawing surface that records placed images and ignores everything else.

    Args:
        width: Surface width in pixels.
        height: Surface height in pixels.
    """

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.width = width
        self.height = height
        self.captures: list[CapturedRaster] = []
        self.fill_style: Any = "#000000"
        self.stroke_style: Any = "#000000"
        self.line_width = 1.0
        self.font = "10px sans-serif"
        self.global_alpha = 1.0
        self.global_composite_operation = "source-over"
        self._line_dash: list[float] = []

    def save(self) -> None:
        pass

    def restore(self) -> None:
        pass

    def scale(self, x: float, y: float) -> None:
        pass

    def rotate(self, angle: float) -> None:
        pass

    def translate(self, x: float, y: float) -> None:
        pass

    def transform(
        self, a: float, b: float, c: float, d: float, e: float, f: float
    ) -> None:
        pass

    def set_transform(
        self, a: float, b: float, c: float, d: float, e: float, f: float
    ) -> None:
        pass

    def reset_transform(self) -> None:
        pass

    def get_transform(self) -> tuple[float, ...]:
        return IDENTITY

    def begin_path(self) -> None:
        pass

    def close_path(self) -> None:
        pass

    def move_to(self, x: float, y: float) -> None:
        pass

    def line_to(self, x: float, y: float) -> None:
        pass

    def bezier_curve_to(
        self, cp1x: float, cp1y: float, cp2x: float, cp2y: float, x: float, y: float
    ) -> None:
        pass

    def quadratic_curve_to(self, cpx: float, cpy: float, x: float, y: float) -> None:
        pass

    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start: float,
        end: float,
        counterclockwise: bool = False,
    ) -> None:
        pass

    def arc_to(self, x1: float, y1: float, x2: float, y2: float, radius: float) -> None:
        pass

    def ellipse(self, x: float, y: float, rx: float, ry: float, *args: Any) -> None:
        pass

    def rect(self, x: float, y: float, w: float, h: float) -> None:
        pass

    def fill(self, rule: str = "nonzero") -> None:
        pass

    def stroke(self) -> None:
        pass

    def clip(self, rule: str = "nonzero") -> None:
        pass

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        pass

    def stroke_rect(self, x: float, y: float, w: float, h: float) -> None:
        pass

    def clear_rect(self, x: float, y: float, w: float, h: float) -> None:
        pass

    def is_point_in_path(self, x: float, y: float, rule: str = "nonzero") -> bool:
        return False

    def is_point_in_stroke(self, x: float, y: float) -> bool:
        return False

    def set_line_dash(self, segments: list[float]) -> None:
        self._line_dash = list(segments)

    def get_line_dash(self) -> list[float]:
        return list(self._line_dash)

    def fill_text(self, text: str, x: float, y: float) -> None:
        pass

    def stroke_text(self, text: str, x: float, y: float) -> None:
        pass

    def measure_text(self, text: str) -> TextMetrics:
        return TextMetrics()

    def create_linear_gradient(
        self, x0: float, y0: float, x1: float, y1: float
    ) -> NullPaint:
        return NullPaint()

    def create_radial_gradient(
        self, x0: float, y0: float, r0: float, x1: float, y1: float, r1: float
    ) -> NullPaint:
        return NullPaint()

    def create_pattern(self, image: Any, repetition: str) -> NullPaint:
        return NullPaint()

    def create_image_data(self, width: int, height: int) -> CapturedRaster:
        return CapturedRaster(width, height, bytes(width * height * 4))

    def get_image_data(self, x: int, y: int, width: int, height: int) -> CapturedRaster:
        return CapturedRaster(width, height, bytes(width * height * 4))

    def draw_image(self, source: Any, *args: float) -> None:
        """Record an image placed on this surface.

        Args:
            source: Another ``CaptureSurface`` (its captures are merged),
                a ``CapturedRaster``, or pixel data that still needs
                coercing to RGBA bytes.
            *args: Destination geometry, ignored.
        """
        if isinstance(source, CaptureSurface):
            self.captures.extend(source.captures)
            return
        raster = source if isinstance(source, CapturedRaster) else coerce_pixels(source)
        self._store(raster)

    def put_image_data(self, image_data: Any, dx: float, dy: float) -> None:
        self.draw_image(image_data, dx, dy)

    def _store(self, raster: CapturedRaster | None) -> None:
        if raster is None or not raster.is_valid():
            logger.debug("Dropping invalid image capture")
            return
        self.captures.append(raster)


def coerce_pixels(source: Any) -> CapturedRaster | None:
    """Convert pixel data of any supported shape to a clamped RGBA raster.

    Accepts Pillow images, numpy arrays of shape ``(h, w)``, ``(h, w, 3)``
    or ``(h, w, 4)``, and objects exposing ``width``, ``height`` and a
    numeric ``data`` sequence.

    Returns:
        The coerced raster, or ``None`` if the source cannot be read.
    """
    try:
        if isinstance(source, Image.Image):
            rgba = source.convert("RGBA")
            return CapturedRaster(rgba.width, rgba.height, rgba.tobytes())

        if isinstance(source, np.ndarray):
            return _raster_from_array(source)

        width = int(source.width)
        height = int(source.height)
        data = source.data
        if isinstance(data, (bytes, bytearray, memoryview)):
            return CapturedRaster(width, height, bytes(data))
        values = np.asarray(data, dtype=np.float64).ravel()
        clamped = np.clip(np.rint(values), 0, 255).astype(np.uint8)
        return CapturedRaster(width, height, clamped.tobytes())
    except (AttributeError, TypeError, ValueError, OSError) as exc:
        logger.debug("Cannot coerce image source %r: %s", type(source), exc)
        return None


def _raster_from_array(array: np.ndarray) -> CapturedRaster | None:
    pixels = np.clip(np.rint(array.astype(np.float64)), 0, 255).astype(np.uint8)
    if pixels.ndim == 2:
        pixels = np.stack([pixels] * 3, axis=-1)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        return None
    if pixels.shape[2] == 3:
        alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
        pixels = np.concatenate([pixels, alpha], axis=-1)
    height, width = pixels.shape[:2]
    return CapturedRaster(width, height, np.ascontiguousarray(pixels).tobytes())


class SurfaceFactory:
    """Creates, resets, and destroys capture surfaces for the renderer."""

    def create(self, width: int, height: int) -> CaptureSurface:
        return CaptureSurface(max(width, 0), max(height, 0))

    def reset(self, surface: CaptureSurface, width: int, height: int) -> None:
        surface.width = max(width, 0)
        surface.height = max(height, 0)
        surface.captures.clear()

    def destroy(self, surface: CaptureSurface) -> None:
        surface.width = 0
        surface.height = 0
        surface.captures.clear()
