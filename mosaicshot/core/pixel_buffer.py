"""
RGBA pixel buffer for MosaicShot.

PixelBuffer is the read/write bitmap contract consumed by the mosaic
engine and produced by the capture provider. Pixels live in a
(height, width, 4) uint8 numpy array in R, G, B, A order; stride and
format conversion to and from QImage are handled here so callers never
see them.
"""

from typing import Tuple

import numpy as np
from PySide6.QtGui import QImage

from mosaicshot.core.geometry import Rect, intersect

RGBA = Tuple[int, int, int, int]
RGB = Tuple[int, int, int]


class PixelBuffer:
    """
    Mutable RGBA bitmap with random pixel access.

    The buffer owns its array; copy() and copy_region() always return
    independent buffers so a captured base image can stay pristine.
    """

    def __init__(self, pixels: np.ndarray) -> None:
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an (h, w, 4) array, got shape {pixels.shape}")
        self._pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    # ─── Construction ─────────────────────────────────────────────────────

    @classmethod
    def filled(cls, width: int, height: int, rgba: RGBA = (0, 0, 0, 255)) -> "PixelBuffer":
        """Create a buffer where every pixel has the same colour."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = rgba
        return cls(pixels)

    @classmethod
    def from_qimage(cls, image: QImage) -> "PixelBuffer":
        """Copy a QImage into a new buffer (any source format)."""
        if image.isNull():
            return cls(np.zeros((0, 0, 4), dtype=np.uint8))

        if image.format() != QImage.Format.Format_RGBA8888:
            image = image.convertToFormat(QImage.Format.Format_RGBA8888)

        width = image.width()
        height = image.height()
        stride = image.bytesPerLine()

        raw = np.frombuffer(image.constBits(), dtype=np.uint8, count=stride * height)
        # Rows may be padded past width * 4 bytes
        pixels = raw.reshape((height, stride))[:, : width * 4].reshape((height, width, 4))
        return cls(pixels.copy())

    def to_qimage(self) -> QImage:
        """Create a detached RGBA8888 QImage with this buffer's pixels."""
        if self.width == 0 or self.height == 0:
            return QImage()

        data = np.ascontiguousarray(self._pixels)
        image = QImage(
            data.data, self.width, self.height, self.width * 4,
            QImage.Format.Format_RGBA8888
        )
        return image.copy()

    # ─── Geometry ─────────────────────────────────────────────────────────

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def rect(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    @property
    def pixels(self) -> np.ndarray:
        """Writable view of the underlying (h, w, 4) array."""
        return self._pixels

    # ─── Pixel access ─────────────────────────────────────────────────────

    def get_pixel(self, x: int, y: int) -> RGBA:
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def set_rgb(self, x: int, y: int, rgb: RGB) -> None:
        """Write the colour channels of one pixel; alpha is preserved."""
        self._pixels[y, x, :3] = rgb

    def set_pixel(self, x: int, y: int, rgba: RGBA) -> None:
        self._pixels[y, x] = rgba

    # ─── Copies ───────────────────────────────────────────────────────────

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self._pixels.copy())

    def copy_region(self, rect: Rect) -> "PixelBuffer":
        """
        Copy the part of the buffer covered by rect.

        The rect is clipped to the buffer first, so the result may be
        smaller than requested (or empty).
        """
        clipped = intersect(rect, self.rect)
        if clipped.is_empty():
            return PixelBuffer(np.zeros((0, 0, 4), dtype=np.uint8))

        x0, y0 = int(clipped.x), int(clipped.y)
        x1, y1 = int(clipped.right), int(clipped.bottom)
        return PixelBuffer(self._pixels[y0:y1, x0:x1].copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self._pixels.shape == other._pixels.shape and bool(
            np.array_equal(self._pixels, other._pixels)
        )

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"
