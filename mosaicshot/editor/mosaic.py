"""
Mosaic (pixelate) engine for MosaicShot.

A mosaic stroke is a list of sample points; each sample replaces the
pixels of a block_size x block_size square around it with the square's
mean colour. Strokes are never burnt into the captured image: the
compositor replays them on a fresh copy of the base bitmap every time
it renders, which keeps them undoable and ordered with the other
annotations.
"""

from typing import Optional

import numpy as np

from mosaicshot.core.geometry import Point, Rect, intersect
from mosaicshot.core.pixel_buffer import PixelBuffer

MIN_BLOCK_SIZE = 10
MAX_BLOCK_SIZE = 50
DEFAULT_BLOCK_SIZE = 10


def clamp_block_size(size: int) -> int:
    """Clamp a configured block size into [MIN_BLOCK_SIZE, MAX_BLOCK_SIZE]."""
    return max(MIN_BLOCK_SIZE, min(MAX_BLOCK_SIZE, int(size)))


def block_rect(center: Point, block_size: int) -> Rect:
    """The nominal (unclipped) block around a sample point."""
    half = block_size // 2
    return Rect(int(center.x) - half, int(center.y) - half, block_size, block_size)


def apply_block_average(
    buffer: PixelBuffer,
    center: Point,
    block_size: int,
    bounds: Rect,
) -> Optional[Rect]:
    """
    Average the RGB channels of one block in place.

    The block is clipped to bounds (and to the buffer); the mean is taken
    over the clipped pixels only and truncated per channel. Alpha is left
    untouched.

    Returns:
        The clipped rect that was averaged, or None when it was empty.
    """
    clipped = intersect(intersect(block_rect(center, block_size), bounds), buffer.rect)
    if clipped.is_empty():
        return None

    x0, y0 = int(clipped.x), int(clipped.y)
    x1, y1 = int(clipped.right), int(clipped.bottom)
    region = buffer.pixels[y0:y1, x0:x1, :3]

    # Read pass completes before the write below
    totals = region.reshape(-1, 3).sum(axis=0, dtype=np.int64)
    average = totals // (region.shape[0] * region.shape[1])

    region[...] = average.astype(np.uint8)
    return clipped


def replay_mosaic(buffer: PixelBuffer, operation, bounds: Rect) -> int:
    """
    Apply every sample of a mosaic stroke in order.

    Args:
        buffer: Working copy to pixelate (never the captured base image).
        operation: A MosaicOperation.
        bounds: Region the blocks are clipped to.

    Returns:
        Number of samples that touched at least one pixel.
    """
    applied = 0
    for point in operation.sample_points:
        if apply_block_average(buffer, point, operation.block_size, bounds) is not None:
            applied += 1
    return applied
