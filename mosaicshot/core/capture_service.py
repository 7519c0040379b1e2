"""
Capture provider for MosaicShot.

The screen is captured once, before the overlay is shown, so the user
selects on a frozen snapshot rather than on the overlay itself. Every
committed selection is then cut from that snapshot with copy_region().
"""

from typing import Optional

from PySide6.QtGui import QGuiApplication

from mosaicshot.core.geometry import Rect
from mosaicshot.core.pixel_buffer import PixelBuffer
from mosaicshot.services.logging_service import get_logger

_logger = get_logger(__name__)


def grab_primary_screen() -> Optional[PixelBuffer]:
    """
    Capture the primary screen.

    Returns:
        The captured pixels, or None when no screen is available or the
        capture came back empty.
    """
    primary_screen = QGuiApplication.primaryScreen()
    if not primary_screen:
        _logger.error("No primary screen available!")
        return None

    # grabWindow(0) captures the entire screen, not a specific window
    pixmap = primary_screen.grabWindow(0)
    image = pixmap.toImage()
    if image.isNull():
        _logger.error("Failed to capture primary screen!")
        return None

    _logger.info(
        f"Screen captured: {image.width()}x{image.height()} from {primary_screen.name()}"
    )
    return PixelBuffer.from_qimage(image)


def copy_region(screen: PixelBuffer, rect: Rect) -> PixelBuffer:
    """Cut a committed selection out of the frozen screen."""
    region = screen.copy_region(rect)
    _logger.debug(f"Copied region {rect}: {region.width}x{region.height}")
    return region
