"""
Magnifier and size readout helpers for the capture overlay.

While the user is choosing a region, a small panel next to the pointer
shows a zoomed view of the pixels around it together with the pointer
position and the colour under it. A size label ("W × H") follows the
selection rectangle.

These helpers only compute what to show; painting happens in the
compositor.
"""

from dataclasses import dataclass
from typing import List, Tuple

from mosaicshot.core.geometry import Point, Rect
from mosaicshot.core.pixel_buffer import PixelBuffer

MAGNIFIER_SIZE = 150
ZOOM_FACTOR = 4
CAPTURE_SIZE = MAGNIFIER_SIZE // ZOOM_FACTOR

# Extra room below the zoomed view for the info lines
INFO_HEIGHT = 50

# Panel offset from the pointer
MAGNIFIER_OFFSET = 20

# Size label padding and gap to the rectangle
SIZE_LABEL_PADDING = 4
SIZE_LABEL_GAP = 5


@dataclass(frozen=True)
class MagnifierSample:
    position: Point
    capture_rect: Rect
    color: Tuple[int, int, int]

    @property
    def hex_color(self) -> str:
        r, g, b = self.color
        return f"#{r:02X}{g:02X}{b:02X}"

    def info_lines(self) -> List[str]:
        r, g, b = self.color
        return [
            f"X: {int(self.position.x)}, Y: {int(self.position.y)}",
            f"RGB: {r}, {g}, {b}",
            f"Hex: {self.hex_color}",
        ]


def sample_magnifier(screen: PixelBuffer, point: Point) -> MagnifierSample:
    """
    Sample the screen around point.

    The capture square is centred on the pointer but kept inside the
    screen; the colour is read from the pointer position clamped to the
    screen.
    """
    width = min(CAPTURE_SIZE, screen.width)
    height = min(CAPTURE_SIZE, screen.height)
    x = max(0, min(int(point.x) - CAPTURE_SIZE // 2, screen.width - CAPTURE_SIZE))
    y = max(0, min(int(point.y) - CAPTURE_SIZE // 2, screen.height - CAPTURE_SIZE))

    color_x = max(0, min(int(point.x), screen.width - 1))
    color_y = max(0, min(int(point.y), screen.height - 1))
    r, g, b, _ = screen.get_pixel(color_x, color_y)

    return MagnifierSample(
        position=point,
        capture_rect=Rect(x, y, width, height),
        color=(r, g, b),
    )


def magnifier_panel_rect(point: Point, screen_rect: Rect) -> Rect:
    """
    Where to place the magnifier panel for a pointer position.

    The panel sits below-right of the pointer and flips to the other side
    when it would leave the screen.
    """
    panel_width = MAGNIFIER_SIZE
    panel_height = MAGNIFIER_SIZE + INFO_HEIGHT

    x = point.x + MAGNIFIER_OFFSET
    y = point.y + MAGNIFIER_OFFSET
    if x + panel_width > screen_rect.right:
        x = point.x - MAGNIFIER_OFFSET - panel_width
    if y + panel_height > screen_rect.bottom:
        y = point.y - MAGNIFIER_OFFSET - panel_height
    return Rect(max(screen_rect.x, x), max(screen_rect.y, y), panel_width, panel_height)


def format_size(rect: Rect) -> str:
    return f"{int(rect.width)} × {int(rect.height)}"


def size_label_rect(rect: Rect, text_size: Tuple[int, int], screen_rect: Rect) -> Rect:
    """
    Place the size label at the rectangle's top-left.

    It goes above the rectangle, moves inside when there is no room above
    and is pulled back when it would run off the right edge.
    """
    label_width = text_size[0] + 2 * SIZE_LABEL_PADDING
    label_height = text_size[1] + 2 * SIZE_LABEL_PADDING

    x = rect.x
    y = rect.y - label_height - SIZE_LABEL_GAP
    if y < screen_rect.y:
        y = rect.y + SIZE_LABEL_GAP
    if x + label_width > screen_rect.right:
        x = screen_rect.right - label_width - SIZE_LABEL_GAP
    return Rect(x, y, label_width, label_height)
