"""
Text measurement for MosaicShot text annotations.

Text bounds depend on glyph metrics, so they are measured on demand from
the content and font every time they are needed and never cached.
"""

import math
from dataclasses import dataclass
from typing import Protocol, Tuple

from PySide6.QtGui import QFont, QFontMetrics

# Size reported for empty content (placeholder box while typing)
EMPTY_TEXT_SIZE: Tuple[int, int] = (100, 20)


@dataclass(frozen=True)
class FontDescriptor:
    """Font used to draw and measure a text annotation."""
    family: str = "Arial"
    point_size: int = 12
    bold: bool = False

    def to_qfont(self) -> QFont:
        font = QFont(self.family)
        font.setPointSize(self.point_size)
        font.setBold(self.bold)
        return font


class TextMeasurer(Protocol):
    """Returns the pixel (width, height) of content drawn in font."""

    def measure(self, content: str, font: FontDescriptor) -> Tuple[int, int]:
        ...


class QtTextMeasurer:
    """
    TextMeasurer backed by QFontMetrics.

    Requires a QGuiApplication. Multi-line content is measured as the
    widest line by line spacing times the line count.
    """

    def measure(self, content: str, font: FontDescriptor) -> Tuple[int, int]:
        if not content:
            return EMPTY_TEXT_SIZE

        metrics = QFontMetrics(font.to_qfont())
        lines = content.split("\n")
        width = max(metrics.horizontalAdvance(line) for line in lines)
        height = metrics.lineSpacing() * len(lines)
        return math.ceil(width), math.ceil(height)
