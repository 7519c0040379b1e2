"""
Geometry primitives for MosaicShot.

Points and rectangles used by the selection state machine, the annotation
model and the mosaic engine. Rectangles are always stored normalized
(non-negative width/height) and use half-open bounds: a rect covers
x in [x, x + width) and y in [y, y + height).

Qt types only appear at the edges through the conversion helpers, so the
core logic can be exercised without a running QApplication.
"""

from dataclasses import dataclass
from typing import Union

from PySide6.QtCore import QPointF, QRect, QRectF

Number = Union[int, float]


@dataclass(frozen=True)
class Point:
    """A 2D point in either screen or session-local coordinates."""
    x: Number
    y: Number

    def translated(self, dx: Number, dy: Number) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def to_qpointf(self) -> QPointF:
        return QPointF(self.x, self.y)

    @classmethod
    def from_qpointf(cls, point: QPointF) -> "Point":
        """Convert a Qt point, truncating to whole pixels."""
        return cls(int(point.x()), int(point.y()))


@dataclass(frozen=True)
class Rect:
    """
    Normalized rectangle.

    Build one through normalize() or Rect.from_points() when the corners
    may come in any order; the constructor trusts its arguments.
    """
    x: Number
    y: Number
    width: Number
    height: Number

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Rect must be normalized, got width={self.width} height={self.height}"
            )

    @classmethod
    def from_points(cls, p1: Point, p2: Point) -> "Rect":
        return normalize(p1, p2)

    @property
    def left(self) -> Number:
        return self.x

    @property
    def top(self) -> Number:
        return self.y

    @property
    def right(self) -> Number:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> Number:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def top_left(self) -> Point:
        return Point(self.x, self.y)

    @property
    def top_right(self) -> Point:
        return Point(self.right, self.y)

    @property
    def bottom_right(self) -> Point:
        return Point(self.right, self.bottom)

    @property
    def bottom_left(self) -> Point:
        return Point(self.x, self.bottom)

    @property
    def center(self) -> Point:
        return Point((self.x + self.right) / 2, (self.y + self.bottom) / 2)

    @property
    def area(self) -> Number:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, point: Point) -> bool:
        return contains(self, point)

    def translated(self, dx: Number, dy: Number) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def united(self, other: "Rect") -> "Rect":
        """Smallest rect covering both; empty rects are ignored."""
        if self.is_empty():
            return other
        if other.is_empty():
            return self
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        return Rect(
            left,
            top,
            max(self.right, other.right) - left,
            max(self.bottom, other.bottom) - top,
        )

    def to_qrect(self) -> QRect:
        return QRect(int(self.x), int(self.y), int(self.width), int(self.height))

    def to_qrectf(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)


def normalize(p1: Point, p2: Point) -> Rect:
    """Build the rect spanned by two corner points in any order."""
    return Rect(
        min(p1.x, p2.x),
        min(p1.y, p2.y),
        abs(p1.x - p2.x),
        abs(p1.y - p2.y),
    )


def intersect(a: Rect, b: Rect) -> Rect:
    """
    Intersect two rectangles.

    Disjoint inputs produce an empty rect (zero width or height) anchored
    at the would-be overlap origin; check is_empty() before sampling.
    """
    left = max(a.x, b.x)
    top = max(a.y, b.y)
    right = min(a.right, b.right)
    bottom = min(a.bottom, b.bottom)
    return Rect(left, top, max(0, right - left), max(0, bottom - top))


def contains(rect: Rect, point: Point) -> bool:
    """Half-open containment test."""
    return (
        rect.x <= point.x < rect.x + rect.width
        and rect.y <= point.y < rect.y + rect.height
    )
