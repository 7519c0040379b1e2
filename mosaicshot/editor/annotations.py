"""
Annotation models for MosaicShot editor.

This module provides the data model for everything drawn on top of a
captured region:

- RectangleOperation: Outlined rectangle between two drag points
- EllipseOperation: Outlined ellipse inscribed in the drag rectangle
- TextOperation: Text anchored at its top-left position
- MosaicOperation: A stroke of pixelated blocks (replayed, never burnt in)

Operations are plain dataclasses tagged with an AnnotationType; painting
is done by the compositor, which dispatches on that tag. Committed
operations live in an append-only OperationStack whose order is the paint
order. AnnotationModel adds the in-progress operation, undo, text
hit-testing and text drag-repositioning on top of the stack.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import ClassVar, Iterable, Iterator, List, Optional, Tuple, Union

from PySide6.QtGui import QColor

from mosaicshot.core.errors import AnnotationStateError
from mosaicshot.core.geometry import Point, Rect, normalize
from mosaicshot.editor.mosaic import DEFAULT_BLOCK_SIZE, block_rect
from mosaicshot.editor.text_metrics import FontDescriptor, QtTextMeasurer, TextMeasurer
from mosaicshot.services.logging_service import get_logger


class AnnotationType(Enum):
    """Enum for annotation types."""
    RECTANGLE = auto()
    ELLIPSE = auto()
    TEXT = auto()
    MOSAIC = auto()


def _default_color() -> QColor:
    return QColor(255, 0, 0)


@dataclass
class RectangleOperation:
    start: Point
    end: Point
    stroke_color: QColor = field(default_factory=_default_color)
    thickness: int = 2

    annotation_type: ClassVar[AnnotationType] = AnnotationType.RECTANGLE

    @property
    def bounds(self) -> Rect:
        return normalize(self.start, self.end)

    def translated(self, dx: int, dy: int) -> "RectangleOperation":
        return replace(
            self,
            start=self.start.translated(dx, dy),
            end=self.end.translated(dx, dy),
            stroke_color=QColor(self.stroke_color),
        )


@dataclass
class EllipseOperation:
    start: Point
    end: Point
    stroke_color: QColor = field(default_factory=_default_color)
    thickness: int = 2

    annotation_type: ClassVar[AnnotationType] = AnnotationType.ELLIPSE

    @property
    def bounds(self) -> Rect:
        return normalize(self.start, self.end)

    def translated(self, dx: int, dy: int) -> "EllipseOperation":
        return replace(
            self,
            start=self.start.translated(dx, dy),
            end=self.end.translated(dx, dy),
            stroke_color=QColor(self.stroke_color),
        )


@dataclass
class TextOperation:
    """
    Text annotation.

    Bounds are not stored: they depend on glyph metrics and are measured
    from content and font whenever they are needed.
    """
    content: str
    position: Point
    font: FontDescriptor = field(default_factory=FontDescriptor)
    color: QColor = field(default_factory=_default_color)

    annotation_type: ClassVar[AnnotationType] = AnnotationType.TEXT

    def measured_bounds(self, measurer: TextMeasurer) -> Rect:
        width, height = measurer.measure(self.content, self.font)
        return Rect(self.position.x, self.position.y, width, height)

    def translated(self, dx: int, dy: int) -> "TextOperation":
        return replace(
            self,
            position=self.position.translated(dx, dy),
            color=QColor(self.color),
        )


@dataclass
class MosaicOperation:
    """A mosaic stroke: one block per recorded pointer sample."""
    sample_points: List[Point] = field(default_factory=list)
    block_size: int = DEFAULT_BLOCK_SIZE

    annotation_type: ClassVar[AnnotationType] = AnnotationType.MOSAIC

    @property
    def bounds(self) -> Rect:
        """Union of the nominal blocks (before clipping)."""
        result = Rect(0, 0, 0, 0)
        for point in self.sample_points:
            result = result.united(block_rect(point, self.block_size))
        return result

    def translated(self, dx: int, dy: int) -> "MosaicOperation":
        return replace(
            self,
            sample_points=[p.translated(dx, dy) for p in self.sample_points],
        )


DrawOperation = Union[RectangleOperation, EllipseOperation, TextOperation, MosaicOperation]


def create_operation(
    annotation_type: AnnotationType,
    start: Point,
    **attributes,
) -> DrawOperation:
    """
    Create a fresh operation of the given type anchored at start.

    Extra keyword attributes (colour, thickness, font, block_size, ...)
    are passed through to the dataclass.
    """
    if annotation_type is AnnotationType.RECTANGLE:
        return RectangleOperation(start=start, end=start, **attributes)
    if annotation_type is AnnotationType.ELLIPSE:
        return EllipseOperation(start=start, end=start, **attributes)
    if annotation_type is AnnotationType.TEXT:
        attributes.setdefault("content", "")
        return TextOperation(position=start, **attributes)
    if annotation_type is AnnotationType.MOSAIC:
        return MosaicOperation(sample_points=[start], **attributes)
    raise ValueError(f"Unknown annotation type: {annotation_type}")


class OperationStack:
    """
    Ordered, append-only sequence of committed operations.

    Index 0 is painted first (bottom of the z-order). Only the tail can be
    removed.
    """

    def __init__(self, operations: Iterable[DrawOperation] = ()) -> None:
        self._operations: List[DrawOperation] = list(operations)

    def push(self, operation: DrawOperation) -> None:
        self._operations.append(operation)

    def pop(self) -> Optional[DrawOperation]:
        """Remove and return the tail, or None when empty."""
        if not self._operations:
            return None
        return self._operations.pop()

    def clear(self) -> None:
        self._operations.clear()

    def topmost_first(self) -> Iterator[DrawOperation]:
        return reversed(self._operations)

    @property
    def operations(self) -> Tuple[DrawOperation, ...]:
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[DrawOperation]:
        return iter(self._operations)

    def __getitem__(self, index: int) -> DrawOperation:
        return self._operations[index]

    def __contains__(self, operation: object) -> bool:
        return any(op is operation for op in self._operations)


class AnnotationModel:
    """
    Committed operations plus the editing state layered on them.

    Holds at most one in-progress operation and at most one selected text
    (being dragged). Every mutation sets the dirty flag so the host knows
    to repaint.
    """

    def __init__(
        self,
        operations: Iterable[DrawOperation] = (),
        measurer: Optional[TextMeasurer] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._stack = OperationStack(operations)
        self._measurer: TextMeasurer = measurer or QtTextMeasurer()
        self._in_progress: Optional[DrawOperation] = None
        self._selected_text: Optional[TextOperation] = None
        self._drag_offset: Point = Point(0, 0)
        self._dirty = False

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def stack(self) -> OperationStack:
        return self._stack

    @property
    def operations(self) -> Tuple[DrawOperation, ...]:
        return self._stack.operations

    @property
    def in_progress(self) -> Optional[DrawOperation]:
        return self._in_progress

    @property
    def selected_text(self) -> Optional[TextOperation]:
        return self._selected_text

    @property
    def measurer(self) -> TextMeasurer:
        return self._measurer

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def take_dirty(self) -> bool:
        """Return the dirty flag and clear it."""
        dirty = self._dirty
        self._dirty = False
        return dirty

    # ─── In-progress operation ────────────────────────────────────────────

    def begin_operation(
        self,
        annotation_type: AnnotationType,
        start: Point,
        **attributes,
    ) -> DrawOperation:
        """
        Start a new in-progress operation.

        Raises:
            AnnotationStateError: If another operation is still in progress.
        """
        if self._in_progress is not None:
            raise AnnotationStateError(
                f"Cannot begin {annotation_type.name}: "
                f"{self._in_progress.annotation_type.name} still in progress"
            )

        self._in_progress = create_operation(annotation_type, start, **attributes)
        self._dirty = True
        return self._in_progress

    def update_in_progress(self, point: Point) -> None:
        """Move the live end of the in-progress operation to point."""
        operation = self._in_progress
        if operation is None:
            return

        if isinstance(operation, (RectangleOperation, EllipseOperation)):
            operation.end = point
        elif isinstance(operation, TextOperation):
            operation.position = point
        elif isinstance(operation, MosaicOperation):
            operation.sample_points.append(point)
        self._dirty = True

    def commit(self) -> Optional[DrawOperation]:
        """
        Move the in-progress operation onto the stack.

        Returns the committed operation, or None when it was an empty
        text (which is dropped).

        Raises:
            AnnotationStateError: If no operation is in progress.
        """
        operation = self._in_progress
        if operation is None:
            raise AnnotationStateError("commit() called with no operation in progress")

        self._in_progress = None
        self._dirty = True

        if isinstance(operation, TextOperation) and not operation.content:
            self._logger.debug("Dropping empty text instead of committing it")
            return None

        self._stack.push(operation)
        self._logger.debug(
            f"Committed {operation.annotation_type.name} ({len(self._stack)} on stack)"
        )
        return operation

    def discard_in_progress(self) -> None:
        if self._in_progress is not None:
            self._in_progress = None
            self._dirty = True

    # ─── Undo ─────────────────────────────────────────────────────────────

    def undo(self) -> Optional[DrawOperation]:
        """Pop the last committed operation; in-progress state is kept."""
        operation = self._stack.pop()
        if operation is None:
            return None

        if operation is self._selected_text:
            self.release_selected_text()
        self._dirty = True
        self._logger.debug(f"Undid {operation.annotation_type.name}")
        return operation

    def clear(self) -> None:
        self._stack.clear()
        self._in_progress = None
        self._selected_text = None
        self._dirty = True

    # ─── Text hit-testing and dragging ────────────────────────────────────

    def text_bounds(self, text: TextOperation) -> Rect:
        return text.measured_bounds(self._measurer)

    def hit_test_text(self, point: Point) -> Optional[TextOperation]:
        """Find the topmost committed text whose bounds contain point."""
        for operation in self._stack.topmost_first():
            if isinstance(operation, TextOperation):
                if self.text_bounds(operation).contains(point):
                    return operation
        return None

    def select_text(self, point: Point) -> Optional[TextOperation]:
        """Hit-test and, on a hit, remember the text for dragging."""
        hit = self.hit_test_text(point)
        self._selected_text = hit
        if hit is not None:
            self._drag_offset = Point(point.x - hit.position.x, point.y - hit.position.y)
            self._dirty = True
        return hit

    def drag_selected_text(self, point: Point) -> None:
        """Reposition the selected text in place, keeping the grab offset."""
        if self._selected_text is None:
            return
        self._selected_text.position = Point(
            point.x - self._drag_offset.x,
            point.y - self._drag_offset.y,
        )
        self._dirty = True

    def release_selected_text(self) -> None:
        if self._selected_text is not None:
            self._selected_text = None
            self._drag_offset = Point(0, 0)
            self._dirty = True
