"""
Editing session for MosaicShot.

An EditingSession lives from the moment a selection rectangle is
committed until it is finished, cancelled, reset or handed back to the
selection machine through a resize handle. It owns the captured base
bitmap for that rectangle, the annotation model, the active tool and at
most one text entry being typed.

All points handed to a session are in session-local coordinates
(relative to the rectangle's top-left).
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from PySide6.QtGui import QColor, QImage

from mosaicshot.core.geometry import Point, Rect
from mosaicshot.core.pixel_buffer import PixelBuffer
from mosaicshot.core.selection import handle_points, hit_test_handle
from mosaicshot.editor.annotations import (
    AnnotationModel,
    AnnotationType,
    DrawOperation,
    TextOperation,
)
from mosaicshot.editor.compositor import Compositor
from mosaicshot.editor.text_metrics import FontDescriptor, QtTextMeasurer, TextMeasurer
from mosaicshot.editor.tools import ToolBase, ToolSettings, ToolType, create_tool
from mosaicshot.services.logging_service import get_logger

# Text entry box sizing
TEXT_BOX_MIN_WIDTH = 50
TEXT_BOX_MAX_WIDTH = 300
TEXT_BOX_MIN_HEIGHT = 35
TEXT_BOX_PADDING = 10


@dataclass
class TextEntry:
    """Text being typed; becomes a TextOperation when the entry ends."""
    position: Point
    content: str = ""
    font: FontDescriptor = field(default_factory=FontDescriptor)
    color: QColor = field(default_factory=lambda: QColor(255, 0, 0))

    def to_operation(self) -> TextOperation:
        return TextOperation(
            content=self.content,
            position=self.position,
            font=self.font,
            color=QColor(self.color),
        )


class EditingSession:
    """
    One annotation session over a committed rectangle.

    The base bitmap is never modified; every render starts from a copy.
    """

    def __init__(
        self,
        rect: Rect,
        base: PixelBuffer,
        operations: Iterable[DrawOperation] = (),
        measurer: Optional[TextMeasurer] = None,
        settings: Optional[ToolSettings] = None,
    ) -> None:
        self._logger = get_logger(__name__)
        self._rect = rect
        self._base = base
        self._measurer: TextMeasurer = measurer or QtTextMeasurer()
        self._model = AnnotationModel(operations, self._measurer)
        self._settings = settings or ToolSettings()
        self._tool: ToolBase = create_tool(ToolType.NONE)
        self._text_entry: Optional[TextEntry] = None
        self._compositor = Compositor(self._measurer)

        self._logger.debug(
            f"Session opened at {rect} with {len(self._model.stack)} carried operations"
        )

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def rect(self) -> Rect:
        return self._rect

    @property
    def base(self) -> PixelBuffer:
        return self._base

    @property
    def width(self) -> int:
        return self._base.width

    @property
    def height(self) -> int:
        return self._base.height

    @property
    def bounds(self) -> Rect:
        """Local rect covering the whole bitmap."""
        return self._base.rect

    @property
    def model(self) -> AnnotationModel:
        return self._model

    @property
    def measurer(self) -> TextMeasurer:
        return self._measurer

    @property
    def operations(self) -> Tuple[DrawOperation, ...]:
        return self._model.operations

    @property
    def text_entry(self) -> Optional[TextEntry]:
        return self._text_entry

    @property
    def tool(self) -> ToolBase:
        return self._tool

    @property
    def settings(self) -> ToolSettings:
        return self._settings

    # ─── Tools ────────────────────────────────────────────────────────────

    def set_tool(self, tool_type: ToolType) -> None:
        """Switch the active tool; any text entry is ended first."""
        self.end_text_entry()
        self._tool.on_deactivate(self)
        self._tool = create_tool(tool_type)
        self._model.mark_dirty()
        self._logger.debug(f"Tool changed to {self._tool.tool_type.name}")

    def set_block_size(self, size: int) -> int:
        """Set the block size for future mosaic strokes (clamped)."""
        block_size = self._settings.set_block_size(size)
        self._logger.debug(f"Mosaic block size set to {block_size}")
        return block_size

    def clamp_point(self, point: Point) -> Point:
        """Clamp point into [0, width-1] x [0, height-1]."""
        return Point(
            max(0, min(self.width - 1, point.x)),
            max(0, min(self.height - 1, point.y)),
        )

    # ─── Handles ──────────────────────────────────────────────────────────

    def handle_points(self) -> List[Point]:
        """Resize handle positions in local coordinates."""
        return handle_points(self.bounds)

    def hit_test_handle(self, point: Point) -> int:
        return hit_test_handle(self.bounds, point)

    # ─── Pointer routing ──────────────────────────────────────────────────

    def on_pointer_down(self, point: Point) -> int:
        """
        Route a primary press.

        Returns:
            The resize handle index under the pointer, or -1 when the press
            was consumed by the session. While a text entry is open every
            press is consumed.
        """
        if self._text_entry is not None:
            # A press outside the box only ends the entry
            if not self.text_entry_box().contains(point):
                self.end_text_entry()
            return -1

        handle = self.hit_test_handle(point)
        if handle >= 0:
            return handle

        self._tool.on_pointer_down(point, self)
        return -1

    def on_pointer_move(self, point: Point) -> None:
        self._tool.on_pointer_move(point, self)

    def on_pointer_up(self, point: Point) -> None:
        self._tool.on_pointer_up(point, self)

    # ─── Text entry ───────────────────────────────────────────────────────

    def begin_text_entry(self, point: Point) -> TextEntry:
        """Open a text entry with its top-left at point, ending any other one."""
        self.end_text_entry()
        # An open entry and a live shape or stroke never coexist
        self._model.discard_in_progress()
        self._text_entry = TextEntry(
            position=point,
            font=self._settings.font,
            color=QColor(self._settings.text_color),
        )
        self._model.mark_dirty()
        return self._text_entry

    def type_text(self, text: str) -> None:
        if self._text_entry is None or not text:
            return
        self._text_entry.content += text
        self._model.mark_dirty()

    def backspace(self) -> None:
        if self._text_entry is None or not self._text_entry.content:
            return
        self._text_entry.content = self._text_entry.content[:-1]
        self._model.mark_dirty()

    def end_text_entry(self) -> Optional[TextOperation]:
        """
        Close the text entry.

        Non-empty content is committed as a TextOperation; empty content is
        dropped.
        """
        entry = self._text_entry
        if entry is None:
            return None

        self._text_entry = None
        self._model.mark_dirty()
        if not entry.content:
            return None

        self._model.begin_operation(
            AnnotationType.TEXT,
            entry.position,
            content=entry.content,
            font=entry.font,
            color=QColor(entry.color),
        )
        operation = self._model.commit()
        self._logger.debug(f"Text committed: {entry.content!r}")
        return operation

    def text_entry_box(self) -> Rect:
        """Box drawn around the text entry, sized to its content."""
        if self._text_entry is None:
            return Rect(0, 0, 0, 0)

        width, height = self._measurer.measure(
            self._text_entry.content, self._text_entry.font
        )
        box_width = max(TEXT_BOX_MIN_WIDTH, min(TEXT_BOX_MAX_WIDTH, width + TEXT_BOX_PADDING))
        box_height = max(TEXT_BOX_MIN_HEIGHT, height + TEXT_BOX_PADDING)
        return Rect(self._text_entry.position.x, self._text_entry.position.y, box_width, box_height)

    # ─── Undo / rendering ─────────────────────────────────────────────────

    def undo(self) -> Optional[DrawOperation]:
        return self._model.undo()

    def take_dirty(self) -> bool:
        return self._model.take_dirty()

    def render(self, decorations: bool = True) -> QImage:
        """Composite the base bitmap with every operation."""
        return self._compositor.compose(self, decorations)

    def finish(self) -> QImage:
        """End any text entry and render the exported image."""
        self.end_text_entry()
        image = self.render(decorations=False)
        self._logger.info(f"Session finished: {image.width()}x{image.height()} image")
        return image
