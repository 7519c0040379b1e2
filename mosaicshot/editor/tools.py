"""
Tool framework and implementations for MosaicShot editor.

This module provides the tool system for an editing session. Each tool
turns pointer events (in session-local coordinates) into changes on the
session's annotation model.

Tools:
- NoTool: Nothing selected yet; pointer input is ignored
- RectangleTool: Draw rectangle outlines
- EllipseTool: Draw ellipse outlines
- TextTool: Type new text or drag existing text
- MosaicTool: Pixelate along the pointer path
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Optional

from PySide6.QtGui import QColor

from mosaicshot.core.geometry import Point
from mosaicshot.editor.annotations import AnnotationType
from mosaicshot.editor.mosaic import DEFAULT_BLOCK_SIZE, clamp_block_size
from mosaicshot.editor.text_metrics import FontDescriptor
from mosaicshot.services.logging_service import get_logger

if TYPE_CHECKING:
    from mosaicshot.editor.session import EditingSession
    from mosaicshot.services.config_service import ConfigService


class ToolType(Enum):
    """Enum for tool types."""
    NONE = auto()
    RECTANGLE = auto()
    ELLIPSE = auto()
    TEXT = auto()
    MOSAIC = auto()

    @classmethod
    def from_name(cls, name: str) -> "ToolType":
        """Parse a config value such as "mosaic"; unknown names give NONE."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return cls.NONE


@dataclass
class ToolSettings:
    """
    Style and size settings applied to new operations.

    block_size is clamped whenever it is assigned through set_block_size()
    or the constructor, so the mosaic engine never sees an out-of-range
    value.
    """
    stroke_color: QColor = field(default_factory=lambda: QColor(255, 0, 0))
    thickness: int = 2
    text_color: QColor = field(default_factory=lambda: QColor(255, 0, 0))
    font: FontDescriptor = field(default_factory=FontDescriptor)
    block_size: int = DEFAULT_BLOCK_SIZE

    def __post_init__(self) -> None:
        self.block_size = clamp_block_size(self.block_size)

    def set_block_size(self, size: int) -> int:
        self.block_size = clamp_block_size(size)
        return self.block_size

    @classmethod
    def from_config(cls, config: "ConfigService") -> "ToolSettings":
        return cls(
            stroke_color=config.stroke_color,
            thickness=config.stroke_thickness,
            text_color=config.text_color,
            font=FontDescriptor(config.font_family, config.font_size),
            block_size=config.mosaic_block_size,
        )


class ToolBase(ABC):
    """
    Base class for all tools.

    Tools receive pointer events from the editing session and manipulate
    its annotation model accordingly.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""
        pass

    @abstractmethod
    def on_pointer_down(self, pos: Point, session: "EditingSession") -> None:
        """Handle primary button press."""
        pass

    @abstractmethod
    def on_pointer_move(self, pos: Point, session: "EditingSession") -> None:
        """Handle pointer move with the primary button held."""
        pass

    @abstractmethod
    def on_pointer_up(self, pos: Point, session: "EditingSession") -> None:
        """Handle primary button release."""
        pass

    def on_deactivate(self, session: "EditingSession") -> None:
        """Called when tool is deactivated (another tool selected)."""
        pass


class NoTool(ToolBase):
    """Placeholder before the user picks a tool."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.NONE

    def on_pointer_down(self, pos: Point, session: "EditingSession") -> None:
        pass

    def on_pointer_move(self, pos: Point, session: "EditingSession") -> None:
        pass

    def on_pointer_up(self, pos: Point, session: "EditingSession") -> None:
        pass


class ShapeTool(ToolBase):
    """
    Shared drag-to-draw behaviour for rectangle and ellipse.

    The live endpoint is clamped to the session bitmap.
    """

    annotation_type: AnnotationType

    def on_pointer_down(self, pos: Point, session: "EditingSession") -> None:
        settings = session.settings
        session.model.begin_operation(
            self.annotation_type,
            pos,
            stroke_color=QColor(settings.stroke_color),
            thickness=settings.thickness,
        )

    def on_pointer_move(self, pos: Point, session: "EditingSession") -> None:
        if session.model.in_progress is not None:
            session.model.update_in_progress(session.clamp_point(pos))

    def on_pointer_up(self, pos: Point, session: "EditingSession") -> None:
        if session.model.in_progress is not None:
            session.model.commit()

    def on_deactivate(self, session: "EditingSession") -> None:
        session.model.discard_in_progress()


class RectangleTool(ShapeTool):
    annotation_type = AnnotationType.RECTANGLE

    @property
    def tool_type(self) -> ToolType:
        return ToolType.RECTANGLE


class EllipseTool(ShapeTool):
    annotation_type = AnnotationType.ELLIPSE

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ELLIPSE


class TextTool(ToolBase):
    """
    Text tool.

    - Press on existing text: pick it up and drag it
    - Press elsewhere: open a text entry at the pointer
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.TEXT

    def on_pointer_down(self, pos: Point, session: "EditingSession") -> None:
        if session.model.select_text(pos) is not None:
            return
        if session.text_entry is None:
            session.begin_text_entry(pos)

    def on_pointer_move(self, pos: Point, session: "EditingSession") -> None:
        session.model.drag_selected_text(pos)

    def on_pointer_up(self, pos: Point, session: "EditingSession") -> None:
        session.model.release_selected_text()

    def on_deactivate(self, session: "EditingSession") -> None:
        session.model.release_selected_text()
        session.end_text_entry()


class MosaicTool(ToolBase):
    """Pixelate along the pointer path; one stroke per press."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.MOSAIC

    def on_pointer_down(self, pos: Point, session: "EditingSession") -> None:
        session.model.begin_operation(
            AnnotationType.MOSAIC, pos, block_size=session.settings.block_size
        )

    def on_pointer_move(self, pos: Point, session: "EditingSession") -> None:
        if session.model.in_progress is not None:
            session.model.update_in_progress(pos)

    def on_pointer_up(self, pos: Point, session: "EditingSession") -> None:
        if session.model.in_progress is None:
            return
        stroke = session.model.commit()
        if stroke is not None:
            self._logger.debug(
                f"Mosaic stroke committed with {len(stroke.sample_points)} samples"
            )

    def on_deactivate(self, session: "EditingSession") -> None:
        session.model.discard_in_progress()


_TOOLS = {
    ToolType.NONE: NoTool,
    ToolType.RECTANGLE: RectangleTool,
    ToolType.ELLIPSE: EllipseTool,
    ToolType.TEXT: TextTool,
    ToolType.MOSAIC: MosaicTool,
}


def create_tool(tool_type: Optional[ToolType]) -> ToolBase:
    """
    Create a tool instance for the given type.

    Args:
        tool_type: The type of tool to create (None means NONE).

    Returns:
        A new tool instance.
    """
    return _TOOLS[tool_type or ToolType.NONE]()
