"""
Capture controller for MosaicShot.

Glue between the host overlay and the core: it owns the frozen screen,
the selection state, at most one editing session and the operations
carried over when a session is handed back to selection through one of
its resize handles.

Pointer positions arrive in screen coordinates and are converted to
session-local coordinates before reaching the session. Everything runs
synchronously on the GUI thread.
"""

from typing import Optional, Tuple

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QImage

from mosaicshot.core import selection
from mosaicshot.core.capture_service import copy_region
from mosaicshot.core.errors import SessionStateError
from mosaicshot.core.geometry import Point, Rect, intersect
from mosaicshot.core.pixel_buffer import PixelBuffer
from mosaicshot.core.selection import (
    EffectKind,
    Idle,
    PointerButton,
    SelectionState,
    Transition,
)
from mosaicshot.editor.annotations import DrawOperation
from mosaicshot.editor.compositor import Compositor
from mosaicshot.editor.session import EditingSession
from mosaicshot.editor.text_metrics import QtTextMeasurer, TextMeasurer
from mosaicshot.editor.tools import ToolSettings, ToolType
from mosaicshot.services.logging_service import get_logger


class CaptureController(QObject):
    """
    Drives one capture from region selection to export.

    Signals:
        repaint_requested: The frame returned by render_frame() changed.
        session_started: Emitted with the new EditingSession.
        session_ended: The active session was finished, reset or handed off.
        finished: Emitted with the exported image.
        exit_requested: The user left the tool (Escape or secondary click
            while selecting).
    """

    repaint_requested = Signal()
    session_started = Signal(object)
    session_ended = Signal()
    finished = Signal(QImage)
    exit_requested = Signal()

    def __init__(
        self,
        screen: PixelBuffer,
        measurer: Optional[TextMeasurer] = None,
        settings: Optional[ToolSettings] = None,
        tool_type: ToolType = ToolType.NONE,
        parent: Optional[QObject] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            screen: The frozen screen capture.
            measurer: Text measurement used by sessions and rendering.
            settings: Tool settings shared by every session.
            tool_type: Tool active when a session starts.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._screen = screen
        self._screen_image = screen.to_qimage()
        self._measurer: TextMeasurer = measurer or QtTextMeasurer()
        self._settings = settings or ToolSettings()
        self._tool_type = tool_type
        self._compositor = Compositor(self._measurer)

        self._state: SelectionState = Idle()
        self._session: Optional[EditingSession] = None
        self._hover: Optional[Point] = None

        # Operations waiting for the re-committed selection after a handoff
        self._carry_over: Tuple[DrawOperation, ...] = ()
        self._carry_origin: Optional[Rect] = None

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def session(self) -> Optional[EditingSession]:
        return self._session

    @property
    def screen(self) -> PixelBuffer:
        return self._screen

    @property
    def settings(self) -> ToolSettings:
        return self._settings

    @property
    def tool_type(self) -> ToolType:
        return self._tool_type

    @property
    def carry_over(self) -> Tuple[DrawOperation, ...]:
        return self._carry_over

    @property
    def text_entry_active(self) -> bool:
        return self._session is not None and self._session.text_entry is not None

    # ─── Pointer input ────────────────────────────────────────────────────

    def pointer_down(self, point: Point, button: PointerButton) -> None:
        self._hover = point

        if self._session is None:
            self._apply(selection.on_pointer_down(self._state, point, button))
            return

        if button is PointerButton.SECONDARY:
            self.reset()
            return

        session = self._session
        local = self._to_local(point)
        if not session.rect.contains(point) and session.hit_test_handle(local) < 0:
            self._logger.debug(f"Press at {point} outside the session ignored")
            return

        handle = session.on_pointer_down(local)
        if handle >= 0:
            self._handoff(handle)
            return
        self._repaint_if_dirty()

    def pointer_move(self, point: Point) -> None:
        self._hover = point

        if self._session is None:
            transition = selection.on_pointer_move(self._state, point)
            self._apply(transition)
            if isinstance(self._state, Idle):
                # Magnifier follows the pointer
                self.repaint_requested.emit()
            return

        self._session.on_pointer_move(self._to_local(point))
        self._repaint_if_dirty()

    def pointer_up(self, point: Point, button: PointerButton) -> None:
        self._hover = point

        if self._session is None:
            self._apply(selection.on_pointer_up(self._state, point, button))
            return

        if button is PointerButton.PRIMARY:
            self._session.on_pointer_up(self._to_local(point))
            self._repaint_if_dirty()

    def cancel(self) -> None:
        """Escape: leave the tool, ending any session."""
        self._apply(selection.on_cancel(self._state))

    def reset(self) -> None:
        """Drop the session and all its operations and go back to selecting."""
        if self._session is not None:
            self._session.model.clear()
            self._end_session()
        self._clear_carry_over()
        self._state = Idle()
        self._logger.info("Editing reset")
        self.repaint_requested.emit()

    # ─── Editing commands ─────────────────────────────────────────────────

    def undo(self) -> None:
        if self._session is None:
            return
        self._session.undo()
        self._repaint_if_dirty()

    def set_tool(self, tool_type: ToolType) -> None:
        self._tool_type = tool_type
        if self._session is not None:
            self._session.set_tool(tool_type)
            self._repaint_if_dirty()

    def adjust_block_size(self, delta: int) -> int:
        """Change the mosaic block size by delta (clamped) and return it."""
        size = self._settings.block_size + delta
        if self._session is not None:
            return self._session.set_block_size(size)
        return self._settings.set_block_size(size)

    def type_text(self, text: str) -> None:
        if self._session is None:
            return
        self._session.type_text(text)
        self._repaint_if_dirty()

    def backspace(self) -> None:
        if self._session is None:
            return
        self._session.backspace()
        self._repaint_if_dirty()

    def end_text_entry(self) -> None:
        if self._session is None:
            return
        self._session.end_text_entry()
        self._repaint_if_dirty()

    def finish(self) -> Optional[QImage]:
        """
        Export the active session.

        Returns:
            The exported image, or None when no session is active.
        """
        if self._session is None:
            self._logger.debug("Finish requested with no active session")
            return None

        image = self._session.finish()
        self._end_session()
        self._clear_carry_over()
        self.finished.emit(image)
        return image

    # ─── Rendering ────────────────────────────────────────────────────────

    def render_frame(self) -> QImage:
        return self._compositor.compose_frame(
            self._screen_image,
            self._state,
            self._session,
            self._hover,
            self._screen,
        )

    # ─── Internals ────────────────────────────────────────────────────────

    def _apply(self, transition: Transition) -> None:
        self._state = transition.state

        for effect in transition.effects:
            if effect.kind is EffectKind.COMMIT_SELECTION:
                self.start_session(effect.rect)
            elif effect.kind is EffectKind.DISCARD_SELECTION:
                self._logger.debug("Empty selection discarded")
                self._clear_carry_over()
            elif effect.kind is EffectKind.EXIT_TOOL:
                self._exit()
            elif effect.kind is EffectKind.REPAINT:
                self.repaint_requested.emit()

    def start_session(self, rect: Rect) -> None:
        if self._session is not None:
            raise SessionStateError("An editing session is already active")

        clipped = intersect(rect, self._screen.rect)
        if clipped.is_empty():
            self._logger.debug(f"Selection {rect} lies outside the screen")
            self._clear_carry_over()
            return

        operations: Tuple[DrawOperation, ...] = ()
        if self._carry_origin is not None:
            dx = self._carry_origin.x - clipped.x
            dy = self._carry_origin.y - clipped.y
            operations = tuple(op.translated(dx, dy) for op in self._carry_over)
        self._clear_carry_over()

        self._session = EditingSession(
            clipped,
            copy_region(self._screen, clipped),
            operations,
            self._measurer,
            self._settings,
        )
        self._session.set_tool(self._tool_type)
        self._session.take_dirty()

        self._logger.info(
            f"Editing session started at {clipped} with {len(operations)} carried operations"
        )
        self.session_started.emit(self._session)

    def _handoff(self, handle: int) -> None:
        session = self._session
        session.end_text_entry()
        session.model.discard_in_progress()

        self._carry_over = session.operations
        self._carry_origin = session.rect
        self._end_session()

        self._state = selection.begin_handoff(self._carry_origin, handle)
        self._logger.debug(f"Handle {handle} pressed, resizing {self._carry_origin}")
        self.repaint_requested.emit()

    def _end_session(self) -> None:
        if self._session is None:
            return
        self._session = None
        self.session_ended.emit()

    def _exit(self) -> None:
        self._end_session()
        self._clear_carry_over()
        self._logger.info("Capture tool exit requested")
        self.exit_requested.emit()

    def _clear_carry_over(self) -> None:
        self._carry_over = ()
        self._carry_origin = None

    def _to_local(self, point: Point) -> Point:
        rect = self._session.rect
        return Point(point.x - rect.x, point.y - rect.y)

    def _repaint_if_dirty(self) -> None:
        if self._session is not None and self._session.take_dirty():
            self.repaint_requested.emit()
