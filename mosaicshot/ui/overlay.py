"""
Fullscreen capture overlay for MosaicShot.

The screen is captured first; this widget then shows the frozen
snapshot fullscreen and forwards mouse and keyboard input to a
CaptureController. It owns no editing logic of its own: every frame is
rendered by the controller, and the exported image is copied to the
clipboard when the controller emits finished.

Keys:
    R / E / T / M   Rectangle, Ellipse, Text, Mosaic tool
    [ / ]           Smaller / larger mosaic blocks
    Ctrl+Z          Undo
    Enter           Commit typed text, or finish and copy
    Shift+Enter     New line in the text being typed
    Escape          Leave the tool
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QClipboard, QCursor, QImage, QKeyEvent, QMouseEvent, QPainter
from PySide6.QtWidgets import QApplication, QWidget

from mosaicshot.core.controller import CaptureController
from mosaicshot.core.geometry import Point
from mosaicshot.core.selection import PointerButton
from mosaicshot.editor.mosaic import MIN_BLOCK_SIZE
from mosaicshot.editor.session import EditingSession
from mosaicshot.editor.tools import ToolType
from mosaicshot.services.logging_service import get_logger

TOOL_KEYS = {
    Qt.Key.Key_R: ToolType.RECTANGLE,
    Qt.Key.Key_E: ToolType.ELLIPSE,
    Qt.Key.Key_T: ToolType.TEXT,
    Qt.Key.Key_M: ToolType.MOSAIC,
}

BLOCK_SIZE_STEP = MIN_BLOCK_SIZE

_BUTTONS = {
    Qt.MouseButton.LeftButton: PointerButton.PRIMARY,
    Qt.MouseButton.RightButton: PointerButton.SECONDARY,
}


class CaptureOverlay(QWidget):
    """
    Fullscreen overlay widget hosting a capture.

    Signals:
        capture_completed: Emitted with the exported QImage.
        capture_cancelled: Emitted when the user leaves without exporting.
    """

    capture_completed = Signal(QImage)
    capture_cancelled = Signal()

    def __init__(self, controller: CaptureController, parent: Optional[QWidget] = None) -> None:
        """
        Initialize the overlay.

        Args:
            controller: The controller driving this capture.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._controller = controller
        self._completed = False

        self._controller.repaint_requested.connect(self.update)
        self._controller.session_started.connect(self._on_session_started)
        self._controller.session_ended.connect(self._on_session_ended)
        self._controller.finished.connect(self._on_finished)
        self._controller.exit_requested.connect(self._on_exit_requested)

        self._setup_window()

    def _setup_window(self) -> None:
        """Configure the overlay window properties."""
        # Frameless, always on top
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.BypassWindowManagerHint
        )

        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)

        # Crosshair cursor for precise selection
        self.setCursor(QCursor(Qt.CursorShape.CrossCursor))

        # Track the pointer even without a button held (magnifier)
        self.setMouseTracking(True)

        # Strong focus for keyboard input
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    @property
    def controller(self) -> CaptureController:
        return self._controller

    def start(self) -> None:
        """Show the overlay fullscreen and grab input."""
        screen = self._controller.screen
        self.setGeometry(0, 0, screen.width, screen.height)

        self.showFullScreen()
        self.raise_()
        self.activateWindow()
        self.setFocus()

        # Grab mouse and keyboard for reliable input
        self.grabMouse()
        self.grabKeyboard()

        self._logger.info(f"Capture overlay shown: {screen.width}x{screen.height}")

    # ─── Painting ─────────────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.drawImage(0, 0, self._controller.render_frame())
        painter.end()

    # ─── Mouse ────────────────────────────────────────────────────────────

    def mousePressEvent(self, event: QMouseEvent) -> None:
        button = _BUTTONS.get(event.button())
        if button is None:
            super().mousePressEvent(event)
            return
        self._controller.pointer_down(Point.from_qpointf(event.position()), button)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        self._controller.pointer_move(Point.from_qpointf(event.position()))

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        button = _BUTTONS.get(event.button())
        if button is None:
            super().mouseReleaseEvent(event)
            return
        self._controller.pointer_up(Point.from_qpointf(event.position()), button)

    # ─── Keyboard ─────────────────────────────────────────────────────────

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press events."""
        key = event.key()
        modifiers = event.modifiers()

        if key == Qt.Key.Key_Escape:
            self._logger.info("Capture cancelled by ESC key")
            self._controller.cancel()
            return

        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            if self._controller.text_entry_active:
                if modifiers & Qt.KeyboardModifier.ShiftModifier:
                    self._controller.type_text("\n")
                else:
                    self._controller.end_text_entry()
            else:
                self._controller.finish()
            return

        if key == Qt.Key.Key_Z and modifiers & Qt.KeyboardModifier.ControlModifier:
            self._controller.undo()
            return

        # While typing, every printable key is text
        if self._controller.text_entry_active:
            if key == Qt.Key.Key_Backspace:
                self._controller.backspace()
                return
            text = event.text()
            if text and text.isprintable():
                self._controller.type_text(text)
                return

        if key in TOOL_KEYS:
            self._controller.set_tool(TOOL_KEYS[key])
            self._logger.debug(f"Tool selected: {TOOL_KEYS[key].name}")
            return

        if key == Qt.Key.Key_BracketLeft:
            self._controller.adjust_block_size(-BLOCK_SIZE_STEP)
            return
        if key == Qt.Key.Key_BracketRight:
            self._controller.adjust_block_size(BLOCK_SIZE_STEP)
            return

        super().keyPressEvent(event)

    # ─── Controller signals ───────────────────────────────────────────────

    def _on_session_started(self, session: EditingSession) -> None:
        self.setCursor(QCursor(Qt.CursorShape.ArrowCursor))
        self.update()

    def _on_session_ended(self) -> None:
        self.setCursor(QCursor(Qt.CursorShape.CrossCursor))
        self.update()

    def _on_finished(self, image: QImage) -> None:
        self._completed = True
        self._copy_to_clipboard(image)
        self._release_grabs()
        self.capture_completed.emit(image)
        self.close()

    def _on_exit_requested(self) -> None:
        self._release_grabs()
        self.capture_cancelled.emit()
        self.close()

    def _copy_to_clipboard(self, image: QImage) -> None:
        """
        Copy the exported image to system clipboard.

        Args:
            image: The image to copy.
        """
        clipboard: QClipboard = QApplication.clipboard()
        clipboard.setImage(image)
        self._logger.info(f"Capture copied to clipboard: {image.width()}x{image.height()}")

    def _release_grabs(self) -> None:
        """Release mouse and keyboard grabs."""
        self.releaseMouse()
        self.releaseKeyboard()

    def closeEvent(self, event) -> None:
        """Ensure grabs are released on close."""
        self._release_grabs()
        if not self._completed:
            self._logger.debug("Overlay closed without export")
        super().closeEvent(event)
