"""
MosaicShot - region capture with shapes, text and mosaic.

This is the main entry point for the application.
Run with: python -m mosaicshot.app
"""

import signal
import sys
from typing import Callable

from PySide6.QtCore import QTimer
from PySide6.QtGui import QClipboard
from PySide6.QtWidgets import QApplication

from mosaicshot import __version__
from mosaicshot.core.capture_service import grab_primary_screen
from mosaicshot.core.controller import CaptureController
from mosaicshot.editor.tools import ToolSettings, ToolType
from mosaicshot.services.config_service import ConfigService
from mosaicshot.services.logging_service import get_logger, set_log_level, setup_logging
from mosaicshot.ui.overlay import CaptureOverlay

# Global app reference for signal handlers
_app: QApplication = None
_should_quit = False


def request_quit(signum, frame):
    """Handle termination signals; the Qt loop picks this up."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if _should_quit and _app:
        get_logger(__name__).info("Signal received, quitting...")
        _app.quit()


def quit_when_clipboard_released(
    clipboard: QClipboard, quit_callback: Callable[[], None]
) -> Callable[[], None]:
    """
    Call quit_callback once another application owns the clipboard.

    On X11 and Wayland the copied image is served by this process, so it
    has to stay alive until a clipboard manager or another program takes
    over.

    Returns:
        The connected slot, for disconnecting.
    """
    def on_changed() -> None:
        if clipboard.ownsClipboard():
            return
        get_logger(__name__).info("Clipboard taken over, quitting")
        quit_callback()

    clipboard.dataChanged.connect(on_changed)
    return on_changed


def main() -> int:
    """
    Main entry point for MosaicShot.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app

    setup_logging()
    logger = get_logger(__name__)
    config = ConfigService()
    set_log_level(config.log_level)

    try:
        logger.info(f"Starting MosaicShot {__version__}...")

        _app = QApplication(sys.argv)
        _app.setApplicationName("MosaicShot")
        _app.setOrganizationName("MosaicShot")
        _app.setApplicationVersion(__version__)
        # The process outlives the overlay while it serves the clipboard
        _app.setQuitOnLastWindowClosed(False)

        # Set up signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Timer to poll for quit signal (Qt event loop blocks Python signals)
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        # Capture BEFORE the overlay exists so it is not in the snapshot
        screen = grab_primary_screen()
        if screen is None:
            logger.error("Nothing to select from, exiting")
            return 1

        controller = CaptureController(
            screen,
            settings=ToolSettings.from_config(config),
            tool_type=ToolType.from_name(config.default_tool),
        )
        overlay = CaptureOverlay(controller)
        overlay.capture_cancelled.connect(_app.quit)
        overlay.capture_completed.connect(
            lambda image: quit_when_clipboard_released(_app.clipboard(), _app.quit)
        )
        overlay.start()

        logger.info("MosaicShot initialization complete. Entering event loop...")

        exit_code = _app.exec()

        logger.info(f"MosaicShot exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        # Log any unhandled exceptions
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
