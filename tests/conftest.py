"""
Shared pytest fixtures for MosaicShot tests
"""
import os

# Must be set before the first Qt application object is created
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

from mosaicshot.core.pixel_buffer import PixelBuffer
from mosaicshot.editor.text_metrics import EMPTY_TEXT_SIZE


class FakeMeasurer:
    """Deterministic measurer: fixed advance per character and height per line"""

    def __init__(self, char_width=8, line_height=16):
        self.char_width = char_width
        self.line_height = line_height

    def measure(self, content, font):
        if not content:
            return EMPTY_TEXT_SIZE
        lines = content.split("\n")
        return (
            max(len(line) for line in lines) * self.char_width,
            len(lines) * self.line_height,
        )


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    """One application for the whole run (fonts, painters, widgets, clipboard)"""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def measurer():
    """Text measurer where "hello" is 40 x 16"""
    return FakeMeasurer()


@pytest.fixture
def black_base():
    """200 x 150 opaque black bitmap"""
    return PixelBuffer.filled(200, 150, (0, 0, 0, 255))


@pytest.fixture
def screen():
    """400 x 300 frozen screen in a flat colour"""
    return PixelBuffer.filled(400, 300, (30, 60, 90, 255))
