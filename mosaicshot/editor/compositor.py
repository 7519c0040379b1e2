"""
Render compositor for MosaicShot.

compose() produces the session image: base bitmap, committed operations
in stack order, the in-progress operation and the text being typed, plus
(optionally) the editing decorations. The exported image is the same
pass with decorations off.

Mosaic strokes are replayed on the working copy by the mosaic engine,
so they pixelate whatever was painted beneath them. The captured base
bitmap is never touched.

compose_frame() paints the whole overlay frame around it: frozen screen,
dim layer, live marquee, size label and magnifier.
"""

from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from PySide6.QtCore import QPointF, QRect, Qt
from PySide6.QtGui import QColor, QFont, QFontMetrics, QImage, QPainter, QPen

from mosaicshot.core.geometry import Point, Rect
from mosaicshot.core.magnifier import (
    MAGNIFIER_SIZE,
    format_size,
    magnifier_panel_rect,
    sample_magnifier,
    size_label_rect,
)
from mosaicshot.core.pixel_buffer import PixelBuffer
from mosaicshot.core.selection import Idle, SelectionState, selection_rect
from mosaicshot.editor.annotations import (
    AnnotationType,
    DrawOperation,
    EllipseOperation,
    MosaicOperation,
    RectangleOperation,
    TextOperation,
)
from mosaicshot.editor.mosaic import replay_mosaic
from mosaicshot.editor.text_metrics import TextMeasurer
from mosaicshot.services.logging_service import get_logger

if TYPE_CHECKING:
    from mosaicshot.editor.session import EditingSession

# ─── Overlay appearance ───────────────────────────────────────────────────────

DIM_COLOR = QColor(128, 128, 128, 128)
MARQUEE_COLOR = QColor(173, 216, 230)  # Light blue
MARQUEE_WIDTH = 3
SESSION_BORDER_COLOR = QColor(127, 255, 0)  # Chartreuse
SESSION_BORDER_WIDTH = 3
SELECTED_TEXT_COLOR = QColor(0, 0, 255)
TEXT_ENTRY_BORDER_COLOR = QColor(0, 0, 0)
HANDLE_COLOR = QColor(255, 255, 255)
HANDLE_SIZE = 10
SIZE_LABEL_BACKGROUND = QColor(0, 0, 0)
SIZE_LABEL_FONT = ("Arial", 10)
MAGNIFIER_BACKGROUND = QColor(0, 0, 0)
MAGNIFIER_CROSSHAIR = QColor(255, 0, 0)
MAGNIFIER_FONT = ("Arial", 8)


def _dashed_pen(color: QColor, width: int) -> QPen:
    pen = QPen(color, width)
    pen.setStyle(Qt.PenStyle.DashLine)
    return pen


class _Canvas:
    """
    Working image plus a lazily opened painter.

    Painter passes and pixel passes alternate: a pixel pass closes the
    painter, edits a PixelBuffer copy and swaps the image back in.
    """

    def __init__(self, image: QImage) -> None:
        self.image = image
        self._painter: Optional[QPainter] = None

    def painter(self) -> QPainter:
        if self._painter is None:
            self._painter = QPainter(self.image)
            self._painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            self._painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        return self._painter

    def pixel_buffer(self) -> PixelBuffer:
        self.end()
        return PixelBuffer.from_qimage(self.image)

    def replace(self, buffer: PixelBuffer) -> None:
        self.image = buffer.to_qimage()

    def end(self) -> None:
        if self._painter is not None:
            self._painter.end()
            self._painter = None


class Compositor:
    """
    Paints sessions and overlay frames.

    Every operation type is rendered by exactly one function looked up in
    self._renderers.
    """

    def __init__(self, measurer: TextMeasurer) -> None:
        self._logger = get_logger(__name__)
        self._measurer = measurer
        self._renderers: Dict[AnnotationType, Callable[[_Canvas, DrawOperation, Rect], None]] = {
            AnnotationType.RECTANGLE: self._render_rectangle,
            AnnotationType.ELLIPSE: self._render_ellipse,
            AnnotationType.TEXT: self._render_text,
            AnnotationType.MOSAIC: self._render_mosaic,
        }

    # ─── Session image ────────────────────────────────────────────────────

    def compose(self, session: "EditingSession", decorations: bool = True) -> QImage:
        """
        Render a session.

        Args:
            session: The session to render.
            decorations: Draw resize handles and the selection/text-entry
                boxes. Off for the exported image.
        """
        return self._compose(session, decorations=decorations, handles=decorations)

    def _compose(self, session: "EditingSession", decorations: bool, handles: bool) -> QImage:
        canvas = _Canvas(session.base.to_qimage())
        if canvas.image.isNull():
            return canvas.image

        for operation in self._paint_list(session):
            self._renderers[operation.annotation_type](canvas, operation, session.bounds)

        if decorations:
            self._draw_decorations(canvas.painter(), session, handles)

        canvas.end()
        return canvas.image

    def _paint_list(self, session: "EditingSession") -> List[DrawOperation]:
        operations: List[DrawOperation] = list(session.operations)
        if session.model.in_progress is not None:
            operations.append(session.model.in_progress)
        entry = session.text_entry
        if entry is not None and entry.content:
            operations.append(entry.to_operation())
        return operations

    # ─── Operation renderers ──────────────────────────────────────────────

    def _render_rectangle(self, canvas: _Canvas, operation: RectangleOperation, bounds: Rect) -> None:
        rect = operation.bounds
        if rect.is_empty():
            return
        painter = canvas.painter()
        painter.setPen(QPen(operation.stroke_color, operation.thickness))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(rect.to_qrectf())

    def _render_ellipse(self, canvas: _Canvas, operation: EllipseOperation, bounds: Rect) -> None:
        rect = operation.bounds
        if rect.is_empty():
            return
        painter = canvas.painter()
        painter.setPen(QPen(operation.stroke_color, operation.thickness))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(rect.to_qrectf())

    def _render_text(self, canvas: _Canvas, operation: TextOperation, bounds: Rect) -> None:
        if not operation.content:
            return
        painter = canvas.painter()
        font = operation.font.to_qfont()
        metrics = QFontMetrics(font)
        painter.setFont(font)
        painter.setPen(operation.color)

        # position is the top-left of the box, drawText wants a baseline
        y = operation.position.y + metrics.ascent()
        for line in operation.content.split("\n"):
            painter.drawText(QPointF(operation.position.x, y), line)
            y += metrics.lineSpacing()

    def _render_mosaic(self, canvas: _Canvas, operation: MosaicOperation, bounds: Rect) -> None:
        buffer = canvas.pixel_buffer()
        if replay_mosaic(buffer, operation, bounds):
            canvas.replace(buffer)

    # ─── Decorations ──────────────────────────────────────────────────────

    def _draw_decorations(self, painter: QPainter, session: "EditingSession", handles: bool) -> None:
        painter.setBrush(Qt.BrushStyle.NoBrush)

        selected = session.model.selected_text
        if selected is not None:
            painter.setPen(_dashed_pen(SELECTED_TEXT_COLOR, 1))
            painter.drawRect(selected.measured_bounds(self._measurer).to_qrectf())

        if session.text_entry is not None:
            painter.setPen(_dashed_pen(TEXT_ENTRY_BORDER_COLOR, 1))
            painter.drawRect(session.text_entry_box().to_qrectf())

        if handles:
            self._draw_handles(painter, session.handle_points())

    def _draw_handles(self, painter: QPainter, points: List[Point], offset: Point = Point(0, 0)) -> None:
        half = HANDLE_SIZE // 2
        for point in points:
            painter.fillRect(
                QRect(
                    int(point.x + offset.x) - half,
                    int(point.y + offset.y) - half,
                    HANDLE_SIZE,
                    HANDLE_SIZE,
                ),
                HANDLE_COLOR,
            )

    # ─── Overlay frame ────────────────────────────────────────────────────

    def compose_frame(
        self,
        screen_image: QImage,
        selection_state: SelectionState,
        session: Optional["EditingSession"] = None,
        hover: Optional[Point] = None,
        screen_buffer: Optional[PixelBuffer] = None,
    ) -> QImage:
        """
        Render the full-screen overlay frame.

        Args:
            screen_image: The frozen screen capture.
            selection_state: Current selection machine state.
            session: Active editing session, if any.
            hover: Last pointer position, for the magnifier.
            screen_buffer: Pixel access to the screen, for the magnifier.
        """
        frame = screen_image.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)
        if frame.isNull():
            return frame

        screen_rect = Rect(0, 0, frame.width(), frame.height())
        live_rect = selection_rect(selection_state)

        painter = QPainter(frame)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)

        if live_rect is not None:
            painter.setPen(_dashed_pen(MARQUEE_COLOR, MARQUEE_WIDTH))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(live_rect.to_qrect())
            self._draw_size_label(painter, live_rect, screen_rect)
        else:
            painter.fillRect(screen_rect.to_qrect(), DIM_COLOR)

        if session is not None and live_rect is None:
            rect = session.rect
            painter.drawImage(QPointF(rect.x, rect.y), self._compose(session, decorations=True, handles=False))
            painter.setPen(_dashed_pen(SESSION_BORDER_COLOR, SESSION_BORDER_WIDTH))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(rect.to_qrect())
            self._draw_handles(painter, session.handle_points(), offset=rect.top_left)
            self._draw_size_label(painter, rect, screen_rect)

        if (
            session is None
            and isinstance(selection_state, Idle)
            and hover is not None
            and screen_buffer is not None
        ):
            self._draw_magnifier(painter, screen_buffer, hover, screen_rect)

        painter.end()
        return frame

    def _draw_size_label(self, painter: QPainter, rect: Rect, screen_rect: Rect) -> None:
        text = format_size(rect)
        font = QFont(*SIZE_LABEL_FONT)
        metrics = QFontMetrics(font)
        label = size_label_rect(
            rect, (metrics.horizontalAdvance(text), metrics.height()), screen_rect
        )
        painter.fillRect(label.to_qrect(), SIZE_LABEL_BACKGROUND)
        painter.setFont(font)
        painter.setPen(QColor(255, 255, 255))
        painter.drawText(label.to_qrect(), Qt.AlignmentFlag.AlignCenter, text)

    def _draw_magnifier(
        self,
        painter: QPainter,
        screen_buffer: PixelBuffer,
        hover: Point,
        screen_rect: Rect,
    ) -> None:
        sample = sample_magnifier(screen_buffer, hover)
        if sample.capture_rect.is_empty():
            return

        panel = magnifier_panel_rect(hover, screen_rect)
        zoom_area = QRect(int(panel.x), int(panel.y), MAGNIFIER_SIZE, MAGNIFIER_SIZE)

        zoomed = screen_buffer.copy_region(sample.capture_rect).to_qimage().scaled(
            MAGNIFIER_SIZE,
            MAGNIFIER_SIZE,
            Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.FastTransformation,
        )
        painter.fillRect(panel.to_qrect(), MAGNIFIER_BACKGROUND)
        painter.drawImage(zoom_area.topLeft(), zoomed)

        center_x = zoom_area.x() + MAGNIFIER_SIZE // 2
        center_y = zoom_area.y() + MAGNIFIER_SIZE // 2
        painter.setPen(QPen(MAGNIFIER_CROSSHAIR, 1))
        painter.drawLine(center_x, zoom_area.top(), center_x, zoom_area.top() + MAGNIFIER_SIZE)
        painter.drawLine(zoom_area.left(), center_y, zoom_area.left() + MAGNIFIER_SIZE, center_y)

        font = QFont(*MAGNIFIER_FONT)
        metrics = QFontMetrics(font)
        painter.setFont(font)
        painter.setPen(QColor(255, 255, 255))
        y = zoom_area.top() + MAGNIFIER_SIZE + 5 + metrics.ascent()
        for line in sample.info_lines():
            painter.drawText(QPointF(zoom_area.left() + 5, y), line)
            y += metrics.lineSpacing()
