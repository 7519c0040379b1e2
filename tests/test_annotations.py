"""
Tests for the annotation model and operation stack
"""
import pytest
from PySide6.QtGui import QColor

from mosaicshot.core.errors import AnnotationStateError
from mosaicshot.core.geometry import Point, Rect
from mosaicshot.editor.annotations import (
    AnnotationModel,
    AnnotationType,
    EllipseOperation,
    MosaicOperation,
    OperationStack,
    RectangleOperation,
    TextOperation,
    create_operation,
)


@pytest.fixture
def model(measurer):
    """Empty model with the fake measurer"""
    return AnnotationModel(measurer=measurer)


def draw(model, annotation_type, start, end, **attributes):
    """Begin, update and commit one operation"""
    model.begin_operation(annotation_type, start, **attributes)
    model.update_in_progress(end)
    return model.commit()


class TestOperations:
    """Tests for the operation dataclasses"""

    def test_rectangle_bounds_normalized(self):
        """Test bounds are normalized whatever the drag direction"""
        op = RectangleOperation(Point(50, 40), Point(10, 10))

        assert op.bounds == Rect(10, 10, 40, 30)
        assert op.annotation_type is AnnotationType.RECTANGLE

    def test_mosaic_bounds_union_of_blocks(self):
        """Test a stroke's bounds cover every block"""
        op = MosaicOperation([Point(20, 20), Point(60, 30)], 20)

        assert op.bounds == Rect(10, 10, 60, 30)

    def test_text_measured_bounds(self, measurer):
        """Test text bounds come from the measurer"""
        op = TextOperation("hello", Point(5, 5))

        assert op.measured_bounds(measurer) == Rect(5, 5, 40, 16)

    def test_translated_returns_copy(self):
        """Test translation shifts a copy and leaves the original alone"""
        ellipse = EllipseOperation(Point(1, 2), Point(3, 4), QColor(0, 255, 0), 5)
        text = TextOperation("a", Point(0, 0))
        stroke = MosaicOperation([Point(10, 10)], 30)

        moved_ellipse = ellipse.translated(10, 20)
        moved_text = text.translated(-1, -1)
        moved_stroke = stroke.translated(5, 0)

        assert (moved_ellipse.start, moved_ellipse.end) == (Point(11, 22), Point(13, 24))
        assert moved_ellipse.thickness == 5
        assert moved_ellipse.stroke_color == QColor(0, 255, 0)
        assert ellipse.start == Point(1, 2)
        assert moved_text.position == Point(-1, -1)
        assert moved_stroke.sample_points == [Point(15, 10)]
        assert stroke.sample_points == [Point(10, 10)]
        assert moved_stroke.block_size == 30

    def test_create_operation_anchors_at_start(self):
        """Test new operations start degenerate at the press point"""
        rect = create_operation(AnnotationType.RECTANGLE, Point(3, 4))
        stroke = create_operation(AnnotationType.MOSAIC, Point(3, 4), block_size=20)
        text = create_operation(AnnotationType.TEXT, Point(3, 4))

        assert rect.start == rect.end == Point(3, 4)
        assert stroke.sample_points == [Point(3, 4)]
        assert stroke.block_size == 20
        assert text.content == ""
        assert text.position == Point(3, 4)


class TestOperationStack:
    """Tests for OperationStack"""

    def test_push_pop_order(self):
        """Test the tail is removed first"""
        first = RectangleOperation(Point(0, 0), Point(1, 1))
        second = RectangleOperation(Point(0, 0), Point(2, 2))
        stack = OperationStack([first])
        stack.push(second)

        assert stack.pop() is second
        assert stack.pop() is first
        assert stack.pop() is None

    def test_topmost_first(self):
        """Test reverse iteration starts with the latest operation"""
        ops = [TextOperation(str(i), Point(0, 0)) for i in range(3)]
        stack = OperationStack(ops)

        assert [op.content for op in stack.topmost_first()] == ["2", "1", "0"]

    def test_contains_by_identity(self):
        """Test membership uses identity, not equality"""
        op = RectangleOperation(Point(0, 0), Point(1, 1))
        stack = OperationStack([op])

        assert op in stack
        assert RectangleOperation(Point(0, 0), Point(1, 1)) not in stack


class TestCommitAndUndo:
    """Tests for begin/commit/undo"""

    @pytest.mark.parametrize("types", [
        [AnnotationType.RECTANGLE],
        [AnnotationType.MOSAIC, AnnotationType.ELLIPSE, AnnotationType.MOSAIC],
        [AnnotationType.ELLIPSE, AnnotationType.RECTANGLE, AnnotationType.MOSAIC,
         AnnotationType.RECTANGLE, AnnotationType.ELLIPSE],
    ])
    def test_n_commits_then_n_undos_empty_stack(self, model, types):
        """Test N undos after N commits leave the stack empty"""
        for i, annotation_type in enumerate(types):
            draw(model, annotation_type, Point(i, i), Point(i + 10, i + 5))

        assert len(model.stack) == len(types)

        for _ in types:
            assert model.undo() is not None

        assert len(model.stack) == 0
        assert model.undo() is None

    def test_rectangle_mosaic_undo_scenario(self, model):
        """Test undoing after rectangle + mosaic leaves only the rectangle"""
        rect = draw(model, AnnotationType.RECTANGLE, Point(10, 10), Point(50, 40))
        model.begin_operation(AnnotationType.MOSAIC, Point(60, 60), block_size=20)
        model.commit()

        model.undo()

        assert model.operations == (rect,)
        assert isinstance(model.operations[0], RectangleOperation)

    def test_begin_while_in_progress_raises(self, model):
        """Test a second begin without commit is rejected"""
        model.begin_operation(AnnotationType.RECTANGLE, Point(0, 0))

        with pytest.raises(AnnotationStateError):
            model.begin_operation(AnnotationType.ELLIPSE, Point(1, 1))

    def test_commit_without_operation_raises(self, model):
        """Test commit with nothing in progress is rejected"""
        with pytest.raises(AnnotationStateError):
            model.commit()

        assert len(model.stack) == 0

    def test_empty_text_not_committed(self, model):
        """Test committing an empty text discards it"""
        model.begin_operation(AnnotationType.TEXT, Point(5, 5))

        assert model.commit() is None
        assert len(model.stack) == 0
        assert model.in_progress is None

    def test_update_appends_mosaic_samples(self, model):
        """Test moves add samples to the stroke in order"""
        model.begin_operation(AnnotationType.MOSAIC, Point(0, 0))
        model.update_in_progress(Point(1, 0))
        model.update_in_progress(Point(2, 0))

        assert model.in_progress.sample_points == [Point(0, 0), Point(1, 0), Point(2, 0)]

    def test_undo_keeps_in_progress(self, model):
        """Test undo pops committed work only"""
        draw(model, AnnotationType.RECTANGLE, Point(0, 0), Point(5, 5))
        live = model.begin_operation(AnnotationType.ELLIPSE, Point(1, 1))

        model.undo()

        assert len(model.stack) == 0
        assert model.in_progress is live

    def test_discard_in_progress(self, model):
        """Test discarding drops the live operation without committing"""
        model.begin_operation(AnnotationType.RECTANGLE, Point(0, 0))

        model.discard_in_progress()

        assert model.in_progress is None
        assert len(model.stack) == 0

    def test_dirty_flag(self, model):
        """Test mutations raise the dirty flag and take_dirty clears it"""
        assert not model.take_dirty()

        draw(model, AnnotationType.RECTANGLE, Point(0, 0), Point(5, 5))

        assert model.dirty
        assert model.take_dirty()
        assert not model.take_dirty()

        model.undo()
        assert model.take_dirty()

    def test_clear(self, model):
        """Test clear drops everything"""
        draw(model, AnnotationType.RECTANGLE, Point(0, 0), Point(5, 5))
        model.begin_operation(AnnotationType.MOSAIC, Point(1, 1))

        model.clear()

        assert len(model.stack) == 0
        assert model.in_progress is None


class TestTextHitTesting:
    """Tests for text hit-testing and dragging"""

    def test_hit_and_miss(self, measurer):
        """Test a 40 x 16 text at (5, 5) is hit at (10, 10) and missed at (100, 100)"""
        text = TextOperation("hello", Point(5, 5))
        model = AnnotationModel([text], measurer)

        assert model.hit_test_text(Point(10, 10)) is text
        assert model.hit_test_text(Point(100, 100)) is None

    def test_hit_uses_exclusive_edges(self, measurer):
        """Test the right and bottom edges of the bounds miss"""
        model = AnnotationModel([TextOperation("hello", Point(5, 5))], measurer)

        assert model.hit_test_text(Point(44, 21)) is None
        assert model.hit_test_text(Point(45, 10)) is None
        assert model.hit_test_text(Point(44, 20)) is not None

    def test_topmost_text_wins(self, measurer):
        """Test overlapping texts resolve to the most recent one"""
        bottom = TextOperation("hello", Point(0, 0))
        top = TextOperation("hello", Point(10, 0))
        model = AnnotationModel([bottom, top], measurer)

        assert model.hit_test_text(Point(15, 5)) is top
        assert model.hit_test_text(Point(5, 5)) is bottom

    def test_shapes_are_not_hit(self, model):
        """Test only text operations are hit-tested"""
        draw(model, AnnotationType.RECTANGLE, Point(0, 0), Point(50, 50))

        assert model.hit_test_text(Point(10, 10)) is None

    def test_drag_keeps_grab_offset(self, measurer):
        """Test dragging moves the text in place by the pointer delta"""
        text = TextOperation("hello", Point(5, 5))
        model = AnnotationModel([text], measurer)

        assert model.select_text(Point(10, 10)) is text
        model.drag_selected_text(Point(50, 60))

        assert text.position == Point(45, 55)
        assert model.operations[0] is text

        model.release_selected_text()
        model.drag_selected_text(Point(0, 0))
        assert text.position == Point(45, 55)

    def test_undo_releases_selected_text(self, measurer):
        """Test undoing the selected text drops the selection"""
        text = TextOperation("hello", Point(5, 5))
        model = AnnotationModel([text], measurer)
        model.select_text(Point(10, 10))

        model.undo()

        assert model.selected_text is None
