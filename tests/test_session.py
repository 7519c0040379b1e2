"""
Tests for EditingSession and the tools it routes to
"""
import pytest

from mosaicshot.core.geometry import Point, Rect
from mosaicshot.editor.annotations import (
    EllipseOperation,
    MosaicOperation,
    RectangleOperation,
    TextOperation,
)
from mosaicshot.editor.session import EditingSession
from mosaicshot.editor.tools import (
    MosaicTool,
    NoTool,
    ToolSettings,
    ToolType,
    create_tool,
)


@pytest.fixture
def session(black_base, measurer):
    """Session over a 200 x 150 black bitmap placed at (100, 100)"""
    return EditingSession(Rect(100, 100, 200, 150), black_base, measurer=measurer)


def stroke(session, points):
    """Press at the first point, move through the rest, release at the last"""
    session.on_pointer_down(points[0])
    for point in points[1:]:
        session.on_pointer_move(point)
    session.on_pointer_up(points[-1])


class TestTools:
    """Tests for tool creation and settings"""

    @pytest.mark.parametrize("tool_type", list(ToolType))
    def test_create_tool_matches_type(self, tool_type):
        """Test every tool type has an implementation"""
        assert create_tool(tool_type).tool_type is tool_type

    def test_create_tool_none(self):
        """Test None creates the placeholder tool"""
        assert isinstance(create_tool(None), NoTool)
        assert isinstance(create_tool(ToolType.MOSAIC), MosaicTool)

    def test_tool_type_from_name(self):
        """Test config names map to tool types"""
        assert ToolType.from_name("Mosaic") is ToolType.MOSAIC
        assert ToolType.from_name(" text ") is ToolType.TEXT
        assert ToolType.from_name("spray") is ToolType.NONE

    def test_settings_clamp_block_size(self):
        """Test settings never hold an out-of-range block size"""
        assert ToolSettings(block_size=3).block_size == 10
        settings = ToolSettings()

        assert settings.set_block_size(99) == 50
        assert settings.block_size == 50


class TestShapeDrawing:
    """Tests for the rectangle and ellipse tools"""

    def test_no_tool_draws_nothing(self, session):
        """Test pointer input is ignored before a tool is chosen"""
        stroke(session, [Point(10, 10), Point(50, 40)])

        assert session.operations == ()

    def test_rectangle(self, session):
        """Test a drag commits a rectangle between press and release"""
        session.set_tool(ToolType.RECTANGLE)

        stroke(session, [Point(10, 10), Point(30, 20), Point(50, 40)])

        assert len(session.operations) == 1
        op = session.operations[0]
        assert isinstance(op, RectangleOperation)
        assert (op.start, op.end) == (Point(10, 10), Point(50, 40))

    def test_ellipse_uses_settings(self, black_base, measurer):
        """Test new shapes take colour and thickness from the settings"""
        settings = ToolSettings(thickness=6)
        session = EditingSession(Rect(0, 0, 200, 150), black_base, measurer=measurer, settings=settings)
        session.set_tool(ToolType.ELLIPSE)

        stroke(session, [Point(20, 20), Point(60, 50)])

        op = session.operations[0]
        assert isinstance(op, EllipseOperation)
        assert op.thickness == 6
        assert op.stroke_color == settings.stroke_color

    def test_endpoint_clamped_to_bitmap(self, session):
        """Test the live endpoint stays inside the bitmap"""
        session.set_tool(ToolType.RECTANGLE)

        stroke(session, [Point(10, 10), Point(500, -20)])

        assert session.operations[0].end == Point(199, 0)

    def test_in_progress_until_release(self, session):
        """Test the shape is live, not committed, while dragging"""
        session.set_tool(ToolType.RECTANGLE)
        session.on_pointer_down(Point(10, 10))
        session.on_pointer_move(Point(40, 40))

        assert session.operations == ()
        assert session.model.in_progress.end == Point(40, 40)

    def test_switching_tool_discards_live_shape(self, session):
        """Test changing tool mid-drag drops the unfinished shape"""
        session.set_tool(ToolType.RECTANGLE)
        session.on_pointer_down(Point(10, 10))

        session.set_tool(ToolType.MOSAIC)

        assert session.model.in_progress is None


class TestMosaicStroke:
    """Tests for the mosaic tool"""

    def test_stroke_records_samples(self, session):
        """Test every move adds a sample and release commits the stroke"""
        session.set_tool(ToolType.MOSAIC)
        session.set_block_size(30)

        stroke(session, [Point(60, 60), Point(70, 60), Point(80, 65)])

        op = session.operations[0]
        assert isinstance(op, MosaicOperation)
        assert op.sample_points == [Point(60, 60), Point(70, 60), Point(80, 65)]
        assert op.block_size == 30

    @pytest.mark.parametrize("size,expected", [(5, 10), (20, 20), (80, 50)])
    def test_set_block_size_clamps(self, session, size, expected):
        """Test the session clamps block sizes"""
        assert session.set_block_size(size) == expected
        assert session.settings.block_size == expected

    def test_block_size_applies_to_next_stroke(self, session):
        """Test strokes keep the block size they were drawn with"""
        session.set_tool(ToolType.MOSAIC)
        stroke(session, [Point(20, 20)])
        session.set_block_size(40)
        stroke(session, [Point(90, 90)])

        assert [op.block_size for op in session.operations] == [10, 40]


class TestHandlesInSession:
    """Tests for handle hits inside a session"""

    @pytest.mark.parametrize("point,handle", [
        (Point(0, 0), 0),
        (Point(198, 2), 1),
        (Point(198, 148), 2),
        (Point(100, 149), 6),
    ])
    def test_handle_hit_returned(self, session, point, handle):
        """Test presses on a handle are returned instead of starting a tool"""
        session.set_tool(ToolType.RECTANGLE)

        assert session.on_pointer_down(point) == handle
        assert session.model.in_progress is None

    def test_press_inside_returns_minus_one(self, session):
        """Test an interior press is consumed"""
        session.set_tool(ToolType.RECTANGLE)

        assert session.on_pointer_down(Point(50, 50)) == -1
        assert session.model.in_progress is not None

    def test_handle_points_local(self, session):
        """Test handles are in session-local coordinates"""
        assert session.handle_points()[2] == Point(200, 150)


class TestTextEntry:
    """Tests for typing text"""

    def test_type_and_commit(self, session):
        """Test typed text becomes a TextOperation at the press point"""
        session.set_tool(ToolType.TEXT)
        session.on_pointer_down(Point(30, 30))

        session.type_text("hi")
        committed = session.end_text_entry()

        assert isinstance(committed, TextOperation)
        assert committed.content == "hi"
        assert committed.position == Point(30, 30)
        assert session.operations == (committed,)
        assert session.text_entry is None

    def test_empty_entry_dropped(self, session):
        """Test ending an empty entry commits nothing"""
        session.set_tool(ToolType.TEXT)
        session.on_pointer_down(Point(30, 30))

        assert session.end_text_entry() is None
        assert session.operations == ()

    def test_backspace(self, session):
        """Test backspace removes the last character"""
        session.begin_text_entry(Point(0, 0))
        session.type_text("abc")

        session.backspace()

        assert session.text_entry.content == "ab"

    def test_typing_without_entry_is_ignored(self, session):
        """Test text input with no entry open is a no-op"""
        session.type_text("x")
        session.backspace()

        assert session.text_entry is None
        assert session.operations == ()

    def test_entry_box_minimum(self, session):
        """Test short text gets the minimum 50 x 35 box"""
        session.begin_text_entry(Point(30, 30))
        session.type_text("hi")

        assert session.text_entry_box() == Rect(30, 30, 50, 35)

    def test_entry_box_grows_and_caps(self, session):
        """Test the box follows the text with padding and caps its width at 300"""
        session.begin_text_entry(Point(0, 0))
        session.type_text("x" * 10 + "\n" + "y")

        assert session.text_entry_box() == Rect(0, 0, 90, 42)

        session.type_text("z" * 40)
        assert session.text_entry_box().width == 300

    def test_click_inside_box_keeps_entry(self, session):
        """Test a press inside the entry box does not end it"""
        session.set_tool(ToolType.TEXT)
        session.on_pointer_down(Point(30, 30))
        session.type_text("hi")

        session.on_pointer_down(Point(40, 40))

        assert session.text_entry.content == "hi"
        assert session.operations == ()

    def test_click_outside_box_commits_entry(self, session):
        """Test a press outside the box commits the text and is consumed"""
        session.set_tool(ToolType.TEXT)
        session.on_pointer_down(Point(30, 30))
        session.type_text("hi")

        session.on_pointer_down(Point(150, 100))

        assert [op.content for op in session.operations] == ["hi"]
        assert session.text_entry is None

        session.on_pointer_down(Point(150, 100))
        assert session.text_entry.position == Point(150, 100)

    def test_click_on_handle_while_typing_only_ends_entry(self, session):
        """Test a handle press that ends an entry does not start a resize"""
        session.set_tool(ToolType.TEXT)
        session.on_pointer_down(Point(30, 30))
        session.type_text("hi")

        assert session.on_pointer_down(Point(0, 0)) == -1
        assert session.text_entry is None
        assert session.on_pointer_down(Point(0, 0)) == 0

    def test_committed_text_goes_through_model(self, session):
        """Test ending an entry commits via the model and keeps multi-line text"""
        session.begin_text_entry(Point(30, 30))
        session.type_text("one\ntwo")
        session.take_dirty()

        committed = session.end_text_entry()

        assert committed.content == "one\ntwo"
        assert committed.color == session.settings.text_color
        assert session.model.in_progress is None
        assert session.take_dirty()

    def test_entry_drops_live_shape(self, session):
        """Test opening an entry mid-drag drops the shape so the text can commit"""
        session.set_tool(ToolType.RECTANGLE)
        session.on_pointer_down(Point(10, 10))
        session.begin_text_entry(Point(100, 100))
        session.type_text("x")

        committed = session.end_text_entry()

        assert committed.content == "x"
        assert session.operations == (committed,)

    def test_switching_tool_ends_entry(self, session):
        """Test changing tool commits the typed text"""
        session.set_tool(ToolType.TEXT)
        session.on_pointer_down(Point(30, 30))
        session.type_text("note")

        session.set_tool(ToolType.RECTANGLE)

        assert session.text_entry is None
        assert [op.content for op in session.operations] == ["note"]

    def test_undo_keeps_entry(self, session):
        """Test undo leaves the text being typed alone"""
        session.set_tool(ToolType.RECTANGLE)
        stroke(session, [Point(0, 10), Point(20, 30)])
        session.begin_text_entry(Point(100, 100))
        session.type_text("abc")

        session.undo()

        assert session.operations == ()
        assert session.text_entry.content == "abc"


class TestTextDragging:
    """Tests for moving committed text with the text tool"""

    def test_drag_existing_text(self, black_base, measurer):
        """Test pressing on a text drags it instead of opening an entry"""
        text = TextOperation("hello", Point(5, 5))
        session = EditingSession(Rect(0, 0, 200, 150), black_base, [text], measurer)
        session.set_tool(ToolType.TEXT)

        session.on_pointer_down(Point(20, 12))
        session.on_pointer_move(Point(60, 52))
        session.on_pointer_up(Point(60, 52))

        assert text.position == Point(45, 45)
        assert session.text_entry is None
        assert session.model.selected_text is None


class TestFinish:
    """Tests for finishing a session"""

    def test_finish_commits_entry_and_renders(self, session):
        """Test finish ends the entry and returns a full-size image"""
        session.begin_text_entry(Point(10, 10))
        session.type_text("done")

        image = session.finish()

        assert (image.width(), image.height()) == (200, 150)
        assert [op.content for op in session.operations] == ["done"]

    def test_take_dirty(self, session):
        """Test the session reports repaints through take_dirty"""
        session.take_dirty()
        session.set_tool(ToolType.MOSAIC)

        assert session.take_dirty()
        assert not session.take_dirty()
