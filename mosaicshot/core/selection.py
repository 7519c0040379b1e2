"""
Region selection state machine for MosaicShot.

The user drags a rectangle over the frozen screen. Releasing with a
non-empty rectangle commits it (the controller then opens an editing
session); releasing with an empty one discards the drag.

While editing, eight handles sit on the session rectangle. Pressing one
ends the session and re-enters selection seeded from the old rectangle:
corners resize freely from the opposite corner, edge midpoints only move
one axis.

Handle indices:
    0 top-left, 1 top-right, 2 bottom-right, 3 bottom-left,
    4 top-mid, 5 right-mid, 6 bottom-mid, 7 left-mid

All transitions are pure functions returning the next state plus a tuple
of effects, so they can be driven without a UI.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Tuple, Union

from mosaicshot.core.geometry import Point, Rect, normalize

HANDLE_TOP_LEFT = 0
HANDLE_TOP_RIGHT = 1
HANDLE_BOTTOM_RIGHT = 2
HANDLE_BOTTOM_LEFT = 3
HANDLE_TOP_MID = 4
HANDLE_RIGHT_MID = 5
HANDLE_BOTTOM_MID = 6
HANDLE_LEFT_MID = 7

CORNER_HANDLES = (HANDLE_TOP_LEFT, HANDLE_TOP_RIGHT, HANDLE_BOTTOM_RIGHT, HANDLE_BOTTOM_LEFT)
VERTICAL_HANDLES = (HANDLE_TOP_MID, HANDLE_BOTTOM_MID)
HORIZONTAL_HANDLES = (HANDLE_RIGHT_MID, HANDLE_LEFT_MID)

HANDLE_HIT_SIZE = 16


class PointerButton(Enum):
    PRIMARY = auto()
    SECONDARY = auto()


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    anchor: Point
    current: Point


@dataclass(frozen=True)
class HandoffResizing:
    """
    Selection re-entered from an editing handle.

    handle is None for a free re-entry (both axes follow the pointer).
    """
    anchor: Point
    current: Point
    handle: Optional[int]
    initial_rect: Rect


SelectionState = Union[Idle, Dragging, HandoffResizing]


class EffectKind(Enum):
    REPAINT = auto()
    COMMIT_SELECTION = auto()
    DISCARD_SELECTION = auto()
    EXIT_TOOL = auto()


@dataclass(frozen=True)
class Effect:
    kind: EffectKind
    rect: Optional[Rect] = None


@dataclass(frozen=True)
class Transition:
    state: SelectionState
    effects: Tuple[Effect, ...] = ()

    def has(self, kind: EffectKind) -> bool:
        return any(effect.kind is kind for effect in self.effects)


REPAINT = Effect(EffectKind.REPAINT)


# ─── Handles ──────────────────────────────────────────────────────────────────

def handle_points(rect: Rect) -> List[Point]:
    """The eight handle positions on rect, in handle-index order."""
    mid_x = (rect.left + rect.right) // 2
    mid_y = (rect.top + rect.bottom) // 2
    return [
        Point(rect.left, rect.top),
        Point(rect.right, rect.top),
        Point(rect.right, rect.bottom),
        Point(rect.left, rect.bottom),
        Point(mid_x, rect.top),
        Point(rect.right, mid_y),
        Point(mid_x, rect.bottom),
        Point(rect.left, mid_y),
    ]


def hit_test_handle(rect: Rect, point: Point, hit_size: int = HANDLE_HIT_SIZE) -> int:
    """
    Test if a point hits one of rect's handles.

    Returns:
        Handle index (0-7) if hit, -1 otherwise.
    """
    half = hit_size // 2
    for index, handle in enumerate(handle_points(rect)):
        area = Rect(handle.x - half, handle.y - half, hit_size, hit_size)
        if area.contains(point):
            return index
    return -1


# ─── Transitions ──────────────────────────────────────────────────────────────

def begin_handoff(rect: Rect, handle: Optional[int]) -> HandoffResizing:
    """
    Seed a resize drag from an existing selection.

    The anchor stays fixed for the whole drag; current is where the
    pointer-driven corner starts.
    """
    if handle == HANDLE_TOP_LEFT:
        anchor, current = rect.bottom_right, rect.top_left
    elif handle == HANDLE_TOP_RIGHT:
        anchor, current = rect.bottom_left, rect.top_right
    elif handle == HANDLE_BOTTOM_RIGHT:
        anchor, current = rect.top_left, rect.bottom_right
    elif handle == HANDLE_BOTTOM_LEFT:
        anchor, current = rect.top_right, rect.bottom_left
    elif handle == HANDLE_TOP_MID:
        anchor, current = rect.bottom_left, rect.top_right
    elif handle == HANDLE_RIGHT_MID:
        anchor, current = rect.top_left, rect.bottom_right
    elif handle == HANDLE_BOTTOM_MID:
        anchor, current = rect.top_left, rect.bottom_right
    elif handle == HANDLE_LEFT_MID:
        anchor, current = rect.top_right, rect.bottom_left
    else:
        handle = None
        anchor, current = rect.top_left, rect.bottom_right

    return HandoffResizing(anchor=anchor, current=current, handle=handle, initial_rect=rect)


def constrain_point(state: HandoffResizing, point: Point) -> Point:
    """Apply a mid-edge handle's single-axis constraint to a pointer position."""
    rect = state.initial_rect
    if state.handle in VERTICAL_HANDLES:
        return Point(rect.right, point.y)
    if state.handle in HORIZONTAL_HANDLES:
        return Point(point.x, rect.bottom)
    return point


def selection_rect(state: SelectionState) -> Optional[Rect]:
    """The live rectangle while a drag is in progress, else None."""
    if isinstance(state, (Dragging, HandoffResizing)):
        return normalize(state.anchor, state.current)
    return None


def on_pointer_down(state: SelectionState, point: Point, button: PointerButton) -> Transition:
    if button is PointerButton.SECONDARY:
        return on_cancel(state)

    if isinstance(state, Idle):
        return Transition(Dragging(anchor=point, current=point), (REPAINT,))

    # A second primary press mid-drag changes nothing
    return Transition(state)


def on_pointer_move(state: SelectionState, point: Point) -> Transition:
    if isinstance(state, Dragging):
        return Transition(Dragging(anchor=state.anchor, current=point), (REPAINT,))

    if isinstance(state, HandoffResizing):
        current = constrain_point(state, point)
        return Transition(
            HandoffResizing(
                anchor=state.anchor,
                current=current,
                handle=state.handle,
                initial_rect=state.initial_rect,
            ),
            (REPAINT,),
        )

    return Transition(state)


def on_pointer_up(state: SelectionState, point: Point, button: PointerButton) -> Transition:
    if button is not PointerButton.PRIMARY or isinstance(state, Idle):
        return Transition(state)

    if isinstance(state, HandoffResizing):
        # Only moves resize; a bare click on a handle keeps the rectangle
        rect = normalize(state.anchor, state.current)
    else:
        rect = normalize(state.anchor, point)

    if rect.is_empty():
        return Transition(Idle(), (Effect(EffectKind.DISCARD_SELECTION), REPAINT))

    return Transition(Idle(), (Effect(EffectKind.COMMIT_SELECTION, rect), REPAINT))


def on_cancel(state: SelectionState) -> Transition:
    """Secondary click or Escape while selecting: leave the tool."""
    return Transition(Idle(), (Effect(EffectKind.EXIT_TOOL),))
