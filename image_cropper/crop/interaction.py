"""Pointer gesture state machine driving CropRegion.

States are Idle, Dragging and Resizing. A gesture lives in a single
`DragSession` created on pointer-down and dropped on pointer-up, so a drag and
a resize can never be active at the same time. Pointer tracking beyond the
rectangle's own bounds goes through an `InputCapture` held only for the
duration of the gesture.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal

from image_cropper.logger import get_logger

from .geometry import RegionRect
from .region import CropRegion, Handle

_logger = get_logger("interaction")

HANDLE_SIZE = 10

MOVE: Literal["move"] = "move"
HitResult = Handle | Literal["move"] | None


class InteractionState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class DragKind(str, Enum):
    MOVE = "move"
    RESIZE = "resize"


@dataclass(frozen=True, slots=True)
class DragSession:
    kind: DragKind
    anchor_pointer: tuple[float, float]
    anchor_region: RegionRect
    handle: Handle | None = None


class InputCapture:
    """Pointer grab held for one gesture.

    `grab`/`release` are host hooks (e.g. a widget's grabMouse/releaseMouse).
    Releasing twice is harmless.
    """

    def __init__(self, grab: Callable[[], None] | None = None, release: Callable[[], None] | None = None) -> None:
        self._release = release
        self._active = True
        if grab is not None:
            grab()

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._release is not None:
            self._release()


def hit_test(rect: RegionRect, x: float, y: float, handle_size: float = HANDLE_SIZE) -> HitResult:
    """Return the handle under (x, y), MOVE for the body, or None."""
    hs = float(handle_size) / 2.0
    left, top, right, bottom = rect.x, rect.y, rect.right, rect.bottom

    if abs(x - left) <= hs and abs(y - top) <= hs:
        return Handle.NW
    if abs(x - right) <= hs and abs(y - top) <= hs:
        return Handle.NE
    if abs(x - right) <= hs and abs(y - bottom) <= hs:
        return Handle.SE
    if abs(x - left) <= hs and abs(y - bottom) <= hs:
        return Handle.SW

    edge_half_x = max(handle_size * 2, rect.width * 0.18) / 2.0
    edge_half_y = max(handle_size * 2, rect.height * 0.18) / 2.0
    cx = left + rect.width / 2.0
    cy = top + rect.height / 2.0

    if abs(y - top) <= hs and abs(x - cx) <= edge_half_x:
        return Handle.N
    if abs(y - bottom) <= hs and abs(x - cx) <= edge_half_x:
        return Handle.S
    if abs(x - left) <= hs and abs(y - cy) <= edge_half_y:
        return Handle.W
    if abs(x - right) <= hs and abs(y - cy) <= edge_half_y:
        return Handle.E
    if left <= x <= right and top <= y <= bottom:
        return MOVE
    return None


class InteractionController:
    """Turns pointer events into CropRegion moves and resizes."""

    def __init__(
        self,
        region: CropRegion,
        *,
        grab: Callable[[], None] | None = None,
        release: Callable[[], None] | None = None,
        on_change: Callable[[RegionRect], None] | None = None,
        handle_size: float = HANDLE_SIZE,
    ) -> None:
        self._region = region
        self._grab = grab
        self._release = release
        self._on_change = on_change
        self._handle_size = handle_size
        self._session: DragSession | None = None
        self._capture: InputCapture | None = None
        self._closed = False

    @property
    def region(self) -> CropRegion:
        return self._region

    @property
    def session(self) -> DragSession | None:
        return self._session

    @property
    def capture(self) -> InputCapture | None:
        return self._capture

    @property
    def state(self) -> InteractionState:
        if self._session is None:
            return InteractionState.IDLE
        if self._session.kind is DragKind.MOVE:
            return InteractionState.DRAGGING
        return InteractionState.RESIZING

    @property
    def closed(self) -> bool:
        return self._closed

    def bind_capture(
        self,
        grab: Callable[[], None] | None,
        release: Callable[[], None] | None,
        on_change: Callable[[RegionRect], None] | None = None,
    ) -> None:
        """Attach host pointer-grab hooks; applies from the next gesture on."""
        self._grab = grab
        self._release = release
        self._on_change = on_change

    def hit_test(self, x: float, y: float) -> HitResult:
        return hit_test(self._region.rect, x, y, self._handle_size)

    def pointer_down(self, x: float, y: float, target: HitResult = None) -> bool:
        """Start a gesture; returns False when the press is ignored.

        `target` may name the handle/body the host already resolved; otherwise
        the press position is hit-tested against the current rect.
        """
        if self._closed:
            return False
        if self._session is not None:
            _logger.debug("pointer_down ignored: %s already active", self.state.value)
            return False

        hit = target if target is not None else self.hit_test(x, y)
        if hit is None:
            return False

        anchor = (float(x), float(y))
        if hit == MOVE:
            self._session = DragSession(DragKind.MOVE, anchor, self._region.rect)
        else:
            self._session = DragSession(DragKind.RESIZE, anchor, self._region.rect, handle=Handle(hit))
        self._capture = InputCapture(self._grab, self._release)
        _logger.debug("gesture start: %s handle=%s at %s", self._session.kind.value, self._session.handle, anchor)
        return True

    def pointer_move(self, x: float, y: float) -> RegionRect | None:
        session = self._session
        if session is None or self._closed:
            return None

        if session.kind is DragKind.MOVE:
            # Absolute delta from the press point, replayed from the press-time rect
            dx = x - session.anchor_pointer[0]
            dy = y - session.anchor_pointer[1]
            self._region.restore(session.anchor_region)
            rect = self._region.move(dx, dy)
        else:
            # Running delta, re-anchored every move so clamped deltas don't accumulate
            dx = x - session.anchor_pointer[0]
            dy = y - session.anchor_pointer[1]
            if session.handle is None:
                raise RuntimeError("resize gesture has no handle")
            rect = self._region.resize(session.handle, dx, dy)
            self._session = replace(session, anchor_pointer=(float(x), float(y)))

        if self._on_change is not None:
            self._on_change(rect)
        return rect

    def pointer_up(self) -> None:
        if self._session is None:
            return
        _logger.debug("gesture end: %s -> %s", self._session.kind.value, self._region.rect)
        self._end_gesture()

    def teardown(self) -> None:
        """End the editing session: drop any gesture and refuse further input."""
        self._end_gesture()
        self._closed = True

    def _end_gesture(self) -> None:
        self._session = None
        capture = self._capture
        self._capture = None
        if capture is not None:
            capture.release()
