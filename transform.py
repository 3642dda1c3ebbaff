"""
transform.py — Pointer gestures → new Bubble values.

Every gesture starts by freezing a GestureSnapshot (pointer start plus the
untouched bubble, parts included).  Each pointer move then rebuilds the
bubble from that snapshot and the *total* pointer delta, never from the
previous move's output, so rounding never accumulates and a dropped or
stale intermediate result is harmless.

Modes:
    moving           whole bubble follows the pointer
    resizing         one of the eight anchor handles (TL TC TR ML MR BL BC BR)
    movingPart       a thought dot
    movingTailTip    the tail tip, free-form
    movingTailBase   the tail base, sliding along the bubble's edge
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

from bubble_model import (
    Bubble, MIN_BUBBLE_HEIGHT, MIN_BUBBLE_WIDTH, Part,
    SpeechTailPart, ThoughtDotPart,
)

log = logging.getLogger(__name__)

ANCHORS         = ["TL", "TC", "TR", "ML", "MR", "BL", "BC", "BR"]
RESIZE_EPS      = 1e-4
BASE_DRAG_EPS   = 1e-3
MIN_DOT_SCALED  = 2
MIN_BASE_SCALED = 1


class GestureMode(str, Enum):
    IDLE             = "idle"
    MOVING           = "moving"
    RESIZING         = "resizing"
    MOVING_PART      = "movingPart"
    MOVING_TAIL_TIP  = "movingTailTip"
    MOVING_TAIL_BASE = "movingTailBase"


@dataclass(frozen=True)
class GestureSnapshot:
    mode: GestureMode
    start_x: float
    start_y: float
    bubble: Bubble
    handle: str | None = None
    part_id: str | None = None


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def begin_gesture(bubble: Bubble, mode: GestureMode, start_x: float, start_y: float,
                  handle: str | None = None, part_id: str | None = None) -> GestureSnapshot:
    """Validate the hit target and capture the snapshot; ValueError when the
    target does not exist on this bubble."""
    if mode == GestureMode.IDLE:
        raise ValueError("Cannot start an idle gesture")
    if mode == GestureMode.RESIZING and handle not in ANCHORS:
        raise ValueError(f"Unknown resize handle: {handle!r}")
    if mode == GestureMode.MOVING_PART:
        if not isinstance(bubble.part(part_id), ThoughtDotPart):
            raise ValueError(f"No dot {part_id!r} on bubble {bubble.id}")
    if mode in (GestureMode.MOVING_TAIL_TIP, GestureMode.MOVING_TAIL_BASE):
        if not isinstance(bubble.part(part_id), SpeechTailPart):
            raise ValueError(f"No tail {part_id!r} on bubble {bubble.id}")
    return GestureSnapshot(mode, start_x, start_y, bubble, handle, part_id)


def apply_transform(snap: GestureSnapshot, dx: float, dy: float) -> Bubble:
    """New bubble for a cumulative pointer delta (dx, dy) since gesture start."""
    b = snap.bubble
    mode = snap.mode

    if mode == GestureMode.MOVING:
        return replace(b, x=b.x + dx, y=b.y + dy)
    if mode == GestureMode.RESIZING:
        return _resize(b, snap.handle, dx, dy)
    if mode == GestureMode.MOVING_PART:
        dot = b.part(snap.part_id)
        return b.with_part(replace(dot, offset_x=dot.offset_x + dx,
                                   offset_y=dot.offset_y + dy))
    if mode == GestureMode.MOVING_TAIL_TIP:
        tail = b.part(snap.part_id)
        return b.with_part(replace(tail, tip_x=tail.tip_x + dx, tip_y=tail.tip_y + dy))
    if mode == GestureMode.MOVING_TAIL_BASE:
        return b.with_part(_drag_tail_base(b, b.part(snap.part_id), dx, dy))
    return b


# ---------------------------------------------------------------------------
# Resize
# ---------------------------------------------------------------------------

def _resize(b: Bubble, handle: str, dx: float, dy: float) -> Bubble:
    dw = dh = 0.0
    if "L" in handle: dw = -dx
    if "R" in handle: dw = dx
    if "T" in handle: dh = -dy
    if "B" in handle: dh = dy

    new_w = max(MIN_BUBBLE_WIDTH, b.width + dw)
    new_h = max(MIN_BUBBLE_HEIGHT, b.height + dh)

    # moving the left/top edge keeps the right/bottom edge where it was
    new_x = b.x + (b.width - new_w) if "L" in handle else b.x
    new_y = b.y + (b.height - new_h) if "T" in handle else b.y

    parts = rescale_parts(b.parts, b.width, b.height, new_w, new_h)
    return replace(b, x=new_x, y=new_y, width=new_w, height=new_h, parts=parts)


def rescale_parts(parts: tuple[Part, ...], old_w: float, old_h: float,
                  new_w: float, new_h: float) -> tuple[Part, ...]:
    """
    Re-derive parts for a new size from their values at the old size.

    Tail bases on an edge stay on that edge; other bases scale and are
    clamped into the box.  The tip keeps its scaled offset from the base,
    so the tail points the same way after a non-uniform resize.
    """
    sx = new_w / old_w if old_w > 0 else 1.0
    sy = new_h / old_h if old_h > 0 else 1.0
    if old_w <= 0 or old_h <= 0:
        log.warning("Degenerate original size %sx%s while rescaling parts", old_w, old_h)

    out: list[Part] = []
    for p in parts:
        if isinstance(p, SpeechTailPart):
            out.append(_rescale_tail(p, old_w, old_h, new_w, new_h, sx, sy))
        elif isinstance(p, ThoughtDotPart):
            out.append(replace(p,
                               offset_x=p.offset_x * sx,
                               offset_y=p.offset_y * sy,
                               size=max(MIN_DOT_SCALED, p.size * (sx + sy) / 2)))
        else:
            out.append(p)
    return tuple(out)


def _rescale_tail(t: SpeechTailPart, old_w, old_h, new_w, new_h, sx, sy) -> SpeechTailPart:
    on_bottom = abs(t.base_cy - old_h) < RESIZE_EPS
    on_top    = abs(t.base_cy) < RESIZE_EPS
    on_right  = abs(t.base_cx - old_w) < RESIZE_EPS
    on_left   = abs(t.base_cx) < RESIZE_EPS

    if on_right:
        cx = new_w
    elif on_left:
        cx = 0.0
    else:
        cx = _clamp(t.base_cx * sx, 0, new_w)

    if on_bottom:
        cy = new_h
    elif on_top:
        cy = 0.0
    else:
        cy = _clamp(t.base_cy * sy, 0, new_h)

    # base width follows the edge it lies along
    along = sy if (on_left or on_right) and not (on_top or on_bottom) else sx
    return replace(
        t,
        base_cx=cx, base_cy=cy,
        tip_x=cx + (t.tip_x - t.base_cx) * sx,
        tip_y=cy + (t.tip_y - t.base_cy) * sy,
        base_width=max(MIN_BASE_SCALED, t.base_width * along),
        initial_base_width=max(MIN_BASE_SCALED, t.initial_base_width * along),
    )


# ---------------------------------------------------------------------------
# Tail base drag
# ---------------------------------------------------------------------------

def _drag_tail_base(b: Bubble, t: SpeechTailPart, dx: float, dy: float) -> SpeechTailPart:
    w, h = b.width, b.height
    mx, my = t.base_cx + dx, t.base_cy + dy

    on_bottom = abs(t.base_cy - h) < BASE_DRAG_EPS
    on_top    = abs(t.base_cy) < BASE_DRAG_EPS
    on_right  = abs(t.base_cx - w) < BASE_DRAG_EPS
    on_left   = abs(t.base_cx) < BASE_DRAG_EPS

    if on_bottom or on_top:
        cx, cy = _clamp(mx, 0, w), (h if on_bottom else 0.0)
    elif on_left or on_right:
        cx, cy = (w if on_right else 0.0), _clamp(my, 0, h)
    else:
        # base was off the edges: snap to the edge along the dominant axis
        rx, ry = mx - w / 2, my - h / 2
        if abs(rx / w) > abs(ry / h):
            cx = w if rx > 0 else 0.0
            cy = h / 2 + ry * (w / (2 * abs(rx or 1)))
        else:
            cy = h if ry > 0 else 0.0
            cx = w / 2 + rx * (h / (2 * abs(ry or 1)))
        cx, cy = _clamp(cx, 0, w), _clamp(cy, 0, h)

    return replace(t, base_cx=cx, base_cy=cy,
                   tip_x=cx + (t.tip_x - t.base_cx),
                   tip_y=cy + (t.tip_y - t.base_cy))


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class InteractionController:
    """
    idle ──pointer_down──▶ <mode> ──pointer_move*──▶ <mode> ──pointer_up──▶ idle

    pointer_move returns the bubble for the current pointer position;
    pointer_up returns (before, after) when the gesture changed anything.
    """

    def __init__(self):
        self._snapshot: GestureSnapshot | None = None
        self._last: Bubble | None = None

    @property
    def state(self) -> GestureMode:
        return self._snapshot.mode if self._snapshot else GestureMode.IDLE

    @property
    def snapshot(self) -> GestureSnapshot | None:
        return self._snapshot

    def pointer_down(self, bubble: Bubble, mode: GestureMode, x: float, y: float,
                     handle: str | None = None, part_id: str | None = None) -> bool:
        try:
            self._snapshot = begin_gesture(bubble, mode, x, y, handle, part_id)
        except ValueError as e:
            log.debug("Ignoring pointer-down: %s", e)
            self._snapshot = None
            return False
        self._last = bubble
        return True

    def pointer_move(self, x: float, y: float) -> Bubble | None:
        snap = self._snapshot
        if snap is None:
            return None
        self._last = apply_transform(snap, x - snap.start_x, y - snap.start_y)
        return self._last

    def pointer_up(self) -> tuple[Bubble, Bubble] | None:
        snap, last = self._snapshot, self._last
        self._snapshot = self._last = None
        if snap is None or last is None or last == snap.bubble:
            return None
        return snap.bubble, last

    def cancel(self):
        self._snapshot = self._last = None
