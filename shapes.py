"""
shapes.py — Outline synthesis for every bubble type.

generate_shape(bubble) is pure: the same Bubble value always yields the
same QPainterPath.  Thought clouds and shout starbursts get their
irregularity from a seeded sine PRNG keyed on (id, shapeVariant), so a
silhouette survives being rebuilt on every paint.

Shapes (all in bubble-local coordinates, origin at the top-left corner):
    speech-down / speech-up / whisper — pill, optional tail cut in one edge
    descriptive                       — rounded rectangle, radius 5
    thought                           — lobed cloud, dots as extra circles
    shout                             — 14-spike starburst
    text-only                         — empty path
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QPainterPath

from bubble_model import Bubble, BubbleType, SpeechTailPart, TAIL_TYPES

EDGE_EPS          = 1e-4
DESCRIPTIVE_R     = 5
THOUGHT_RADIUS    = 0.30     # cloud ellipse radii as a fraction of w / h
SHOUT_SPIKES      = 14
SHOUT_INNER_DIV   = 3.5
BBOX_PADDING      = 10


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuxCircle:
    id: str
    cx: float
    cy: float
    r: float


@dataclass
class BubbleShape:
    outline: QPainterPath
    circles: list[AuxCircle] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Seeded PRNG
# ---------------------------------------------------------------------------

def shape_seed(bubble_id: str, variant: int | None) -> int:
    """Sum of the id's code points plus the variant."""
    return sum(ord(c) for c in bubble_id) + (variant or 0)


class SeededRandom:
    """
    Sine-hash generator: frac(sin(state) * 10000), state += 1.

    Portable and stateless apart from the counter, which is all a
    silhouette needs to come out identical on every rebuild.
    """

    def __init__(self, seed: int):
        self._state = seed

    def __call__(self) -> float:
        x = math.sin(self._state) * 10000
        self._state += 1
        return x - math.floor(x)


def seeded_random(seed: int) -> SeededRandom:
    return SeededRandom(seed)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def generate_shape(bubble: Bubble) -> BubbleShape:
    w, h, kind = bubble.width, bubble.height, bubble.type

    if kind in TAIL_TYPES:
        return BubbleShape(_speech_path(w, h, bubble.tail))
    if kind == BubbleType.DESCRIPTIVE:
        return BubbleShape(_rounded_path(w, h, DESCRIPTIVE_R))
    if kind == BubbleType.TEXT_ONLY:
        return BubbleShape(QPainterPath())

    rand = seeded_random(shape_seed(bubble.id, bubble.shape_variant))
    if kind == BubbleType.THOUGHT:
        circles = [AuxCircle(d.id, d.offset_x, d.offset_y, d.size / 2)
                   for d in bubble.dots]
        return BubbleShape(_thought_path(w, h, rand), circles)
    if kind == BubbleType.SHOUT:
        return BubbleShape(_shout_path(w, h, rand))
    return BubbleShape(QPainterPath())


# ---------------------------------------------------------------------------
# Pill / rounded rectangle with an optional tail cut
# ---------------------------------------------------------------------------

def tail_edge(bubble_w: float, bubble_h: float,
              tail: SpeechTailPart) -> str | None:
    """Edge ("bottom" | "top" | "right" | "left") the clamped base sits on."""
    cx = min(max(tail.base_cx, 0.0), bubble_w)
    cy = min(max(tail.base_cy, 0.0), bubble_h)
    if abs(cy - bubble_h) < EDGE_EPS:
        return "bottom"
    if abs(cy) < EDGE_EPS:
        return "top"
    if abs(cx - bubble_w) < EDGE_EPS:
        return "right"
    if abs(cx) < EDGE_EPS:
        return "left"
    return None


def _base_span(center: float, half: float, r: float, length: float):
    """Clamp a tail base [center-half, center+half] to the straight part
    of an edge of the given length (corners of radius r excluded)."""
    lo, hi = r, length - r
    half = max(0.0, min(half, (hi - lo) / 2))
    center = min(max(center, lo + half), hi - half)
    return center - half, center + half


def _speech_path(w: float, h: float, tail: SpeechTailPart | None) -> QPainterPath:
    r = min(w, h) / 2
    if tail is None:
        return _rounded_path(w, h, r)
    edge = tail_edge(w, h, tail)
    if edge is None:
        return _rounded_path(w, h, r)

    half = tail.base_width / 2
    tip = (tail.tip_x, tail.tip_y)
    if edge in ("top", "bottom"):
        base_y = 0.0 if edge == "top" else h
        left, right = _base_span(tail.base_cx, half, r, w)
        cut = (edge, (left, base_y), (right, base_y), tip, base_y)
    else:
        base_x = 0.0 if edge == "left" else w
        top, bottom = _base_span(tail.base_cy, half, r, h)
        cut = (edge, (base_x, top), (base_x, bottom), tip, base_x)
    return _rounded_path(w, h, r, cut)


def _tail_cut(path: QPainterPath, start, end, tip, base_coord: float,
              horizontal: bool):
    """
    Two quadratics start→tip→end.  Each control point sits 25 % of the way
    from its base corner toward the tip along the edge, and halfway from
    the edge to the tip across it, which gives a soft trapezoid-to-point
    silhouette instead of a notch.
    """
    tx, ty = tip
    path.lineTo(*start)
    if horizontal:
        mid = base_coord + (ty - base_coord) * 0.5
        path.quadTo(start[0] + (tx - start[0]) * 0.25, mid, tx, ty)
        path.quadTo(end[0] + (tx - end[0]) * 0.25, mid, end[0], end[1])
    else:
        mid = base_coord + (tx - base_coord) * 0.5
        path.quadTo(mid, start[1] + (ty - start[1]) * 0.25, tx, ty)
        path.quadTo(mid, end[1] + (ty - end[1]) * 0.25, end[0], end[1])


def _rounded_path(w: float, h: float, r: float, cut=None) -> QPainterPath:
    """Clockwise rounded rectangle starting at (r, 0); ``cut`` optionally
    replaces a stretch of one straight edge with a tail."""
    edge = cut[0] if cut else None
    d = 2 * r
    path = QPainterPath()
    path.moveTo(r, 0)

    # top, left → right
    if edge == "top":
        _, a, b, tip, base = cut
        _tail_cut(path, a, b, tip, base, horizontal=True)
    path.lineTo(w - r, 0)
    path.arcTo(QRectF(w - d, 0, d, d), 90, -90)

    # right, top → bottom
    if edge == "right":
        _, a, b, tip, base = cut
        _tail_cut(path, a, b, tip, base, horizontal=False)
    path.lineTo(w, h - r)
    path.arcTo(QRectF(w - d, h - d, d, d), 0, -90)

    # bottom, right → left
    if edge == "bottom":
        _, a, b, tip, base = cut
        _tail_cut(path, b, a, tip, base, horizontal=True)
    path.lineTo(r, h)
    path.arcTo(QRectF(0, h - d, d, d), 270, -90)

    # left, bottom → top
    if edge == "left":
        _, a, b, tip, base = cut
        _tail_cut(path, b, a, tip, base, horizontal=False)
    path.lineTo(0, r)
    path.arcTo(QRectF(0, 0, d, d), 180, -90)

    path.closeSubpath()
    return path


# ---------------------------------------------------------------------------
# Thought cloud
# ---------------------------------------------------------------------------

def _thought_path(w: float, h: float, rand: SeededRandom) -> QPainterPath:
    """
    7–12 quadratic lobes around an ellipse of radii 0.3·w × 0.3·h.  Each
    lobe's control point is pushed outward by a factor in [1.3, 1.6].
    """
    cx, cy = w / 2, h / 2
    rx, ry = w * THOUGHT_RADIUS, h * THOUGHT_RADIUS
    lobes = math.floor(rand() * 6) + 7

    path = QPainterPath()
    for i in range(lobes):
        angle = (i / lobes) * math.pi * 2 - math.pi / 2
        next_angle = ((i + 1) / lobes) * math.pi * 2 - math.pi / 2
        if i == 0:
            path.moveTo(cx + rx * math.cos(angle), cy + ry * math.sin(angle))

        mid_angle = (angle + next_angle) / 2
        bulge = 1.3 + rand() * 0.3
        path.quadTo(cx + rx * bulge * math.cos(mid_angle),
                    cy + ry * bulge * math.sin(mid_angle),
                    cx + rx * math.cos(next_angle),
                    cy + ry * math.sin(next_angle))
    path.closeSubpath()
    return path


# ---------------------------------------------------------------------------
# Shout starburst
# ---------------------------------------------------------------------------

def _shout_path(w: float, h: float, rand: SeededRandom) -> QPainterPath:
    """
    28 points alternating between the outer ellipse (w/2, h/2) and the
    inner one (w/3.5, h/3.5).  Spikes vary by [0.6, 1.4]; valleys only by
    [0.9, 1.1] so the text area stays clear.
    """
    cx, cy = w / 2, h / 2
    outer_rx, outer_ry = w / 2, h / 2
    inner_rx, inner_ry = w / SHOUT_INNER_DIV, h / SHOUT_INNER_DIV

    path = QPainterPath()
    for i in range(SHOUT_SPIKES * 2):
        angle = (i * math.pi) / SHOUT_SPIKES - math.pi / 2
        if i % 2 == 0:
            factor = 0.6 + rand() * 0.8
            rx, ry = outer_rx * factor, outer_ry * factor
        else:
            factor = 0.9 + rand() * 0.2
            rx, ry = inner_rx * factor, inner_ry * factor
        px = cx + rx * math.cos(angle)
        py = cy + ry * math.sin(angle)
        if i == 0:
            path.moveTo(px, py)
        else:
            path.lineTo(px, py)
    path.closeSubpath()
    return path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def overall_bbox(bubble: Bubble) -> QRectF:
    """Bubble rect united with tail tips and dot circles, padded."""
    min_x, min_y, max_x, max_y = 0.0, 0.0, bubble.width, bubble.height
    for part in bubble.parts:
        if isinstance(part, SpeechTailPart):
            min_x, max_x = min(min_x, part.tip_x), max(max_x, part.tip_x)
            min_y, max_y = min(min_y, part.tip_y), max(max_y, part.tip_y)
        else:
            r = part.size / 2
            min_x, max_x = min(min_x, part.offset_x - r), max(max_x, part.offset_x + r)
            min_y, max_y = min(min_y, part.offset_y - r), max(max_y, part.offset_y + r)
    p = BBOX_PADDING
    return QRectF(min_x - p, min_y - p,
                  max_x - min_x + 2 * p, max_y - min_y + 2 * p)


def path_to_svg(path: QPainterPath, precision: int = 3) -> str:
    """Serialise a path to an SVG ``d`` string (quadratics appear as the
    cubics Qt stores them as)."""
    fmt = f"{{:.{precision}f}},{{:.{precision}f}}"
    out: list[str] = []
    for i in range(path.elementCount()):
        el = path.elementAt(i)
        pt = fmt.format(el.x, el.y)
        if el.type == QPainterPath.ElementType.MoveToElement:
            out.append("M" + pt)
        elif el.type == QPainterPath.ElementType.LineToElement:
            out.append("L" + pt)
        elif el.type == QPainterPath.ElementType.CurveToElement:
            out.append("C" + pt)
        else:
            out.append(pt)
    return " ".join(out)
