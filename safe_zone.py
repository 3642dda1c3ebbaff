"""
safe_zone.py — Where text may go inside a bubble.

Two views of the same question:

  compute_safe_zone(bubble)  → one rectangle (width, height, x, y) used by
                               the font-size fitter.
  extent_at_y(bubble)        → y ↦ usable line width, used by the rich
                               text wrapper so lines shorten where the
                               outline narrows.

Rectangular types get a constant width from their factor; irregular ones
are measured by walking the outline from shapes.generate_shape() and
intersecting it with horizontal scanlines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
from PyQt6.QtGui import QPainterPath

from bubble_model import Bubble, BubbleType
from config import DEFAULT_CONFIG, EngineConfig
from shapes import generate_shape

log = logging.getLogger(__name__)

# (widthFactor, heightFactor): fraction of the box that is safe for text.
SAFE_TEXT_ZONES: dict[BubbleType, tuple[float, float]] = {
    BubbleType.SHOUT:       (0.50, 0.55),
    BubbleType.THOUGHT:     (0.50, 0.65),
    BubbleType.SPEECH_DOWN: (0.83, 0.83),
    BubbleType.SPEECH_UP:   (0.83, 0.83),
    BubbleType.WHISPER:     (0.80, 0.80),
    BubbleType.DESCRIPTIVE: (0.90, 0.85),
    BubbleType.TEXT_ONLY:   (0.95, 0.90),
}

CLOSED_FORM_TYPES = (BubbleType.DESCRIPTIVE, BubbleType.TEXT_ONLY)
IRREGULAR_TYPES   = (BubbleType.SHOUT, BubbleType.THOUGHT)
TEXT_PADDING      = 10
BAND_SCANLINES    = 5      # evenly spaced scanlines per row band
VERTEX_EPSILON    = 1e-6

ExtentFn = Callable[[float], float]


@dataclass(frozen=True)
class SafeZone:
    width: float
    height: float
    x: float
    y: float


def compute_safe_zone(bubble: Bubble) -> SafeZone:
    if bubble.type in IRREGULAR_TYPES:
        wf, hf = SAFE_TEXT_ZONES[bubble.type]
        tw, th = bubble.width * wf, bubble.height * hf
        return SafeZone(tw, th, (bubble.width - tw) / 2, (bubble.height - th) / 2)
    tw = max(0.0, bubble.width - 2 * TEXT_PADDING)
    th = max(0.0, bubble.height - 2 * TEXT_PADDING)
    return SafeZone(tw, th, TEXT_PADDING, TEXT_PADDING)


def closed_form_width(bubble: Bubble) -> float:
    return bubble.width * SAFE_TEXT_ZONES[bubble.type][0]


# ---------------------------------------------------------------------------
# Per-row extents
# ---------------------------------------------------------------------------

def extent_at_y(bubble: Bubble, config: EngineConfig = DEFAULT_CONFIG) -> ExtentFn:
    """
    Return a function giving the usable text width at bubble-local y.

    Sampled rows are not interpolated: a query gets the nearest row's
    value.  Queries outside [0, height] get 0.
    """
    width, height = bubble.width, bubble.height

    if bubble.type in CLOSED_FORM_TYPES:
        safe_width = closed_form_width(bubble)
        return lambda y: safe_width

    outline = generate_shape(bubble).outline
    rows = max(2, config.safe_zone_rows)
    samples = sample_path_extents(outline, width, height, rows,
                                  config.path_precision, config.safe_zone_shrink)

    def extent(y: float) -> float:
        if height <= 0 or y < 0 or y > height:
            return 0.0
        index = int(round(y / height * (rows - 1)))
        return float(samples[index])

    return extent


def sample_outline(path: QPainterPath, precision: int) -> np.ndarray:
    """``precision + 1`` points evenly spaced along the path's length."""
    if path.isEmpty():
        return np.zeros((0, 2))
    pts = [path.pointAtPercent(i / precision) for i in range(precision + 1)]
    return np.array([(p.x(), p.y()) for p in pts], dtype=float)


def scanline_crossings(points: np.ndarray, target_y: float) -> np.ndarray:
    """x positions where the polyline crosses y = target_y."""
    if len(points) < 2:
        return np.zeros(0)
    above = points[:, 1] < target_y
    flips = np.nonzero(above[1:] != above[:-1])[0]
    if flips.size == 0:
        return np.zeros(0)
    p0, p1 = points[flips], points[flips + 1]
    dy = p1[:, 1] - p0[:, 1]
    # a flip means one end is < target and the other >= target, so dy != 0
    t = np.divide(target_y - p0[:, 1], dy, out=np.zeros_like(dy), where=dy != 0)
    return p0[:, 0] + t * (p1[:, 0] - p0[:, 0])


def crossing_span(points: np.ndarray, target_y: float) -> float:
    """Distance between the outermost crossings, 0 when the line misses."""
    xs = scanline_crossings(points, target_y)
    if xs.size < 2:
        return 0.0
    return float(xs.max() - xs.min())


def _band_scanlines(points: np.ndarray, lo: float, hi: float) -> np.ndarray:
    # the span is linear between outline vertices, so its minimum over the
    # band sits on a band edge or just either side of a vertex
    ys = np.linspace(lo, hi, BAND_SCANLINES)
    if len(points):
        vy = points[:, 1]
        vy = vy[(vy > lo) & (vy < hi)]
        ys = np.concatenate([ys, vy - VERTEX_EPSILON, vy + VERTEX_EPSILON])
    return np.clip(ys, lo, hi)


def sample_path_extents(path: QPainterPath, width: float, height: float,
                        rows: int, precision: int, shrink: float) -> list[float]:
    """
    Usable width at ``rows`` evenly spaced y values.

    Each row stands for every y that is nearer to it than to its
    neighbours, so its value is the narrowest outermost-crossing span
    found across that band, times ``shrink`` and capped at the bubble
    width.  A band reaching a y the outline does not cross gets 0.
    """
    points = sample_outline(path, precision)
    step = height / (rows - 1)
    out: list[float] = []
    for i in range(rows):
        y = i * step
        lo, hi = max(0.0, y - step / 2), min(height, y + step / 2)
        span = min(crossing_span(points, by) for by in _band_scanlines(points, lo, hi))
        out.append(min(width, span * shrink))
    log.debug("Sampled %d rows over %d outline points", rows, len(points))
    return out
