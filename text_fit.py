"""
text_fit.py — Pick the largest font size whose wrapped text fits a bubble.

The fitter walks down one size at a time from the bubble's own size
(capped at ``max_size``) so the result stays as close as possible to what
the user chose.  Measurement goes through a TextMeasurer; by default the
Qt font metrics one.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, replace

from bubble_model import Bubble, BubbleType, DEFAULT_TEXT, resolve_font_family
from config import DEFAULT_CONFIG, EngineConfig
from rich_text import FontSpec, TextMeasurer
from safe_zone import compute_safe_zone

log = logging.getLogger(__name__)

FIT_MIN_SIZE    = 8
FIT_MAX_SIZE    = 40
LINE_HEIGHT_EM  = 1.4

_BREAK_TAG = re.compile(r"<(?:br|/?div|/?p)\b[^>]*>", re.IGNORECASE)
_TAG       = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class TextBlockSize:
    width: float
    height: float
    lines: int


@dataclass(frozen=True)
class FitResult:
    font_size: int
    fits: bool
    text_width: float
    text_height: float
    scale_factor: float


def _default_measurer() -> TextMeasurer:
    from qt_surface import QtTextMeasurer
    return QtTextMeasurer()


def plain_text(markup: str) -> str:
    return html.unescape(_TAG.sub("", _BREAK_TAG.sub(" ", markup)))


def measure_text_block(text: str, font_family: str, font_size: float,
                       max_width: float, measurer: TextMeasurer) -> TextBlockSize:
    """Greedy word wrap of the markup-stripped text at one size."""
    spec = FontSpec(font_family, font_size)
    words = plain_text(text).split()

    lines: list[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}" if current else word
        if measurer.measure(candidate, spec) > max_width and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current or not lines:
        lines.append(current)

    widest = max(measurer.measure(line, spec) for line in lines)
    return TextBlockSize(widest, len(lines) * font_size * LINE_HEIGHT_EM, len(lines))


def fit_font_size(text: str, bubble: Bubble, font_family: str | None = None,
                  min_size: int = FIT_MIN_SIZE, max_size: int = FIT_MAX_SIZE,
                  measurer: TextMeasurer | None = None,
                  config: EngineConfig = DEFAULT_CONFIG) -> FitResult:
    """
    Largest size in [min_size, min(bubble.font_size, max_size)] whose text
    block fits the bubble's safe zone, trying at most
    ``config.fit_max_iterations`` sizes.  Falls back to ``min_size`` with
    ``fits`` telling whether even that fits.
    """
    measurer = measurer or _default_measurer()
    family = resolve_font_family(font_family or bubble.font_family)
    zone = compute_safe_zone(bubble)
    target = bubble.font_size

    def scale(size: int) -> float:
        return size / target if target > 0 else 1.0

    size = min(target, max_size)
    iterations = 0
    while size >= min_size and iterations < config.fit_max_iterations:
        dims = measure_text_block(text, family, size, zone.width, measurer)
        if dims.height <= zone.height and dims.width <= zone.width:
            return FitResult(size, True, dims.width, dims.height, scale(size))
        size -= 1
        iterations += 1

    dims = measure_text_block(text, family, min_size, zone.width, measurer)
    fits = dims.height <= zone.height and dims.width <= zone.width
    if not fits:
        log.debug("Text does not fit bubble %s even at %dpx", bubble.id, min_size)
    return FitResult(min_size, fits, dims.width, dims.height, scale(min_size))


def detect_text_overflow(text: str, bubble: Bubble,
                         measurer: TextMeasurer | None = None) -> bool:
    """True when the text at the bubble's own size overflows its safe zone."""
    measurer = measurer or _default_measurer()
    zone = compute_safe_zone(bubble)
    dims = measure_text_block(text, resolve_font_family(bubble.font_family),
                              bubble.font_size, zone.width, measurer)
    return dims.height > zone.height or dims.width > zone.width


def auto_fit_bubble_text(bubble: Bubble,
                         measurer: TextMeasurer | None = None,
                         config: EngineConfig = DEFAULT_CONFIG) -> Bubble:
    """Copy of ``bubble`` with its font size fitted; the same value when
    nothing needs to change."""
    if bubble.type == BubbleType.TEXT_ONLY or not bubble.text \
            or bubble.text == DEFAULT_TEXT:
        return bubble
    result = fit_font_size(bubble.text, bubble, measurer=measurer, config=config)
    if result.font_size == bubble.font_size:
        return bubble
    return replace(bubble, font_size=result.font_size)
