"""
bubble_model.py — Immutable bubble / part values shared by every layer.

A Bubble is never edited in place: interactions, the orchestrator and the
undo stack all swap in a new value built with dataclasses.replace().  That
is what lets the shape, safe-zone and text layers recompute everything
from the current value on every paint.

Parts are a closed union keyed by their ``type`` tag:
    SpeechTailPart  ("speech-tail")  — speech-down / speech-up / whisper
    ThoughtDotPart  ("thought-dot")  — thought
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_BUBBLE_WIDTH    = 50
MIN_BUBBLE_HEIGHT   = 30
MIN_TAIL_LENGTH     = 10
MIN_TAIL_BASE_WIDTH = 10
MIN_DOT_SIZE        = 5
MIN_DOT_COUNT       = 1
MIN_FONT_SIZE       = 5
MAX_FONT_SIZE       = 40

DEFAULT_TEXT  = "Your text here"
DEFAULT_COLOR = "#000000"

TAIL_PART = "speech-tail"
DOT_PART  = "thought-dot"


class BubbleType(str, Enum):
    SPEECH_DOWN = "speech-down"
    SPEECH_UP   = "speech-up"
    THOUGHT     = "thought"
    SHOUT       = "shout"
    DESCRIPTIVE = "descriptive"
    WHISPER     = "whisper"
    TEXT_ONLY   = "text-only"


class FontName(str, Enum):
    COMIC   = "font-comic"
    BANGERS = "font-bangers"
    INDIE   = "font-indie"
    MARKER  = "font-marker"
    ARIAL   = "font-arial"


FONT_FAMILY_MAP: dict[str, str] = {
    FontName.COMIC.value:   "Comic Neue",
    FontName.BANGERS.value: "Bangers",
    FontName.INDIE.value:   "Indie Flower",
    FontName.MARKER.value:  "Permanent Marker",
    FontName.ARIAL.value:   "Arial",
}

TAIL_TYPES = (BubbleType.SPEECH_DOWN, BubbleType.SPEECH_UP, BubbleType.WHISPER)
DOT_TYPES  = (BubbleType.THOUGHT,)
VARIANT_TYPES = (BubbleType.THOUGHT, BubbleType.SHOUT)
BUBBLE_REQUIRES_PARTS = TAIL_TYPES + DOT_TYPES


class UnsupportedPartError(ValueError):
    """A part record carries a type tag outside the known union."""


def resolve_font_family(name: str) -> str:
    """Map a FontName token (or a raw family) to a concrete family name."""
    return FONT_FAMILY_MAP.get(name, name or "Arial")


# ---------------------------------------------------------------------------
# Parts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpeechTailPart:
    """Tail anchored at (base_cx, base_cy) in bubble-local space."""
    id: str
    base_cx: float
    base_cy: float
    base_width: float
    tip_x: float
    tip_y: float
    initial_length: float
    initial_base_width: float
    type: str = field(default=TAIL_PART, init=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id, "type": self.type,
            "baseCX": self.base_cx, "baseCY": self.base_cy,
            "baseWidth": self.base_width,
            "tipX": self.tip_x, "tipY": self.tip_y,
            "initialLength": self.initial_length,
            "initialBaseWidth": self.initial_base_width,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SpeechTailPart":
        base_width = float(d.get("baseWidth", MIN_TAIL_BASE_WIDTH))
        return cls(
            id=str(d["id"]),
            base_cx=float(d["baseCX"]), base_cy=float(d["baseCY"]),
            base_width=base_width,
            tip_x=float(d["tipX"]), tip_y=float(d["tipY"]),
            initial_length=float(d.get("initialLength", MIN_TAIL_LENGTH)),
            initial_base_width=float(d.get("initialBaseWidth", base_width)),
        )


@dataclass(frozen=True)
class ThoughtDotPart:
    """Circle of diameter ``size`` centred at a bubble-local offset."""
    id: str
    offset_x: float
    offset_y: float
    size: float
    type: str = field(default=DOT_PART, init=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type,
                "offsetX": self.offset_x, "offsetY": self.offset_y,
                "size": self.size}

    @classmethod
    def from_dict(cls, d: dict) -> "ThoughtDotPart":
        return cls(id=str(d["id"]),
                   offset_x=float(d["offsetX"]), offset_y=float(d["offsetY"]),
                   size=float(d["size"]))


Part = Union[SpeechTailPart, ThoughtDotPart]

_PART_TYPES = {TAIL_PART: SpeechTailPart, DOT_PART: ThoughtDotPart}


def part_from_dict(d: dict) -> Part:
    tag = d.get("type")
    try:
        cls = _PART_TYPES[tag]
    except KeyError:
        raise UnsupportedPartError(f"Unknown part type: {tag!r}")
    return cls.from_dict(d)


# ---------------------------------------------------------------------------
# Bubble
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bubble:
    id: str
    type: BubbleType
    text: str
    x: float
    y: float
    width: float
    height: float
    font_family: str = FontName.COMIC.value
    font_size: int = 12
    text_color: str = DEFAULT_COLOR
    border_color: str = DEFAULT_COLOR
    z_index: int = 0
    parts: tuple[Part, ...] = ()
    shape_variant: int | None = None

    @property
    def tail(self) -> SpeechTailPart | None:
        for p in self.parts:
            if isinstance(p, SpeechTailPart):
                return p
        return None

    @property
    def dots(self) -> list[ThoughtDotPart]:
        return [p for p in self.parts if isinstance(p, ThoughtDotPart)]

    def part(self, part_id: str) -> Part | None:
        for p in self.parts:
            if p.id == part_id:
                return p
        return None

    def with_part(self, new_part: Part) -> "Bubble":
        """Return a copy with the part of the same id replaced."""
        parts = tuple(new_part if p.id == new_part.id else p for p in self.parts)
        return replace(self, parts=parts)

    def to_dict(self) -> dict:
        d = {
            "id": self.id, "type": self.type.value, "text": self.text,
            "x": self.x, "y": self.y,
            "width": self.width, "height": self.height,
            "fontFamily": self.font_family, "fontSize": self.font_size,
            "textColor": self.text_color, "borderColor": self.border_color,
            "zIndex": self.z_index,
            "parts": [p.to_dict() for p in self.parts],
        }
        if self.shape_variant is not None:
            d["shapeVariant"] = self.shape_variant
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Bubble":
        variant = d.get("shapeVariant")
        return cls(
            id=str(d["id"]),
            type=BubbleType(d["type"]),
            text=d.get("text", ""),
            x=float(d.get("x", 0)), y=float(d.get("y", 0)),
            width=float(d.get("width", MIN_BUBBLE_WIDTH)),
            height=float(d.get("height", MIN_BUBBLE_HEIGHT)),
            font_family=d.get("fontFamily", FontName.COMIC.value),
            font_size=int(d.get("fontSize", 12)),
            text_color=d.get("textColor") or DEFAULT_COLOR,
            border_color=d.get("borderColor") or DEFAULT_COLOR,
            z_index=int(d.get("zIndex", 0)),
            parts=tuple(part_from_dict(p) for p in d.get("parts", [])),
            shape_variant=int(variant) if variant is not None else None,
        )


def allows_part(bubble_type: BubbleType, part: Part) -> bool:
    if isinstance(part, SpeechTailPart):
        return bubble_type in TAIL_TYPES
    if isinstance(part, ThoughtDotPart):
        return bubble_type in DOT_TYPES
    return False


def normalize_bubble(bubble: Bubble) -> Bubble:
    """
    Bring a bubble from any source back inside the model invariants:
    size clamped to the minimums, parts filtered by bubble type and at
    most one tail.  Never raises.
    """
    width  = max(MIN_BUBBLE_WIDTH, bubble.width)
    height = max(MIN_BUBBLE_HEIGHT, bubble.height)
    if width != bubble.width or height != bubble.height:
        log.warning("Bubble %s below minimum size (%sx%s), clamped",
                    bubble.id, bubble.width, bubble.height)

    parts: list[Part] = []
    has_tail = False
    for p in bubble.parts:
        if not allows_part(bubble.type, p):
            log.warning("Dropping %s part %s on %s bubble %s",
                        p.type, p.id, bubble.type.value, bubble.id)
            continue
        if isinstance(p, SpeechTailPart):
            if has_tail:
                log.warning("Dropping extra tail %s on bubble %s", p.id, bubble.id)
                continue
            has_tail = True
        parts.append(p)

    if (width, height, tuple(parts)) == (bubble.width, bubble.height, bubble.parts):
        return bubble
    return replace(bubble, width=width, height=height, parts=tuple(parts))


# ---------------------------------------------------------------------------
# ToolSettings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolSettings:
    """Defaults used when a new bubble is placed."""
    active_bubble_type: BubbleType = BubbleType.SPEECH_DOWN
    active_font_family: str = FontName.COMIC.value
    active_font_size: int = 12
    active_text_color: str = DEFAULT_COLOR
    active_border_color: str = DEFAULT_COLOR
    default_tail_length: float = 30
    default_tail_base_width: float = 20
    default_dot_count: int = 4
    default_dot_size: float = 15

    _KEYS = {
        "activeBubbleType": "active_bubble_type",
        "activeFontFamily": "active_font_family",
        "activeFontSize": "active_font_size",
        "activeTextColor": "active_text_color",
        "activeBorderColor": "active_border_color",
        "defaultTailLength": "default_tail_length",
        "defaultTailBaseWidth": "default_tail_base_width",
        "defaultDotCount": "default_dot_count",
        "defaultDotSize": "default_dot_size",
    }

    def to_dict(self) -> dict:
        d = {key: getattr(self, attr) for key, attr in self._KEYS.items()}
        d["activeBubbleType"] = self.active_bubble_type.value
        return d

    def merged(self, d: dict) -> "ToolSettings":
        """Return a copy overridden by the known keys of a persisted record."""
        changes = {attr: d[key] for key, attr in self._KEYS.items() if key in d}
        if "active_bubble_type" in changes:
            changes["active_bubble_type"] = BubbleType(changes["active_bubble_type"])
        return replace(self, **changes)
