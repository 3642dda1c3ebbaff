"""
rich_text.py — Styled-text document model, wrapping and centred drawing.

The editing surface hands over a Document (built from stored markup by
parse_markup(), or from a live QTextDocument by document_from_qt()).
Layout flattens it into styled runs, wraps them into lines that respect a
per-row width limit, and draw_rich_text() centres the block and issues
draw calls to a DrawingSurface.  Nothing is cached: every paint lays the
text out again from the current bubble.

Markup subset:
    <b> <strong>   bold          <i> <em>         italic
    <u>            underline     <s> <strike> <del> strikethrough
    <br>           hard break    <div> <p>        block (own line)
    <span style="font-size / font-family / color / font-weight /
                 font-style / text-decoration">
    <font face=".." color="..">
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field, replace
from html.parser import HTMLParser
from typing import Callable, Protocol, Sequence, Union

from bubble_model import resolve_font_family

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fonts and the surface abstraction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FontSpec:
    family: str
    size: float
    bold: bool = False
    italic: bool = False


class TextMeasurer(Protocol):
    def measure(self, text: str, font: FontSpec) -> float: ...


class DrawingSurface(TextMeasurer, Protocol):
    def set_font(self, font: FontSpec) -> None: ...
    def set_fill_color(self, color: str) -> None: ...
    def set_stroke_style(self, color: str, width: float) -> None: ...
    def fill_text(self, text: str, x: float, y: float) -> None: ...
    def stroke_line(self, x1: float, y1: float, x2: float, y2: float) -> None: ...


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextStyle:
    font_family: str
    font_size: float
    color: str = "#000000"
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False

    def apply(self, o: "StyleOverride") -> "TextStyle":
        changes = {k: v for k, v in vars(o).items() if v is not None}
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class StyleOverride:
    """Attributes a node sets for its subtree; None means inherit."""
    font_family: str | None = None
    font_size: float | None = None
    color: str | None = None
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    strikethrough: bool | None = None


# Line spacing relative to the font size: tight for small text, airy for
# large text.  (size px, extra px) control points, linear in between.
LINE_GAP_CURVE: tuple[tuple[float, float], ...] = (
    (5, -1.0), (12, 0.0), (20, 3.0), (30, 6.0), (40, 10.0),
)
MAX_GAP_REDUCTION = 0.8


def line_gap_offset(font_size: float) -> float:
    """Extra px added to ``font_size`` to get the line height."""
    pts = LINE_GAP_CURVE
    if font_size <= pts[0][0]:
        offset = pts[0][1]
    elif font_size >= pts[-1][0]:
        offset = pts[-1][1]
    else:
        offset = pts[-1][1]
        for (s0, g0), (s1, g1) in zip(pts, pts[1:]):
            if s0 <= font_size <= s1:
                offset = g0 + (g1 - g0) * (font_size - s0) / (s1 - s0)
                break
    return max(offset, -MAX_GAP_REDUCTION * font_size)


def line_height_for(font_size: float) -> float:
    return font_size + line_gap_offset(font_size)


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextRun:
    text: str


@dataclass(frozen=True)
class LineBreak:
    pass


@dataclass(frozen=True)
class Span:
    children: tuple["Node", ...] = ()
    style: StyleOverride = StyleOverride()


@dataclass(frozen=True)
class Block:
    children: tuple["Node", ...] = ()
    style: StyleOverride = StyleOverride()


Node = Union[TextRun, LineBreak, Span, Block]


@dataclass(frozen=True)
class Document:
    children: tuple[Node, ...] = ()

    @classmethod
    def plain(cls, text: str) -> "Document":
        return cls((TextRun(text),))


class MarkupError(ValueError):
    """Stored markup could not be turned into a Document."""


# ---------------------------------------------------------------------------
# Markup → Document
# ---------------------------------------------------------------------------

BLOCK_TAGS  = {"div", "p"}
BOLD_TAGS   = {"b", "strong"}
ITALIC_TAGS = {"i", "em"}
STRIKE_TAGS = {"s", "strike", "del"}

_DANGLING_TAG = re.compile(r"<[/a-zA-Z][^>]*$")
_NUMBER       = re.compile(r"\d+(?:\.\d+)?")


def _first_family(value: str) -> str:
    return value.split(",")[0].replace('"', "").replace("'", "").strip()


def _parse_css(style: str) -> dict[str, str]:
    props = {}
    for decl in style.split(";"):
        if ":" in decl:
            key, _, value = decl.partition(":")
            props[key.strip().lower()] = value.strip()
    return props


def _override_for(tag: str, attrs: dict[str, str | None]) -> StyleOverride:
    o: dict = {}
    css = _parse_css(attrs.get("style") or "")

    weight = css.get("font-weight", "")
    if tag in BOLD_TAGS or weight == "bold" or (weight.isdigit() and int(weight) >= 600):
        o["bold"] = True
    if tag in ITALIC_TAGS or css.get("font-style") == "italic":
        o["italic"] = True
    decoration = css.get("text-decoration", "")
    if tag == "u" or "underline" in decoration:
        o["underline"] = True
    if tag in STRIKE_TAGS or "line-through" in decoration:
        o["strikethrough"] = True

    if "font-size" in css:
        m = _NUMBER.search(css["font-size"])
        if m:
            o["font_size"] = int(float(m.group()))

    family = css.get("font-family") or attrs.get("face")
    if family:
        o["font_family"] = _first_family(family)

    color = css.get("color") or attrs.get("color")
    if color:
        o["color"] = color
    return StyleOverride(**o)


class _MarkupParser(HTMLParser):

    def __init__(self):
        super().__init__(convert_charrefs=True)
        # (tag, children, override); index 0 is the document root
        self._stack: list[tuple[str, list, StyleOverride | None]] = [("", [], None)]

    def handle_starttag(self, tag, attrs):
        if tag == "br":
            self._stack[-1][1].append(LineBreak())
            return
        self._stack.append((tag, [], _override_for(tag, dict(attrs))))

    def handle_startendtag(self, tag, attrs):
        if tag == "br":
            self._stack[-1][1].append(LineBreak())

    def handle_endtag(self, tag):
        if tag == "br":
            return
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth][0] == tag:
                break
        else:
            raise MarkupError(f"Unexpected closing tag </{tag}>")
        while len(self._stack) > depth:
            self._pop()

    def handle_data(self, data):
        if data:
            self._stack[-1][1].append(TextRun(data))

    def _pop(self):
        tag, children, override = self._stack.pop()
        cls = Block if tag in BLOCK_TAGS else Span
        self._stack[-1][1].append(cls(tuple(children), override))

    def document(self) -> Document:
        while len(self._stack) > 1:     # unclosed tags end with the input
            self._pop()
        return Document(tuple(self._stack[0][1]))


def parse_markup(markup: str) -> Document:
    """Raises MarkupError for a dangling '<tag' or a stray closing tag."""
    if _DANGLING_TAG.search(markup):
        raise MarkupError("Unterminated tag at end of markup")
    parser = _MarkupParser()
    parser.feed(markup)
    parser.close()
    return parser.document()


def document_from_qt(doc) -> Document:
    """
    Build a Document from a QTextDocument (the live editor's contents):
    one Block per QTextBlock, one styled Span per format range.
    """
    from PyQt6.QtCore import Qt

    default_font = doc.defaultFont()
    blocks: list[Node] = []
    block = doc.begin()
    while block.isValid():
        text = block.text().replace("\u2028", "\n")
        runs: list[Node] = []
        for rng in block.textFormats():
            fmt = rng.format
            font = fmt.font()
            o: dict = {}
            if font.bold():
                o["bold"] = True
            if font.italic():
                o["italic"] = True
            if font.underline():
                o["underline"] = True
            if font.strikeOut():
                o["strikethrough"] = True
            if font.family() and font.family() != default_font.family():
                o["font_family"] = font.family()
            size = font.pixelSize() if font.pixelSize() > 0 else font.pointSizeF()
            default_size = (default_font.pixelSize() if default_font.pixelSize() > 0
                            else default_font.pointSizeF())
            if size > 0 and size != default_size:
                o["font_size"] = round(size)
            brush = fmt.foreground()
            if brush.style() != Qt.BrushStyle.NoBrush:
                o["color"] = brush.color().name()
            piece = text[rng.start:rng.start + rng.length]
            runs.append(Span((TextRun(piece),), StyleOverride(**o)))
        if not runs and text:
            runs.append(TextRun(text))
        blocks.append(Block(tuple(runs)))
        block = block.next()
    return Document(tuple(blocks))


def _wrap_style(inner: str, o: StyleOverride | None) -> str:
    if o is None:
        return inner
    css = []
    if o.font_size is not None:
        css.append(f"font-size: {o.font_size:g}px")
    if o.font_family:
        css.append(f"font-family: {o.font_family}")
    if o.color:
        css.append(f"color: {o.color}")
    if css:
        inner = f'<span style="{"; ".join(css)}">{inner}</span>'
    for on, tag in ((o.strikethrough, "s"), (o.underline, "u"),
                    (o.italic, "i"), (o.bold, "b")):
        if on:
            inner = f"<{tag}>{inner}</{tag}>"
    return inner


def document_to_markup(doc: Document) -> str:
    """Inverse of parse_markup() for the supported subset; this is what a
    bubble stores after inline editing."""

    def emit(node: Node) -> str:
        if isinstance(node, TextRun):
            return html.escape(node.text, quote=False).replace("\n", "<br>")
        if isinstance(node, LineBreak):
            return "<br>"
        inner = _wrap_style("".join(emit(c) for c in node.children), node.style)
        return f"<div>{inner}</div>" if isinstance(node, Block) else inner

    return "".join(emit(c) for c in doc.children)


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------

@dataclass
class TextSegment:
    text: str
    style: TextStyle
    width: float = 0.0
    height: float = 0.0


BREAK = None   # hard line break marker in a flattened stream

FlatItem = Union[TextSegment, None]


def flatten_document(doc: Document, default: TextStyle) -> list[FlatItem]:
    """
    Walk the tree with an inherited style.  Text becomes TextSegments;
    <br>, newlines in text and block boundaries become BREAK.  Trailing
    breaks are dropped.
    """
    out: list[FlatItem] = []

    def at_line_start() -> bool:
        return not out or out[-1] is BREAK

    def walk(node: Node, style: TextStyle):
        if isinstance(node, TextRun):
            for i, piece in enumerate(node.text.split("\n")):
                if i:
                    out.append(BREAK)
                if piece:
                    out.append(TextSegment(piece, style))
        elif isinstance(node, LineBreak):
            out.append(BREAK)
        elif isinstance(node, Block):
            if not at_line_start():
                out.append(BREAK)
            inner = style.apply(node.style)
            for child in node.children:
                walk(child, inner)
            if not at_line_start():
                out.append(BREAK)
        elif isinstance(node, Span):
            inner = style.apply(node.style)
            for child in node.children:
                walk(child, inner)

    for child in doc.children:
        walk(child, default)
    while out and out[-1] is BREAK:
        out.pop()
    return out


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------

@dataclass
class TextLine:
    segments: list[TextSegment] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def add(self, text: str, style: TextStyle, width: float):
        last = self.segments[-1] if self.segments else None
        if last is not None and last.style == style:
            last.text += text
            last.width += width
        else:
            self.segments.append(TextSegment(text, style, width, style.font_size))
        self.width += width
        self.height = max(self.height, line_height_for(style.font_size))


FontResolver = Callable[[str], str]
ExtentFn = Callable[[float], float]


def font_spec(style: TextStyle, resolver: FontResolver = resolve_font_family) -> FontSpec:
    return FontSpec(resolver(style.font_family), style.font_size,
                    style.bold, style.italic)


def _as_document(markup: Union[str, Document]) -> Document:
    if isinstance(markup, Document):
        return markup
    try:
        return parse_markup(markup)
    except MarkupError as e:
        log.warning("Malformed markup, drawing as plain text: %s", e)
        return Document.plain(markup)


_TOKENS = re.compile(r"(\s+)")


def layout_rich_text(markup: Union[str, Document], width: float,
                     default_style: TextStyle, measurer: TextMeasurer,
                     font_resolver: FontResolver = resolve_font_family,
                     extent: ExtentFn | None = None,
                     origin_y: float = 0.0) -> list[TextLine]:
    """
    Wrap styled text into lines.  A line accepts tokens while its width
    stays within ``extent(origin_y + y)`` (or ``width`` without an extent
    function), where y is the height of the lines already closed.  Tokens
    wider than a whole line are split character by character.
    """
    items = flatten_document(_as_document(markup), default_style)
    empty_height = line_height_for(default_style.font_size)

    lines: list[TextLine] = []
    line = TextLine()
    current_y = 0.0
    soft = False     # the open line was started by wrapping

    def close(wrapped: bool):
        nonlocal line, current_y, soft
        if not line.segments:
            line.height = empty_height
        lines.append(line)
        current_y += line.height
        line = TextLine()
        soft = wrapped

    def limit() -> float:
        return extent(origin_y + current_y) if extent else width

    for item in items:
        if item is BREAK:
            if soft and not line.segments:
                soft = False
                continue
            close(False)
            continue

        style = item.style
        spec = font_spec(style, font_resolver)
        for token in _TOKENS.split(item.text):
            if not token:
                continue
            max_w = limit()
            tw = measurer.measure(token, spec)

            if token.isspace():
                if soft and not line.segments:
                    continue
                if line.segments and line.width + tw > max_w:
                    close(True)
                    continue
                line.add(token, style, tw)
                continue

            if tw <= max_w:
                if line.segments and line.width + tw > max_w:
                    close(True)
                line.add(token, style, tw)
                continue

            # token wider than a full line: break it greedily
            rest = token
            while rest:
                avail = limit() - line.width
                chunk, chunk_w = "", 0.0
                for ch in rest:
                    test_w = measurer.measure(chunk + ch, spec)
                    if test_w > avail:
                        break
                    chunk, chunk_w = chunk + ch, test_w
                if not chunk:
                    if line.segments:
                        close(True)
                        continue
                    chunk = rest[0]
                    chunk_w = measurer.measure(chunk, spec)
                line.add(chunk, style, chunk_w)
                rest = rest[len(chunk):]
                if rest:
                    close(True)

    if line.segments:
        lines.append(line)
    return lines


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------

UNDERLINE_OFFSET = 0.4      # below the line middle, in font sizes
DECORATION_WIDTH = 1 / 15   # stroke width, in font sizes
CENTRE_PASSES    = 3


def draw_lines(surface: DrawingSurface, lines: Sequence[TextLine],
               x: float, y: float, width: float, height: float,
               font_resolver: FontResolver = resolve_font_family):
    """Centre the block vertically and each line horizontally."""
    total = sum(line.height for line in lines)
    draw_y = y + (height - total) / 2

    for line in lines:
        cur_x = max(x, x + (width - line.width) / 2)
        # every run on the line shares the line's vertical middle
        mid = draw_y + line.height / 2
        for seg in line.segments:
            if not seg.text:
                continue
            style = seg.style
            surface.set_font(font_spec(style, font_resolver))
            surface.set_fill_color(style.color)
            surface.fill_text(seg.text, cur_x, mid)

            if style.underline or style.strikethrough:
                surface.set_stroke_style(style.color,
                                         max(1.0, style.font_size * DECORATION_WIDTH))
                if style.underline:
                    uy = mid + style.font_size * UNDERLINE_OFFSET
                    surface.stroke_line(cur_x, uy, cur_x + seg.width, uy)
                if style.strikethrough:
                    surface.stroke_line(cur_x, mid, cur_x + seg.width, mid)
            cur_x += seg.width
        draw_y += line.height


def draw_rich_text(surface: DrawingSurface, markup: Union[str, Document],
                   x: float, y: float, width: float, height: float,
                   default_style: TextStyle,
                   font_resolver: FontResolver = resolve_font_family,
                   extent: ExtentFn | None = None) -> None:
    """
    Lay out and draw ``markup`` centred in the given rectangle.

    With an extent function the rows are measured where the centred block
    lands, not at the rectangle's top: the layout is repeated from the
    block's new top edge until it settles.
    """
    origin = y
    lines = layout_rich_text(markup, width, default_style, surface,
                             font_resolver, extent, origin_y=origin)
    if extent is not None:
        for _ in range(CENTRE_PASSES):
            total = sum(line.height for line in lines)
            top = y + max(0.0, (height - total) / 2)
            if abs(top - origin) < 0.5:
                break
            origin = top
            lines = layout_rich_text(markup, width, default_style, surface,
                                     font_resolver, extent, origin_y=origin)
    draw_lines(surface, lines, x, y, width, height, font_resolver)
