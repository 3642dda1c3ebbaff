import pytest

from bubble_model import (
    Bubble, BubbleType, FontName, MIN_BUBBLE_HEIGHT, MIN_BUBBLE_WIDTH,
    SpeechTailPart, ThoughtDotPart, ToolSettings, UnsupportedPartError,
    allows_part, normalize_bubble, part_from_dict, resolve_font_family,
)

from conftest import make_speech, make_thought


def test_normalize_clamps_size_to_minimums():
    b = normalize_bubble(make_speech(width=10, height=-5))
    assert b.width == MIN_BUBBLE_WIDTH
    assert b.height == MIN_BUBBLE_HEIGHT


def test_normalize_returns_same_value_when_valid():
    b = make_speech()
    assert normalize_bubble(b) is b


def test_normalize_drops_parts_the_type_does_not_allow():
    dots = make_thought().parts
    b = normalize_bubble(make_speech(parts=dots))
    assert b.parts == ()

    tail = make_speech().tail
    t = normalize_bubble(make_thought(parts=(tail,)))
    assert t.parts == ()


def test_normalize_keeps_only_first_tail():
    first = make_speech().tail
    second = SpeechTailPart("tail-2", 0, 45, 20, -30, 45, 30, 20)
    b = normalize_bubble(make_speech(parts=(first, second)))
    assert b.parts == (first,)


def test_allows_part_by_type():
    tail = make_speech().tail
    dot = make_thought().dots[0]
    assert allows_part(BubbleType.WHISPER, tail)
    assert not allows_part(BubbleType.SHOUT, tail)
    assert allows_part(BubbleType.THOUGHT, dot)
    assert not allows_part(BubbleType.DESCRIPTIVE, dot)


def test_part_from_dict_dispatches_on_type_tag():
    tail = part_from_dict({"id": "t", "type": "speech-tail", "baseCX": 1, "baseCY": 2,
                           "baseWidth": 20, "tipX": 3, "tipY": 4})
    assert isinstance(tail, SpeechTailPart)
    assert tail.initial_base_width == 20

    dot = part_from_dict({"id": "d", "type": "thought-dot",
                          "offsetX": 1, "offsetY": 2, "size": 8})
    assert isinstance(dot, ThoughtDotPart)


def test_part_from_dict_rejects_unknown_tag():
    with pytest.raises(UnsupportedPartError):
        part_from_dict({"id": "x", "type": "sparkle"})


def test_bubble_dict_uses_camel_case_keys():
    d = make_thought(shape_variant=3).to_dict()
    assert d["type"] == "thought"
    assert d["shapeVariant"] == 3
    assert d["parts"][0]["offsetX"] == 60
    assert Bubble.from_dict(d) == make_thought(shape_variant=3)


def test_bubble_from_dict_defaults_colors():
    d = make_speech().to_dict()
    d["textColor"] = ""
    del d["borderColor"]
    b = Bubble.from_dict(d)
    assert b.text_color == "#000000"
    assert b.border_color == "#000000"


def test_with_part_replaces_by_id():
    b = make_thought()
    moved = ThoughtDotPart("dot-2", 0, 0, 10)
    out = b.with_part(moved)
    assert out.part("dot-2") == moved
    assert out.part("dot-1") == b.part("dot-1")


def test_tool_settings_merge_ignores_unknown_keys():
    s = ToolSettings().merged({"activeBubbleType": "shout", "defaultDotCount": 6,
                               "somethingElse": True})
    assert s.active_bubble_type == BubbleType.SHOUT
    assert s.default_dot_count == 6
    assert ToolSettings().merged(s.to_dict()) == s


def test_resolve_font_family():
    assert resolve_font_family(FontName.BANGERS.value) == "Bangers"
    assert resolve_font_family("Georgia") == "Georgia"
    assert resolve_font_family("") == "Arial"
