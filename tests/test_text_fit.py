import pytest

from bubble_model import BubbleType, DEFAULT_TEXT
from text_fit import (
    FIT_MIN_SIZE, auto_fit_bubble_text, detect_text_overflow, fit_font_size,
    measure_text_block, plain_text,
)

from conftest import make_speech, make_thought

LONG_THOUGHT = "Hello world this is a long thought"


def test_thought_scenario_reduces_or_bottoms_out(measurer):
    b = make_thought(font_size=40, width=100, height=80)
    result = fit_font_size(LONG_THOUGHT, b, measurer=measurer)
    assert result.font_size >= FIT_MIN_SIZE
    if not result.fits:
        assert result.font_size == FIT_MIN_SIZE
    assert result.font_size < 40


def test_short_text_keeps_requested_size(measurer):
    b = make_speech(font_size=14, width=300, height=150)
    result = fit_font_size("Hi", b, measurer=measurer)
    assert result.fits
    assert result.font_size == 14
    assert result.scale_factor == 1.0


def test_start_size_is_capped_at_max(measurer):
    b = make_speech(font_size=90, width=600, height=400)
    assert fit_font_size("Hi", b, measurer=measurer).font_size == 40


@pytest.mark.parametrize("text", ["Hi there", LONG_THOUGHT, "A B C D E F G H I J K"])
def test_bigger_bubble_never_gets_smaller_font(measurer, text):
    sizes = []
    for w, h in [(80, 50), (120, 80), (200, 120), (320, 200)]:
        b = make_speech(font_size=40, width=w, height=h)
        sizes.append(fit_font_size(text, b, measurer=measurer).font_size)
    assert sizes == sorted(sizes)


def test_measure_text_block_wraps_words(measurer):
    # 10px font: 6px per character
    dims = measure_text_block("aaa bbb ccc", "Arial", 10, 45, measurer)
    assert dims.lines == 2
    assert dims.width == pytest.approx(42)
    assert dims.height == pytest.approx(2 * 10 * 1.4)


def test_plain_text_strips_markup():
    assert plain_text("<b>Hi</b><br>there &amp; you") == "Hi there & you"


def test_detect_overflow(measurer):
    b = make_speech(font_size=30, width=60, height=40)
    assert detect_text_overflow(LONG_THOUGHT, b, measurer)
    assert not detect_text_overflow("ok", make_speech(font_size=10), measurer)


def test_auto_fit_skips_placeholder_and_text_only(measurer):
    b = make_speech(text=DEFAULT_TEXT, font_size=40, width=60, height=40)
    assert auto_fit_bubble_text(b, measurer) is b
    t = make_speech(type=BubbleType.TEXT_ONLY, text=LONG_THOUGHT, font_size=40, parts=())
    assert auto_fit_bubble_text(t, measurer) is t


def test_auto_fit_shrinks_font(measurer):
    b = make_speech(text=LONG_THOUGHT, font_size=40, width=120, height=80)
    fitted = auto_fit_bubble_text(b, measurer)
    assert fitted.font_size < 40
    assert fitted.text == b.text
