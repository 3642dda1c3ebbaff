import numpy as np
import pytest

from bubble_model import BubbleType
from config import EngineConfig
from safe_zone import (
    SAFE_TEXT_ZONES, compute_safe_zone, crossing_span, extent_at_y, sample_outline,
    scanline_crossings,
    sample_path_extents,
)
from shapes import generate_shape

from conftest import make_speech, make_thought


@pytest.mark.parametrize("kind", list(BubbleType))
def test_safe_zone_never_exceeds_bubble(kind):
    b = make_speech(type=kind, parts=(), width=180, height=110)
    zone = compute_safe_zone(b)
    assert 0 <= zone.width <= b.width
    assert 0 <= zone.height <= b.height
    assert zone.x + zone.width <= b.width
    assert zone.y + zone.height <= b.height


@pytest.mark.parametrize("kind", list(BubbleType))
def test_extent_is_conservative_on_every_row(kind):
    b = make_speech(type=kind, parts=(), width=180, height=110)
    extent = extent_at_y(b)
    for y in np.linspace(0, b.height, 23):
        assert 0 <= extent(y) <= b.width


def test_irregular_zone_uses_type_ratios():
    b = make_thought(width=200, height=100)
    zone = compute_safe_zone(b)
    wf, hf = SAFE_TEXT_ZONES[BubbleType.THOUGHT]
    assert zone.width == pytest.approx(200 * wf)
    assert zone.height == pytest.approx(100 * hf)
    assert zone.x == pytest.approx((200 - zone.width) / 2)


def test_closed_form_extent_is_constant():
    b = make_speech(type=BubbleType.DESCRIPTIVE, parts=(), width=200)
    extent = extent_at_y(b)
    assert extent(0) == extent(45) == pytest.approx(200 * 0.90)


def test_pill_extent_is_widest_in_the_middle():
    b = make_speech(parts=(), width=200, height=120)
    extent = extent_at_y(b)
    assert extent(60) == pytest.approx(140, abs=2)
    assert extent(60) > extent(10)


def test_rows_missing_the_outline_are_empty():
    b = make_thought(width=200, height=160)
    extent = extent_at_y(b)
    assert extent(0) == 0
    assert extent(80) > 0


def test_queries_outside_the_box_are_empty():
    b = make_speech(parts=(), width=160)
    extent = extent_at_y(b)
    assert extent(-5) == 0
    assert extent(b.height + 1) == 0


SAMPLED_BUBBLES = [
    make_speech(),
    make_speech(parts=(), width=200, height=120),
    make_speech(type=BubbleType.WHISPER, parts=(), width=90, height=140),
    make_speech(type=BubbleType.SHOUT, parts=(), width=180, height=110),
    make_thought(width=200, height=160),
    make_thought(shape_variant=3),
]


@pytest.mark.parametrize("bubble", SAMPLED_BUBBLES)
def test_extent_stays_inside_the_outline(bubble):
    dense = sample_outline(generate_shape(bubble).outline, 4000)
    extent = extent_at_y(bubble)
    for y in np.linspace(-5, bubble.height + 5, 301):
        assert extent(y) <= crossing_span(dense, y) + 1e-6


def test_more_rows_follow_config():
    b = make_speech(parts=(), width=160)
    coarse = extent_at_y(b, EngineConfig(safe_zone_rows=3))
    # every y in the middle band answers with the middle row
    assert coarse(b.height * 0.3) == coarse(b.height * 0.5) > 0
    assert coarse(b.height * 0.5) < extent_at_y(b)(b.height * 0.5)


def test_scanline_crossings_on_a_square():
    square = np.array([(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)], dtype=float)
    xs = sorted(scanline_crossings(square, 5))
    assert xs == pytest.approx([0, 10])
    assert scanline_crossings(square, 20).size == 0


def test_sample_path_extents_applies_shrink():
    b = make_speech(type=BubbleType.DESCRIPTIVE, parts=(), width=100, height=60)
    path = generate_shape(b).outline
    rows = sample_path_extents(path, 100, 60, rows=5, precision=200, shrink=0.7)
    assert len(rows) == 5
    assert rows[2] == pytest.approx(70, abs=1.5)
