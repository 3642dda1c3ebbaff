import json
from dataclasses import replace

import pytest

from bubble_model import BubbleType, FontName, ThoughtDotPart
from config import EngineConfig
from orchestrator import (
    DEFAULT_CANVAS, BubbleOrchestrator, ProjectFormatError, ProjectImage, fit_canvas_size,
)
from text_fit import FIT_MIN_SIZE

from conftest import FakeMeasurer

LONG_TEXT = "word " * 60


@pytest.fixture
def orch():
    o = BubbleOrchestrator(measurer=FakeMeasurer())
    o.set_image(ProjectImage("page.png", 1600, 1200), (800, 600))
    return o


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def test_add_requires_an_image():
    o = BubbleOrchestrator(measurer=FakeMeasurer())
    assert o.add_bubble(10, 10) is None
    assert o.bubbles == []


def test_add_places_default_speech_bubble(orch):
    added = []
    orch.bubble_added.connect(lambda bid: added.append(bid))
    b = orch.add_bubble(400, 300)
    assert added == [b.id]
    assert (b.x, b.y, b.width, b.height) == (325, 255, 150, 90)
    assert b.type == BubbleType.SPEECH_DOWN
    tail = b.tail
    assert (tail.base_cx, tail.base_cy, tail.tip_x, tail.tip_y) == (75, 90, 75, 120)
    assert b.z_index == 10
    assert orch.next_z_index == 11
    assert orch.selected_id == b.id


def test_new_bubble_is_clamped_into_canvas(orch):
    a = orch.add_bubble(0, 0)
    assert (a.x, a.y) == (0, 0)
    b = orch.add_bubble(800, 600)
    assert (b.x, b.y) == (650, 510)


def test_bubble_ids_are_unique(orch):
    ids = {orch.add_bubble(100, 100).id for _ in range(20)}
    assert len(ids) == 20


def test_speech_up_tail_points_up(orch):
    orch.update_tool_settings(active_bubble_type=BubbleType.SPEECH_UP)
    tail = orch.add_bubble(400, 300).tail
    assert tail.base_cy == 0
    assert tail.tip_y == -30


def test_thought_gets_shrinking_dots(orch):
    orch.update_tool_settings(active_bubble_type=BubbleType.THOUGHT)
    b = orch.add_bubble(400, 300)
    sizes = [d.size for d in b.dots]
    assert len(sizes) == 4
    assert sizes == sorted(sizes, reverse=True)
    assert all(isinstance(p, ThoughtDotPart) for p in b.parts)


def test_descriptive_has_no_parts(orch):
    orch.update_tool_settings(active_bubble_type=BubbleType.DESCRIPTIVE)
    assert orch.add_bubble(400, 300).parts == ()


# ---------------------------------------------------------------------------
# Undo / redo
# ---------------------------------------------------------------------------

def test_undo_redo_add(orch):
    b = orch.add_bubble(400, 300)
    orch.undo_stack.undo()
    assert orch.bubble(b.id) is None
    assert orch.selected_id is None
    orch.undo_stack.redo()
    assert orch.bubble(b.id) == b


def test_delete_and_undo(orch):
    b = orch.add_bubble(400, 300)
    orch.delete_selected()
    assert orch.bubbles == []
    orch.undo_stack.undo()
    assert orch.bubble(b.id) == b


def test_select_raises_to_top(orch):
    a = orch.add_bubble(100, 100)
    b = orch.add_bubble(200, 200)
    orch.select(a.id)
    assert [x.id for x in orch.bubbles] == [b.id, a.id]
    assert orch.bubble(a.id).z_index == 12


def test_undo_keeps_current_stacking(orch):
    a = orch.add_bubble(100, 100)
    orch.add_bubble(200, 200)
    orch.adjust_font_size(a.id, 1)
    orch.select(a.id)
    orch.undo_stack.undo()
    restored = orch.bubble(a.id)
    assert restored.font_size == 12
    assert restored.z_index == 12


def test_font_size_steps_and_clamps(orch):
    b = orch.add_bubble(400, 300)
    orch.adjust_font_size(b.id, 1)
    assert orch.bubble(b.id).font_size == 14
    orch.adjust_font_size(b.id, 100)
    assert orch.bubble(b.id).font_size == 40
    orch.adjust_font_size(b.id, -100)
    assert orch.bubble(b.id).font_size == 5


def test_font_size_nudges_merge_into_one_undo_step(orch):
    b = orch.add_bubble(400, 300)
    for _ in range(3):
        orch.adjust_font_size(b.id, 1)
    assert orch.undo_stack.count() == 2
    orch.undo_stack.undo()
    assert orch.bubble(b.id).font_size == 12


def test_cycle_shape_variant(orch):
    orch.update_tool_settings(active_bubble_type=BubbleType.SHOUT)
    shout = orch.add_bubble(400, 300)
    orch.cycle_shape_variant(shout.id, 1)
    orch.cycle_shape_variant(shout.id, 1)
    assert orch.bubble(shout.id).shape_variant == 2
    orch.cycle_shape_variant(shout.id, -1)
    assert orch.bubble(shout.id).shape_variant == 1


def test_cycle_shape_variant_ignores_fixed_shapes(orch):
    b = orch.add_bubble(400, 300)
    count = orch.undo_stack.count()
    orch.cycle_shape_variant(b.id, 1)
    assert orch.bubble(b.id).shape_variant is None
    assert orch.undo_stack.count() == count


def test_preview_then_commit_is_one_step(orch):
    b = orch.add_bubble(400, 300)
    moved = orch.bubble(b.id)
    for dx in (5, 10, 15):
        orch.preview(replace(moved, x=moved.x + dx))
    assert orch.undo_stack.count() == 1
    after = orch.bubble(b.id)
    orch.commit_gesture(moved, after)
    assert orch.undo_stack.count() == 2
    orch.undo_stack.undo()
    assert orch.bubble(b.id).x == moved.x
    orch.undo_stack.redo()
    assert orch.bubble(b.id).x == moved.x + 15


def test_update_with_no_change_records_nothing(orch):
    b = orch.add_bubble(400, 300)
    orch.update_bubble(orch.bubble(b.id))
    assert orch.undo_stack.count() == 1


# ---------------------------------------------------------------------------
# Text / tool settings
# ---------------------------------------------------------------------------

def test_set_text_fits_font(orch):
    b = orch.add_bubble(400, 300)
    orch.set_text(b.id, LONG_TEXT)
    assert orch.bubble(b.id).text == LONG_TEXT
    assert orch.bubble(b.id).font_size < 12


def test_set_text_without_fit(orch):
    b = orch.add_bubble(400, 300)
    orch.set_text(b.id, LONG_TEXT, fit=False)
    assert orch.bubble(b.id).font_size == 12


def test_fit_follows_engine_config():
    # 15 four-letter words: five lines at 12px, four lines at 11px
    text = " ".join(["aaaa"] * 15)
    sizes = []
    for config in (EngineConfig(), EngineConfig(fit_max_iterations=1)):
        o = BubbleOrchestrator(measurer=FakeMeasurer(), config=config)
        o.set_image(ProjectImage("page.png", 1600, 1200), (800, 600))
        b = o.add_bubble(400, 300)
        o.set_text(b.id, text)
        sizes.append(o.bubble(b.id).font_size)
    assert sizes == [11, FIT_MIN_SIZE]


def test_style_change_applies_to_selection_and_undoes(orch):
    b = orch.add_bubble(400, 300)
    orch.update_tool_settings(active_font_family=FontName.BANGERS.value)
    assert orch.bubble(b.id).font_family == FontName.BANGERS.value
    orch.undo_stack.undo()
    assert orch.bubble(b.id).font_family == FontName.COMIC.value
    assert orch.tool_settings.active_font_family == FontName.COMIC.value


def test_selecting_loads_bubble_style_into_settings(orch):
    seen = []
    orch.settings_changed.connect(lambda s: seen.append(s))
    a = orch.add_bubble(100, 100)
    orch.update_tool_settings(active_text_color="#ff0000")
    orch.select(None)
    orch.update_tool_settings(active_text_color="#00ff00")
    assert orch.bubble(a.id).text_color == "#ff0000"
    orch.select(a.id)
    assert orch.tool_settings.active_text_color == "#ff0000"
    assert seen[-1].active_text_color == "#ff0000"


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def test_project_round_trip(orch, tmp_path):
    orch.add_bubble(100, 100)
    orch.update_tool_settings(active_bubble_type=BubbleType.THOUGHT)
    t = orch.add_bubble(400, 300)
    orch.cycle_shape_variant(t.id, 1)
    path = tmp_path / "project.json"
    orch.save_project(str(path))

    data = json.loads(path.read_text())
    assert data["version"] == "1.1"
    assert data["image"] == {"url": "page.png", "width": 1600, "height": 1200}

    other = BubbleOrchestrator(measurer=FakeMeasurer())
    other.load_project(str(path))
    assert other.bubbles == orch.bubbles
    assert other.next_z_index == orch.next_z_index
    assert other.canvas_size == (800, 600)
    assert other.tool_settings == orch.tool_settings
    assert other.image == orch.image
    assert other.selected_id is None
    assert other.undo_stack.count() == 0


def test_save_without_image_fails():
    with pytest.raises(ProjectFormatError):
        BubbleOrchestrator().to_project()


@pytest.mark.parametrize("data", [
    {"bubbles": [], "nextZIndex": 10},
    {"image": "p.png", "nextZIndex": 10},
    {"image": "p.png", "bubbles": []},
    {"image": "p.png", "bubbles": [{"id": "x"}], "nextZIndex": 10},
    {"image": "p.png", "nextZIndex": 10,
     "bubbles": [{"id": "x", "type": "thought", "parts": [{"id": "p", "type": "star"}]}]},
    {"image": "p.png", "bubbles": [], "nextZIndex": 10, "canvasSize": {"w": 5}},
    {"image": "p.png", "bubbles": [], "nextZIndex": 10, "canvasSize": [800, 600]},
    {"image": "p.png", "bubbles": [], "nextZIndex": "abc"},
    [],
])
def test_invalid_projects_are_rejected(orch, data):
    before = orch.bubbles
    with pytest.raises(ProjectFormatError):
        orch.from_project(data)
    assert orch.bubbles == before


def test_load_rejects_non_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(ProjectFormatError):
        BubbleOrchestrator().load_project(str(path))


def test_load_rejects_undecodable_bytes(tmp_path):
    path = tmp_path / "utf16.json"
    path.write_bytes(b"\xff\xfe{\x00}\x00")
    with pytest.raises(ProjectFormatError):
        BubbleOrchestrator().load_project(str(path))


def test_load_fills_defaults_and_normalizes(orch):
    orch.from_project({
        "image": {"url": "p.png", "width": 1000, "height": 800},
        "nextZIndex": 20,
        "bubbles": [{
            "id": "b1", "type": "speech-down", "text": "Hi", "x": 5, "y": 5,
            "width": 10, "height": 10, "zIndex": 12,
            "parts": [{"id": "d", "type": "thought-dot",
                       "offsetX": 1, "offsetY": 2, "size": 8}],
        }],
    })
    b = orch.bubble("b1")
    assert (b.width, b.height) == (50, 30)
    assert b.parts == ()
    assert b.text_color == b.border_color == "#000000"
    assert orch.canvas_size == (500, 400)
    assert orch.next_z_index == 20


def test_string_image_reference(orch):
    orch.from_project({"image": "data:image/png;base64,AAAA", "bubbles": [], "nextZIndex": 10})
    assert orch.image.url.startswith("data:")


def test_clear_all(orch):
    orch.add_bubble(100, 100)
    orch.clear_all()
    assert orch.image is None
    assert orch.bubbles == []
    assert orch.canvas_size == DEFAULT_CANVAS
    assert orch.next_z_index == 10
    assert orch.undo_stack.count() == 0


def test_fit_canvas_size():
    assert fit_canvas_size(2000, 1000, 1000, 1000) == (1000, 500)
    assert fit_canvas_size(400, 300, 1000, 1000) == (400, 300)
    assert fit_canvas_size(0, 300, 1000, 1000) == DEFAULT_CANVAS
