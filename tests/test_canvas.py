import pytest
from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QColor, QImage, QPainter

from bubble_model import BubbleType
from canvas import BubbleScene
from orchestrator import BubbleOrchestrator, ProjectImage
from transform import GestureMode

from conftest import FakeMeasurer


@pytest.fixture
def orch():
    o = BubbleOrchestrator(measurer=FakeMeasurer())
    o.set_image(ProjectImage("page.png", 800, 600), (400, 300))
    return o


@pytest.fixture
def scene(orch):
    sc = BubbleScene(orch)
    page = QImage(800, 600, QImage.Format.Format_RGB32)
    page.fill(QColor(200, 200, 200))
    sc.set_background(page)
    return sc


def test_background_sets_scene_rect(scene):
    rect = scene.sceneRect()
    assert (rect.width(), rect.height()) == (400, 300)
    assert scene.has_image()


def test_items_follow_orchestrator(orch, scene):
    b = orch.add_bubble(200, 150)
    item = scene.item_for(b.id)
    assert item is not None
    assert item.pos() == QPointF(b.x, b.y)
    assert item.zValue() == b.z_index
    orch.undo_stack.undo()
    assert scene.item_for(b.id) is None
    orch.undo_stack.redo()
    assert scene.item_for(b.id) is not None


def test_only_selected_item_takes_wheel(orch, scene):
    orch.update_tool_settings(active_bubble_type=BubbleType.THOUGHT)
    a = orch.add_bubble(100, 100)
    b = orch.add_bubble(300, 200)
    assert scene.item_for(b.id).takes_wheel
    assert not scene.item_for(a.id).takes_wheel


def test_drag_gesture_is_one_undo_step(orch, scene):
    b = orch.add_bubble(200, 150)
    item = scene.item_for(b.id)
    assert item.begin_gesture(GestureMode.MOVING, QPointF(10, 10))
    item.continue_gesture(QPointF(20, 15))
    item.continue_gesture(QPointF(40, 30))
    assert item.pos() == QPointF(b.x + 30, b.y + 20)
    item.end_gesture()
    assert orch.undo_stack.count() == 2
    orch.undo_stack.undo()
    assert orch.bubble(b.id).x == b.x


def test_resize_gesture_through_item(orch, scene):
    b = orch.add_bubble(200, 150)
    item = scene.item_for(b.id)
    item.begin_gesture(GestureMode.RESIZING, QPointF(0, 0), handle="BR")
    item.continue_gesture(QPointF(50, 30))
    item.end_gesture()
    out = orch.bubble(b.id)
    assert (out.width, out.height) == (200, 120)
    assert out.tail.base_cy == 120


def test_cancel_restores_gesture_start(orch, scene):
    b = orch.add_bubble(200, 150)
    item = scene.item_for(b.id)
    item.begin_gesture(GestureMode.MOVING, QPointF(0, 0))
    item.continue_gesture(QPointF(50, 50))
    item.cancel_gesture()
    assert orch.bubble(b.id).x == b.x
    assert orch.undo_stack.count() == 1


def test_inline_edit_stores_markup(orch, scene):
    b = orch.add_bubble(200, 150)
    item = scene.item_for(b.id)
    item.start_editing()
    assert item.is_editing
    item._text_item.setPlainText("Hello there")
    item.stop_editing()
    assert not item.is_editing
    assert "Hello there" in orch.bubble(b.id).text


def test_edit_without_changes_records_nothing(orch, scene):
    b = orch.add_bubble(200, 150)
    item = scene.item_for(b.id)
    item.start_editing()
    item.stop_editing()
    assert orch.bubble(b.id).text == b.text
    assert orch.undo_stack.count() == 1


def test_reset_removes_items(orch, scene):
    b = orch.add_bubble(200, 150)
    orch.clear_all()
    assert scene.item_for(b.id) is None
    assert [i for i in scene.items() if i.zValue() >= 0 and i.parentItem() is None] == []


def test_scene_renders(orch, scene):
    orch.update_tool_settings(active_bubble_type=BubbleType.SHOUT)
    orch.add_bubble(200, 150)
    target = QImage(400, 300, QImage.Format.Format_ARGB32)
    target.fill(QColor(0, 0, 0, 0))
    painter = QPainter(target)
    scene.render(painter)
    painter.end()
    assert target.pixelColor(200, 150).alpha() > 0
