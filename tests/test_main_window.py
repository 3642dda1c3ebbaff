import pytest
from PyQt6.QtGui import QColor, QImage

from bubble_model import BubbleType
from config import EngineConfig
from main_window import MainWindow, load_image_url


@pytest.fixture
def page(tmp_path):
    path = tmp_path / "page.png"
    image = QImage(640, 480, QImage.Format.Format_RGB32)
    image.fill(QColor(90, 140, 200))
    assert image.save(str(path))
    return path


@pytest.fixture
def window():
    w = MainWindow()
    yield w
    w.close()


def test_open_image_starts_a_page(window, page):
    window.open_image(str(page))
    orch = window.orch
    assert orch.image.width == 640
    cw, ch = orch.canvas_size
    assert cw <= 640 and ch <= 480
    assert window.toolbar.act_export.isEnabled()
    assert window.scene.has_image()


def test_canvas_click_adds_bubble(window, page):
    window.open_image(str(page))
    window.scene.clicked_on_canvas.emit(100.0, 100.0)
    assert len(window.orch.bubbles) == 1
    assert window.toolbar.act_undo.isEnabled()


def test_panel_writes_tool_settings(window):
    window.props._font_size.setValue(22)
    assert window.orch.tool_settings.active_font_size == 22
    window.props._type_btns[BubbleType.SHOUT].click()
    assert window.orch.tool_settings.active_bubble_type == BubbleType.SHOUT


def test_panel_follows_selection(window, page):
    window.open_image(str(page))
    orch = window.orch
    a = orch.add_bubble(100, 100)
    orch.update_tool_settings(active_font_size=30)
    orch.select(None)
    orch.update_tool_settings(active_font_size=10)
    assert window.props._font_size.value() == 10
    orch.select(a.id)
    assert window.props._font_size.value() == 30


def test_zoom_bar_tracks_view(window, page):
    window.open_image(str(page))
    bar = window.zoom_bar
    bar._presets.setCurrentIndex(bar._presets.findData(200))
    assert window.view.transform().m11() == pytest.approx(2.0)
    assert bar._zoom_label.text() == "200%"
    window.view.zoom_in()
    assert bar._zoom_label.text() == "250%"
    assert bar._presets.currentIndex() == -1


def test_project_save_and_reopen(window, page, tmp_path):
    window.open_image(str(page))
    window.orch.add_bubble(120, 90)
    project = tmp_path / "project.json"
    window.save_project(str(project))

    other = MainWindow()
    try:
        other.open_project(str(project))
        assert other.orch.bubbles == window.orch.bubbles
        assert other.scene.has_image()
        assert other.scene.item_for(window.orch.bubbles[0].id) is not None
    finally:
        other.close()


def test_load_image_url_resolves_relative_paths(page):
    assert not load_image_url(page.name, str(page.parent)).isNull()
    assert load_image_url("nope.png", str(page.parent)).isNull()


def test_engine_config_reaches_the_orchestrator():
    config = EngineConfig(safe_zone_rows=40, fit_max_iterations=3)
    w = MainWindow(config)
    try:
        assert w.orch.config is config
    finally:
        w.close()
