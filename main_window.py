"""
main_window.py — MainWindow: assembles toolbar, canvas, zoom bar and
                 the tool-settings panel around one BubbleOrchestrator.
"""

import base64
import logging
import os

from PyQt6.QtWidgets import QMainWindow, QWidget, QVBoxLayout, QMessageBox
from PyQt6.QtGui import QImage, QGuiApplication

from canvas import BubbleScene, BubbleView, ZoomBar
from config import EngineConfig
from toolbar import MainToolbar
from properties_panel import PropertiesPanel
from orchestrator import BubbleOrchestrator, ProjectFormatError, ProjectImage, fit_canvas_size
from qt_surface import QtTextMeasurer
from version import __version__, __app_name__

import export as exporter

log = logging.getLogger(__name__)

SCREEN_WIDTH_FRACTION  = 0.9
SCREEN_HEIGHT_FRACTION = 0.8


def load_image_url(url: str, base_dir: str = "") -> QImage:
    """Decode a data URL or read a file path (relative to ``base_dir``)."""
    image = QImage()
    if url.startswith("data:"):
        _, _, payload = url.partition(",")
        try:
            image.loadFromData(base64.b64decode(payload))
        except ValueError:
            log.warning("Undecodable image data URL")
        return image
    path = url if os.path.isabs(url) or not base_dir else os.path.join(base_dir, url)
    image.load(path)
    return image


class MainWindow(QMainWindow):

    def __init__(self, config: EngineConfig | None = None):
        super().__init__()
        self.setWindowTitle(f"{__app_name__} v{__version__}")
        self.setMinimumSize(960, 640)
        self.orch = BubbleOrchestrator(self, measurer=QtTextMeasurer(), config=config)
        self._build_ui()
        self._connect_signals()

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_ui(self):
        self.toolbar = MainToolbar(self)
        self.addToolBar(self.toolbar)

        self.scene = BubbleScene(self.orch, self)
        self.view  = BubbleView(self.scene)
        self.zoom_bar = ZoomBar(self.view)
        self.props = PropertiesPanel(self.orch)

        central = QWidget()
        self.setCentralWidget(central)
        vbox = QVBoxLayout(central)
        vbox.setContentsMargins(0, 0, 0, 0)
        vbox.setSpacing(0)
        vbox.addWidget(self.view, stretch=1)
        vbox.addWidget(self.zoom_bar)
        vbox.addWidget(self.props)

    # ------------------------------------------------------------------
    # Signal wiring
    # ------------------------------------------------------------------

    def _connect_signals(self):
        tb = self.toolbar
        stack = self.orch.undo_stack

        tb.open_image_requested.connect(self.open_image)
        tb.open_project_requested.connect(self.open_project)
        tb.save_project_requested.connect(self.save_project)
        tb.export_requested.connect(self._on_export)
        tb.undo_requested.connect(stack.undo)
        tb.redo_requested.connect(stack.redo)
        tb.clear_requested.connect(self._on_clear)

        stack.canUndoChanged.connect(tb.set_undo_enabled)
        stack.canRedoChanged.connect(tb.set_redo_enabled)

        self.scene.clicked_on_canvas.connect(self.orch.add_bubble)

        self.view.zoom_changed.connect(self.zoom_bar.update_zoom)
        self.view.open_image_requested.connect(tb.show_open_dialog)
        self.view.image_dropped.connect(self.open_image)

    # ------------------------------------------------------------------
    # Page loading
    # ------------------------------------------------------------------

    def _max_canvas(self) -> tuple[float, float]:
        screen = QGuiApplication.primaryScreen()
        if screen is None:
            return 1600, 1200
        geo = screen.availableGeometry()
        return geo.width() * SCREEN_WIDTH_FRACTION, geo.height() * SCREEN_HEIGHT_FRACTION

    def open_image(self, path: str):
        image = QImage(path)
        if image.isNull():
            QMessageBox.warning(self, "Open", f"Cannot open:\n{path}")
            return
        size = fit_canvas_size(image.width(), image.height(), *self._max_canvas())
        self.orch.set_image(ProjectImage(path, image.width(), image.height()), size)
        self._page_loaded(image)

    def _page_loaded(self, image: QImage | None):
        self.scene.set_background(image)
        self.toolbar.set_page_loaded(image is not None)
        self.view.fit_page()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def save_project(self, path: str):
        try:
            self.orch.save_project(path)
        except (ProjectFormatError, OSError) as e:
            log.error("Saving project failed: %s", e)
            QMessageBox.critical(self, "Save Project", str(e))
            return
        self.statusBar().showMessage(f"Saved {path}", 4000)

    def open_project(self, path: str):
        try:
            self.orch.load_project(path)
        except (ProjectFormatError, OSError) as e:
            log.error("Loading project failed: %s", e)
            QMessageBox.critical(self, "Open Project", str(e))
            return
        image = load_image_url(self.orch.image.url, os.path.dirname(path))
        if image.isNull():
            QMessageBox.warning(self, "Open Project",
                                "The page image could not be found; "
                                "bubbles are shown on a blank canvas.")
            image = QImage(self.orch.image.width, self.orch.image.height,
                           QImage.Format.Format_RGB32)
            image.fill(0xFFFFFFFF)
        self._page_loaded(image)

    # ------------------------------------------------------------------
    # Export / clear
    # ------------------------------------------------------------------

    def _on_export(self):
        exporter.export_dialog(self, self.orch, self.scene.image)

    def _on_clear(self):
        answer = QMessageBox.question(
            self, "Clear", "Remove the page and all bubbles?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        self.orch.clear_all()
        self._page_loaded(None)
