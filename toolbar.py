"""
toolbar.py — Top toolbar: Open, Open/Save Project, Export, Undo, Redo, Clear.
"""

from PyQt6.QtWidgets import QToolBar, QFileDialog
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtCore import pyqtSignal, QSize

from canvas import IMAGE_EXTENSIONS

PROJECT_FILTER = "Bubble project (*.json)"


class MainToolbar(QToolBar):

    open_image_requested   = pyqtSignal(str)
    open_project_requested = pyqtSignal(str)
    save_project_requested = pyqtSignal(str)
    export_requested       = pyqtSignal()
    undo_requested         = pyqtSignal()
    redo_requested         = pyqtSignal()
    clear_requested        = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__("Main Toolbar", parent)
        self.setMovable(False)
        self.setIconSize(QSize(20, 20))
        self._build_actions()

    def _build_actions(self):
        act = QAction("Open", self)
        act.setShortcut("Ctrl+O")
        ext_str = ", ".join(e.lstrip(".").upper() for e in IMAGE_EXTENSIONS)
        act.setToolTip(f"Open a comic page ({ext_str})  (Ctrl+O)")
        act.triggered.connect(self.show_open_dialog)
        self.addAction(act)

        act = QAction("Open Project", self)
        act.setShortcut("Ctrl+Shift+O")
        act.triggered.connect(self._on_open_project)
        self.addAction(act)

        self.act_save = QAction("Save Project", self)
        self.act_save.setShortcut("Ctrl+S")
        self.act_save.setEnabled(False)
        self.act_save.triggered.connect(self._on_save_project)
        self.addAction(self.act_save)

        self.addSeparator()

        self.act_export = QAction("Export", self)
        self.act_export.setShortcut("Ctrl+E")
        self.act_export.setToolTip("Export page with bubbles (Ctrl+E)")
        self.act_export.setEnabled(False)
        self.act_export.triggered.connect(self.export_requested)
        self.addAction(self.act_export)

        self.addSeparator()

        self.act_undo = QAction("Undo", self)
        self.act_undo.setShortcut("Ctrl+Z")
        self.act_undo.setEnabled(False)
        self.act_undo.triggered.connect(self.undo_requested)
        self.addAction(self.act_undo)

        self.act_redo = QAction("Redo", self)
        self.act_redo.setShortcuts([QKeySequence("Ctrl+Y"),
                                    QKeySequence("Ctrl+Shift+Z")])
        self.act_redo.setEnabled(False)
        self.act_redo.triggered.connect(self.redo_requested)
        self.addAction(self.act_redo)

        self.addSeparator()

        self.act_clear = QAction("Clear", self)
        self.act_clear.setToolTip("Remove the page and all bubbles")
        self.act_clear.setEnabled(False)
        self.act_clear.triggered.connect(self.clear_requested)
        self.addAction(self.act_clear)

    # ------------------------------------------------------------------

    def show_open_dialog(self):
        ext_list = " ".join(f"*{e}" for e in IMAGE_EXTENSIONS)
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Comic Page", "", f"Images ({ext_list})")
        if path:
            self.open_image_requested.emit(path)

    def _on_open_project(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Project", "", PROJECT_FILTER)
        if path:
            self.open_project_requested.emit(path)

    def _on_save_project(self):
        path, _ = QFileDialog.getSaveFileName(self, "Save Project",
                                              "comic-project.json", PROJECT_FILTER)
        if path:
            self.save_project_requested.emit(path)

    def set_page_loaded(self, loaded: bool):
        for act in (self.act_save, self.act_export, self.act_clear):
            act.setEnabled(loaded)

    def set_undo_enabled(self, enabled: bool):
        self.act_undo.setEnabled(enabled)

    def set_redo_enabled(self, enabled: bool):
        self.act_redo.setEnabled(enabled)
