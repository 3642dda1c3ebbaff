"""
canvas.py — Page canvas: BubbleScene (background + BubbleItems kept in
            step with the orchestrator), BubbleView (zoom, drops) and
            the ZoomBar shown below the view.

The scene never edits bubbles itself; it mirrors the orchestrator's
signals into item creation, removal and re-sync.
"""

import logging

from PyQt6.QtWidgets import (
    QGraphicsScene, QGraphicsView, QGraphicsPixmapItem,
    QWidget, QHBoxLayout, QLabel, QPushButton, QToolButton, QComboBox,
)
from PyQt6.QtCore import Qt, QRectF, pyqtSignal
from PyQt6.QtGui import QPixmap, QPainter, QColor, QFont, QPen, QImage, QTransform

from bubble import BubbleItem

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.bmp', '.gif', '.tiff')

_ZOOM_STEP_IN  = 1.25
_ZOOM_STEP_OUT = 0.80
_MIN_SCALE     = 0.05
_MAX_SCALE     = 10.0


# ---------------------------------------------------------------------------
# BubbleScene
# ---------------------------------------------------------------------------

class BubbleScene(QGraphicsScene):
    """
    Scene holding the page image and one BubbleItem per bubble.

    Signals:
        clicked_on_canvas(float, float)  — place a bubble here
    """

    clicked_on_canvas = pyqtSignal(float, float)

    def __init__(self, orchestrator, parent=None):
        super().__init__(parent)
        self._orch = orchestrator
        self._items: dict[str, BubbleItem] = {}
        self._background: QGraphicsPixmapItem | None = None
        self._image: QImage | None = None

        orchestrator.bubble_added.connect(self._on_bubble_added)
        orchestrator.bubble_removed.connect(self._on_bubble_removed)
        orchestrator.bubble_changed.connect(self._on_bubble_changed)
        orchestrator.selection_changed.connect(self._on_selection_changed)
        orchestrator.project_reset.connect(self._on_project_reset)

    # ------------------------------------------------------------------
    # Background
    # ------------------------------------------------------------------

    @property
    def image(self) -> QImage | None:
        return self._image

    def has_image(self) -> bool:
        return self._image is not None and not self._image.isNull()

    def set_background(self, image: QImage | None):
        """Show ``image`` scaled to the orchestrator's canvas size."""
        if self._background is not None:
            self.removeItem(self._background)
            self._background = None
        self._image = image
        cw, ch = self._orch.canvas_size
        if image is not None and not image.isNull():
            pixmap = QPixmap.fromImage(image).scaled(
                int(cw), int(ch),
                Qt.AspectRatioMode.IgnoreAspectRatio,
                Qt.TransformationMode.SmoothTransformation)
            self._background = QGraphicsPixmapItem(pixmap)
            self._background.setZValue(-1)
            self._background.setPos(0, 0)
            self.addItem(self._background)
        self.setSceneRect(QRectF(0, 0, cw, ch))
        log.debug("Scene rect set to %sx%s", cw, ch)

    # ------------------------------------------------------------------
    # Orchestrator → items
    # ------------------------------------------------------------------

    def item_for(self, bubble_id: str) -> BubbleItem | None:
        return self._items.get(bubble_id)

    def _on_bubble_added(self, bubble_id: str):
        item = BubbleItem(self._orch, bubble_id)
        self._items[bubble_id] = item
        self.addItem(item)
        if self._orch.selected_id == bubble_id:
            item.set_selected(True)

    def _on_bubble_removed(self, bubble_id: str):
        item = self._items.pop(bubble_id, None)
        if item is not None:
            self.removeItem(item)

    def _on_bubble_changed(self, bubble_id: str):
        item = self._items.get(bubble_id)
        if item is not None:
            item.sync()

    def _on_selection_changed(self, bubble_id):
        for bid, item in self._items.items():
            item.set_selected(bid == bubble_id)

    def _on_project_reset(self):
        for item in self._items.values():
            self.removeItem(item)
        self._items.clear()

    # ------------------------------------------------------------------
    # Mouse events
    # ------------------------------------------------------------------

    def _is_background(self, pos) -> bool:
        t = self.views()[0].transform() if self.views() else QTransform()
        item = self.itemAt(pos, t)
        return item is None or item is self._background

    def mousePressEvent(self, event):
        if (event.button() == Qt.MouseButton.LeftButton
                and self._is_background(event.scenePos())):
            # click on the page: deselect, or place a bubble when none is selected
            if self._orch.selected_id is not None:
                self._orch.select(None)
            elif self.has_image():
                self.clicked_on_canvas.emit(event.scenePos().x(), event.scenePos().y())
            event.accept()
            return
        super().mousePressEvent(event)


# ---------------------------------------------------------------------------
# BubbleView
# ---------------------------------------------------------------------------

class BubbleView(QGraphicsView):
    """
    View that renders the BubbleScene with zoom and image drop support.
    """

    open_image_requested = pyqtSignal()   # emitted when user clicks empty canvas
    image_dropped        = pyqtSignal(str)
    zoom_changed         = pyqtSignal(int)

    def __init__(self, scene: BubbleScene, parent=None):
        super().__init__(scene, parent)
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        self.setBackgroundBrush(QColor(45, 45, 45))
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setAcceptDrops(True)
        self._bubble_scene  = scene
        self._fit_to_window = True

    def fit_page(self):
        if self._bubble_scene.has_image():
            self.fitInView(self._bubble_scene.sceneRect(),
                           Qt.AspectRatioMode.KeepAspectRatio)
            self._fit_to_window = True
            self.zoom_changed.emit(self._zoom_percent())

    def zoom_in(self):
        cur = self._current_scale()
        if cur >= _MAX_SCALE:
            return
        step = min(_ZOOM_STEP_IN, _MAX_SCALE / cur)
        self.scale(step, step)
        self._fit_to_window = False
        self.zoom_changed.emit(self._zoom_percent())

    def zoom_out(self):
        cur = self._current_scale()
        if cur <= _MIN_SCALE:
            return
        step = max(_ZOOM_STEP_OUT, _MIN_SCALE / cur)
        self.scale(step, step)
        self._fit_to_window = False
        self.zoom_changed.emit(self._zoom_percent())

    def set_zoom_percent(self, percent: int):
        target = max(_MIN_SCALE, min(_MAX_SCALE, percent / 100))
        cur = self._current_scale()
        if cur > 0:
            self.scale(target / cur, target / cur)
        self._fit_to_window = False
        self.zoom_changed.emit(self._zoom_percent())

    def _current_scale(self):
        return self.transform().m11()

    def _zoom_percent(self):
        return max(1, int(round(self._current_scale() * 100)))

    def drawBackground(self, painter, rect):
        super().drawBackground(painter, rect)
        if not self._bubble_scene.has_image():
            painter.save()
            painter.resetTransform()
            vr = self.viewport().rect()
            painter.setPen(QPen(QColor(200, 200, 200)))
            f1 = QFont()
            f1.setPixelSize(18)
            f1.setBold(True)
            painter.setFont(f1)
            painter.drawText(
                vr.left(), vr.center().y() - 30, vr.width(), 28,
                int(Qt.AlignmentFlag.AlignHCenter), "Open a comic page to get started"
            )
            painter.setPen(QPen(QColor(130, 130, 130)))
            f2 = QFont()
            f2.setPixelSize(13)
            painter.setFont(f2)
            painter.drawText(
                vr.left(), vr.center().y() + 4, vr.width(), 22,
                int(Qt.AlignmentFlag.AlignHCenter),
                "Click here, drag & drop an image, or open a saved project"
            )
            painter.restore()

    def mousePressEvent(self, event):
        # without a page the canvas acts as a giant "open" button
        if (event.button() == Qt.MouseButton.LeftButton
                and not self._bubble_scene.has_image()):
            self.open_image_requested.emit()
            event.accept()
            return
        super().mousePressEvent(event)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        if self._fit_to_window:
            self.fit_page()

    def wheelEvent(self, event):
        item = self.itemAt(event.position().toPoint())
        while item is not None and not isinstance(item, BubbleItem):
            item = item.parentItem()
        if item is not None and item.takes_wheel:
            super().wheelEvent(event)    # delivered to BubbleItem.wheelEvent
            return
        if event.angleDelta().y() > 0:
            self.zoom_in()
        else:
            self.zoom_out()
        event.accept()

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            for url in event.mimeData().urls():
                if url.toLocalFile().lower().endswith(IMAGE_EXTENSIONS):
                    event.acceptProposedAction()
                    return
        event.ignore()

    def dragMoveEvent(self, event):
        event.acceptProposedAction() if event.mimeData().hasUrls() \
            else event.ignore()

    def dropEvent(self, event):
        if event.mimeData().hasUrls():
            for url in event.mimeData().urls():
                path = url.toLocalFile()
                if path.lower().endswith(IMAGE_EXTENSIONS):
                    self.image_dropped.emit(path)
                    event.acceptProposedAction()
                    return
        event.ignore()


# ---------------------------------------------------------------------------
# ZoomBar
# ---------------------------------------------------------------------------

class ZoomBar(QWidget):
    """
    Strip under the canvas: Fit Page, −/+ steps and a list of preset
    zoom levels.  The readout follows the view, so wheel zooming and
    window resizes show up here too.
    """

    PRESETS = (25, 50, 75, 100, 150, 200, 300, 400)

    def __init__(self, view: BubbleView, parent=None):
        super().__init__(parent)
        self._view = view
        self._updating = False
        self.setFixedHeight(32)

        row = QHBoxLayout(self)
        row.setContentsMargins(8, 2, 8, 2)
        row.setSpacing(4)
        row.addStretch()

        fit = QPushButton("Fit Page")
        fit.setToolTip("Show the whole page")
        fit.clicked.connect(view.fit_page)
        row.addWidget(fit)

        zoom_out = QToolButton()
        zoom_out.setText("−")
        zoom_out.setToolTip("Zoom out")
        zoom_out.clicked.connect(view.zoom_out)
        row.addWidget(zoom_out)

        self._presets = QComboBox()
        self._presets.setToolTip("Zoom level")
        self._presets.setFixedWidth(80)
        for percent in self.PRESETS:
            self._presets.addItem(f"{percent}%", percent)
        self._presets.setCurrentIndex(self._presets.findData(100))
        self._presets.currentIndexChanged.connect(self._on_preset)
        row.addWidget(self._presets)

        zoom_in = QToolButton()
        zoom_in.setText("+")
        zoom_in.setToolTip("Zoom in")
        zoom_in.clicked.connect(view.zoom_in)
        row.addWidget(zoom_in)

        self._zoom_label = QLabel("100%")
        self._zoom_label.setFixedWidth(46)
        self._zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        row.addWidget(self._zoom_label)

    def _on_preset(self, index: int):
        percent = self._presets.itemData(index)
        if percent and not self._updating:
            self._view.set_zoom_percent(percent)

    def update_zoom(self, percent: int):
        """Show ``percent``; the preset list only marks an exact match."""
        self._zoom_label.setText(f"{percent}%")
        self._updating = True
        try:
            self._presets.setCurrentIndex(self._presets.findData(percent))
        finally:
            self._updating = False
