"""
bubble.py — BubbleItem: the on-canvas view of one Bubble value.

The item owns no geometry of its own.  It paints whatever the
orchestrator currently holds for its id, and every drag (body, resize
handle, tail tip/base, thought dot) is fed through an
InteractionController, which turns pointer positions into new Bubble
values.  Intermediate values are previewed; the final one is committed
as a single undoable edit.

Item coordinates == bubble-local coordinates (pos() is bubble.x, bubble.y).
"""

from PyQt6.QtWidgets import (
    QGraphicsItem, QGraphicsEllipseItem, QGraphicsTextItem,
    QGraphicsRectItem, QGraphicsSceneMouseEvent,
    QGraphicsSceneContextMenuEvent, QMenu, QStyleOptionGraphicsItem,
    QWidget,
)
from PyQt6.QtGui import (
    QPainter, QPainterPath, QColor, QPen, QBrush, QFont, QCursor, QTextOption,
)
from PyQt6.QtCore import Qt, QRectF, QPointF

from bubble_model import Bubble, VARIANT_TYPES, resolve_font_family
from export import render_bubble
from rich_text import document_from_qt, document_to_markup
from safe_zone import compute_safe_zone
from shapes import generate_shape, overall_bbox
from transform import ANCHORS, GestureMode, InteractionController

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HANDLE_SIZE   = 10
TAIL_DOT_R    = 6
SELECT_COLOR  = QColor(80, 130, 230)
TIP_COLOR     = QColor(245, 140, 30)
BASE_COLOR    = QColor(150, 60, 200)

_GESTURE_LABELS = {
    GestureMode.MOVING:           "Move Bubble",
    GestureMode.RESIZING:         "Resize Bubble",
    GestureMode.MOVING_PART:      "Move Dot",
    GestureMode.MOVING_TAIL_TIP:  "Move Tail Tip",
    GestureMode.MOVING_TAIL_BASE: "Move Tail Base",
}


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------

class _GestureHandle:
    """
    Mixin for child items that start a gesture on their bubble.
    Manual drag (no ItemIsMovable); the bubble re-positions the handle
    after every recomputed value.
    """

    mode: GestureMode

    def _gesture_args(self) -> dict:
        return {}

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent):
        if (event.button() == Qt.MouseButton.LeftButton
                and self._bubble.begin_gesture(self.mode, event.scenePos(),
                                               **self._gesture_args())):
            event.accept()
        else:
            event.ignore()

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent):
        self._bubble.continue_gesture(event.scenePos())
        event.accept()

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._bubble.end_gesture()
        event.accept()


class ResizeHandle(_GestureHandle, QGraphicsRectItem):
    mode = GestureMode.RESIZING
    CURSORS = {
        "TL": Qt.CursorShape.SizeFDiagCursor, "TR": Qt.CursorShape.SizeBDiagCursor,
        "BL": Qt.CursorShape.SizeBDiagCursor, "BR": Qt.CursorShape.SizeFDiagCursor,
        "TC": Qt.CursorShape.SizeVerCursor,   "BC": Qt.CursorShape.SizeVerCursor,
        "ML": Qt.CursorShape.SizeHorCursor,   "MR": Qt.CursorShape.SizeHorCursor,
    }

    def __init__(self, anchor: str, parent_bubble: "BubbleItem"):
        s = HANDLE_SIZE
        super().__init__(-s / 2, -s / 2, s, s, parent_bubble)
        self._anchor = anchor
        self._bubble = parent_bubble

        self.setBrush(QBrush(QColor(255, 255, 255)))
        self.setPen(QPen(SELECT_COLOR, 1.5))
        self.setZValue(11)
        self.setCursor(QCursor(self.CURSORS[anchor]))

    def _gesture_args(self) -> dict:
        return {"handle": self._anchor}

    def place(self, w: float, h: float):
        a = self._anchor
        x = 0 if "L" in a else w if "R" in a else w / 2
        y = 0 if "T" in a else h if "B" in a else h / 2
        self.setPos(x, y)


class TailHandle(_GestureHandle, QGraphicsEllipseItem):
    """Orange dot on the tail tip, purple dot on the tail base."""

    def __init__(self, part_id: str, at_tip: bool, parent_bubble: "BubbleItem"):
        r = TAIL_DOT_R
        super().__init__(-r, -r, r * 2, r * 2, parent_bubble)
        self._bubble  = parent_bubble
        self.part_id  = part_id
        self.mode = GestureMode.MOVING_TAIL_TIP if at_tip else GestureMode.MOVING_TAIL_BASE

        self.setBrush(QBrush(TIP_COLOR if at_tip else BASE_COLOR))
        self.setPen(QPen(QColor(255, 255, 255), 1.5))
        self.setZValue(12)
        self.setCursor(QCursor(Qt.CursorShape.CrossCursor))
        self.setToolTip("Drag to repoint tail" if at_tip else "Drag along the edge")

    def _gesture_args(self) -> dict:
        return {"part_id": self.part_id}


class DotHandle(_GestureHandle, QGraphicsEllipseItem):
    """Invisible grab area over one thought dot."""
    mode = GestureMode.MOVING_PART

    def __init__(self, part_id: str, parent_bubble: "BubbleItem"):
        super().__init__(parent_bubble)
        self._bubble = parent_bubble
        self.part_id = part_id
        self.setPen(QPen(SELECT_COLOR, 1, Qt.PenStyle.DashLine))
        self.setBrush(QBrush(Qt.BrushStyle.NoBrush))
        self.setZValue(10)
        self.setCursor(QCursor(Qt.CursorShape.SizeAllCursor))

    def _gesture_args(self) -> dict:
        return {"part_id": self.part_id}


class _BubbleTextItem(QGraphicsTextItem):
    """Inline editor; leaving it commits the edit."""

    def __init__(self, parent_bubble: "BubbleItem"):
        super().__init__(parent_bubble)
        self._bubble = parent_bubble

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        self._bubble.stop_editing()

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape:
            self._bubble.stop_editing()
            event.accept()
            return
        super().keyPressEvent(event)


# ---------------------------------------------------------------------------
# BubbleItem
# ---------------------------------------------------------------------------

class BubbleItem(QGraphicsItem):
    """One bubble on the page canvas, bound to an orchestrator by id."""

    def __init__(self, orchestrator, bubble_id: str, parent=None):
        super().__init__(parent)
        self._orch       = orchestrator
        self._id         = bubble_id
        self._bubble: Bubble = orchestrator.bubble(bubble_id)
        self._controller = InteractionController()
        self._selected   = False
        self._editing    = False
        self._markup_before: str | None = None
        self._bounds     = QRectF()

        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsFocusable, True)
        self.setCursor(QCursor(Qt.CursorShape.SizeAllCursor))

        self._text_item = _BubbleTextItem(self)
        self._text_item.setTextInteractionFlags(Qt.TextInteractionFlag.NoTextInteraction)
        self._text_item.setVisible(False)

        self._handles: dict[str, ResizeHandle] = {}
        for anchor in ANCHORS:
            h = ResizeHandle(anchor, self)
            h.setVisible(False)
            self._handles[anchor] = h
        self._part_handles: list[QGraphicsItem] = []
        self.sync()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def bubble_id(self) -> str:
        return self._id

    @property
    def bubble(self) -> Bubble:
        return self._bubble

    @property
    def gesture_mode(self) -> GestureMode:
        return self._controller.state

    @property
    def is_editing(self) -> bool:
        return self._editing

    @property
    def takes_wheel(self) -> bool:
        return self._selected and self._bubble.type in VARIANT_TYPES

    def sync(self):
        """Re-read the bubble value from the orchestrator and re-layout."""
        bubble = self._orch.bubble(self._id)
        if bubble is None:
            return
        parts_changed = ({p.id for p in bubble.parts}
                         != {p.id for p in self._bubble.parts})
        self.prepareGeometryChange()
        self._bubble = bubble
        # shout spikes and cloud lobes may reach past the box
        self._bounds = overall_bbox(bubble).united(
            generate_shape(bubble).outline.boundingRect().adjusted(-4, -4, 4, 4))
        self.setPos(bubble.x, bubble.y)
        self.setZValue(bubble.z_index)
        if parts_changed or not self._part_handles and bubble.parts:
            self._rebuild_part_handles()
        self._place_handles()
        self.update()

    def set_selected(self, selected: bool):
        if selected == self._selected:
            return
        self._selected = selected
        if not selected:
            self.stop_editing()
        self._place_handles()
        self.update()

    def _rebuild_part_handles(self):
        scene = self.scene()
        for h in self._part_handles:
            h.setParentItem(None)
            if scene:
                scene.removeItem(h)
        self._part_handles = []
        tail = self._bubble.tail
        if tail is not None:
            self._part_handles.append(TailHandle(tail.id, True, self))
            self._part_handles.append(TailHandle(tail.id, False, self))
        for dot in self._bubble.dots:
            self._part_handles.append(DotHandle(dot.id, self))

    def _place_handles(self):
        b = self._bubble
        for h in self._handles.values():
            h.place(b.width, b.height)
            h.setVisible(self._selected)
        for h in self._part_handles:
            part = b.part(h.part_id)
            if part is None:
                h.setVisible(False)
                continue
            if isinstance(h, TailHandle):
                at_tip = h.mode == GestureMode.MOVING_TAIL_TIP
                h.setPos(part.tip_x if at_tip else part.base_cx,
                         part.tip_y if at_tip else part.base_cy)
            else:
                r = part.size / 2
                h.setRect(-r, -r, part.size, part.size)
                h.setPos(part.offset_x, part.offset_y)
            h.setVisible(self._selected)

    # ------------------------------------------------------------------
    # Gestures (shared by body and handles)
    # ------------------------------------------------------------------

    def begin_gesture(self, mode: GestureMode, scene_pos: QPointF,
                      handle: str | None = None, part_id: str | None = None) -> bool:
        self.stop_editing()
        if self._orch.selected_id != self._id:
            self._orch.select(self._id)
        bubble = self._orch.bubble(self._id)
        if bubble is None:
            return False
        return self._controller.pointer_down(bubble, mode, scene_pos.x(), scene_pos.y(),
                                             handle=handle, part_id=part_id)

    def continue_gesture(self, scene_pos: QPointF):
        bubble = self._controller.pointer_move(scene_pos.x(), scene_pos.y())
        if bubble is not None:
            self._orch.preview(bubble)

    def end_gesture(self):
        label = _GESTURE_LABELS.get(self._controller.state, "Edit Bubble")
        result = self._controller.pointer_up()
        if result is not None:
            self._orch.commit_gesture(*result, label=label)

    def cancel_gesture(self):
        snap = self._controller.snapshot
        self._controller.cancel()
        if snap is not None:
            self._orch.preview(snap.bubble)

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def boundingRect(self) -> QRectF:
        return QRectF(self._bounds)

    def shape(self) -> QPainterPath:
        path = QPainterPath()
        path.addRect(QRectF(0, 0, self._bubble.width, self._bubble.height))
        return path

    def paint(self, painter: QPainter,
              option: QStyleOptionGraphicsItem,
              widget: QWidget | None = None):
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        # while editing, the text item shows the text
        render_bubble(painter, self._bubble, text="" if self._editing else None,
                      config=self._orch.config)

        if self._selected:
            painter.setPen(QPen(SELECT_COLOR, 1.5, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(QRectF(0, 0, self._bubble.width, self._bubble.height))

    # ------------------------------------------------------------------
    # Inline text editing
    # ------------------------------------------------------------------

    def start_editing(self):
        b = self._bubble
        ti = self._text_item
        font = QFont(resolve_font_family(b.font_family))
        font.setPixelSize(max(1, int(b.font_size)))
        doc = ti.document()
        doc.setDefaultFont(font)
        doc.setDefaultTextOption(QTextOption(Qt.AlignmentFlag.AlignCenter))
        ti.setDefaultTextColor(QColor(b.text_color))
        ti.setHtml(b.text.replace("\n", "<br>"))

        zone = compute_safe_zone(b)
        ti.setTextWidth(max(1.0, zone.width))
        ti.setPos(zone.x, max(0.0, (b.height - ti.boundingRect().height()) / 2))

        self._markup_before = document_to_markup(document_from_qt(doc))
        self._editing = True
        ti.setVisible(True)
        ti.setTextInteractionFlags(Qt.TextInteractionFlag.TextEditorInteraction)
        ti.setFocus()
        cursor = ti.textCursor()
        cursor.select(cursor.SelectionType.Document)
        ti.setTextCursor(cursor)
        self.update()

    def stop_editing(self):
        """Close the editor; store the edited markup if it changed."""
        if not self._editing:
            return
        self._editing = False
        ti = self._text_item
        markup = document_to_markup(document_from_qt(ti.document()))
        ti.setTextInteractionFlags(Qt.TextInteractionFlag.NoTextInteraction)
        ti.clearFocus()
        ti.setVisible(False)
        if markup != self._markup_before:
            self._orch.set_text(self._id, markup)
        self._markup_before = None
        self.update()

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def mousePressEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            if self.begin_gesture(GestureMode.MOVING, event.scenePos()):
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QGraphicsSceneMouseEvent):
        self.continue_gesture(event.scenePos())
        event.accept()

    def mouseReleaseEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self.end_gesture()
        event.accept()

    def mouseDoubleClickEvent(self, event: QGraphicsSceneMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            self._controller.cancel()
            self.start_editing()
            event.accept()
            return
        super().mouseDoubleClickEvent(event)

    def wheelEvent(self, event):
        # wheel over a selected thought/shout bubble picks another silhouette
        if self.takes_wheel:
            self._orch.cycle_shape_variant(self._id, 1 if event.delta() > 0 else -1)
            event.accept()
            return
        event.ignore()

    def keyPressEvent(self, event):
        key = event.key()
        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self._orch.delete_bubble(self._id)
        elif key == Qt.Key.Key_Escape:
            self.cancel_gesture()
        elif key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            self._orch.adjust_font_size(self._id, 1)
        elif key == Qt.Key.Key_Minus:
            self._orch.adjust_font_size(self._id, -1)
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def contextMenuEvent(self, event: QGraphicsSceneContextMenuEvent):
        menu = QMenu()
        act_edit = menu.addAction("Edit Text")
        act_del  = menu.addAction("Delete")
        menu.addSeparator()
        act_bigger  = menu.addAction("Larger Text")
        act_smaller = menu.addAction("Smaller Text")
        act_next = act_prev = None
        if self._bubble.type in VARIANT_TYPES:
            menu.addSeparator()
            act_next = menu.addAction("Next Shape")
            act_prev = menu.addAction("Previous Shape")

        chosen = menu.exec(event.screenPos())
        if   chosen == act_edit:    self.start_editing()
        elif chosen == act_del:     self._orch.delete_bubble(self._id)
        elif chosen == act_bigger:  self._orch.adjust_font_size(self._id, 1)
        elif chosen == act_smaller: self._orch.adjust_font_size(self._id, -1)
        elif act_next and chosen == act_next: self._orch.cycle_shape_variant(self._id, 1)
        elif act_prev and chosen == act_prev: self._orch.cycle_shape_variant(self._id, -1)
