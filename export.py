"""
export.py — Flatten the page (background image + bubbles) into a raster.

render_bubble() is also what BubbleItem.paint() calls, so the editor and
the exported file share one drawing path (WYSIWYG).

Export renders at ``scale``× the canvas size (2× by default, for crisp
text) → PNG / JPEG / WebP chosen by the file extension.
"""

import logging
import os
from datetime import datetime

from PyQt6.QtCore import Qt, QRectF, QPointF
from PyQt6.QtGui import QColor, QImage, QPainter, QPen, QBrush
from PyQt6.QtWidgets import QFileDialog, QMessageBox

from bubble_model import Bubble, BubbleType
from config import DEFAULT_CONFIG, EngineConfig
from qt_surface import QPainterSurface
from rich_text import TextStyle, draw_rich_text
from safe_zone import compute_safe_zone, extent_at_y
from shapes import generate_shape

log = logging.getLogger(__name__)

BORDER_WIDTH  = 2
WHISPER_DASH  = [5, 5]   # in units of the pen width, as Qt counts dashes
JPEG_QUALITY  = 92
BUBBLE_FILL   = QColor(255, 255, 255)


class ExportError(RuntimeError):
    """The rendered image could not be written."""


# ---------------------------------------------------------------------------
# Bubble drawing
# ---------------------------------------------------------------------------

def _border_pen(bubble: Bubble) -> QPen:
    pen = QPen(QColor(bubble.border_color), BORDER_WIDTH)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    if bubble.type == BubbleType.WHISPER:
        pen.setDashPattern([d / BORDER_WIDTH for d in WHISPER_DASH])
    return pen


def render_bubble(painter: QPainter, bubble: Bubble, text: str | None = None,
                  config: EngineConfig = DEFAULT_CONFIG):
    """
    Draw one bubble in its local coordinates (the caller translates the
    painter to bubble.x, bubble.y).  ``text`` overrides bubble.text, e.g.
    while the inline editor holds unsaved markup.
    """
    painter.save()
    if bubble.type != BubbleType.TEXT_ONLY:
        shape = generate_shape(bubble)
        painter.setPen(_border_pen(bubble))
        painter.setBrush(QBrush(BUBBLE_FILL))
        painter.drawPath(shape.outline)

        solid = QPen(QColor(bubble.border_color), BORDER_WIDTH)
        painter.setPen(solid)
        for c in shape.circles:
            painter.drawEllipse(QPointF(c.cx, c.cy), c.r, c.r)

    style = TextStyle(bubble.font_family, bubble.font_size, bubble.text_color)
    surface = QPainterSurface(painter)
    zone = compute_safe_zone(bubble)
    draw_rich_text(surface, bubble.text if text is None else text,
                   0, zone.y, bubble.width, zone.height, style,
                   extent=extent_at_y(bubble, config))
    painter.restore()


def render_scene(painter: QPainter, background: QImage | None,
                 bubbles: list[Bubble], canvas_size: tuple[float, float],
                 config: EngineConfig = DEFAULT_CONFIG):
    """Background scaled to the canvas, then bubbles by ascending zIndex."""
    cw, ch = canvas_size
    if background is not None and not background.isNull():
        painter.drawImage(QRectF(0, 0, cw, ch), background)
    for bubble in sorted(bubbles, key=lambda b: b.z_index):
        painter.save()
        painter.translate(bubble.x, bubble.y)
        render_bubble(painter, bubble, config=config)
        painter.restore()


def render_image(background: QImage | None, bubbles: list[Bubble],
                 canvas_size: tuple[float, float], scale: float | None = None,
                 config: EngineConfig = DEFAULT_CONFIG) -> QImage:
    scale = config.export_scale if scale is None else scale
    cw, ch = canvas_size
    W, H = max(1, round(cw * scale)), max(1, round(ch * scale))

    image = QImage(W, H, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(QColor(255, 255, 255))
    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    painter.scale(scale, scale)
    try:
        render_scene(painter, background, bubbles, canvas_size, config)
    finally:
        painter.end()
    return image


def export_image(path: str, background: QImage | None, bubbles: list[Bubble],
                 canvas_size: tuple[float, float], scale: float | None = None,
                 config: EngineConfig = DEFAULT_CONFIG) -> QImage:
    image = render_image(background, bubbles, canvas_size, scale, config)

    ext = os.path.splitext(path)[1].lower()
    quality = JPEG_QUALITY if ext in (".jpg", ".jpeg") else -1
    if not image.save(path, quality=quality):
        raise ExportError(f"Failed to save: {path}")
    log.info("Exported %d bubbles to %s (%dx%d)",
             len(bubbles), path, image.width(), image.height())
    return image


# ---------------------------------------------------------------------------
# Dialog front end
# ---------------------------------------------------------------------------

def export_dialog(parent, orchestrator, background: QImage | None):
    if orchestrator.image is None:
        QMessageBox.warning(parent, "Export", "Please open a comic page first.")
        return

    src = orchestrator.image.url
    base = os.path.splitext(os.path.basename(src))[0] if not src.startswith("data:") else "page"
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    default_name = f"{base}-{timestamp}.png"

    path, _ = QFileDialog.getSaveFileName(
        parent, "Export Image", default_name,
        "PNG (*.png);;JPEG (*.jpg *.jpeg);;WebP (*.webp)"
    )
    if not path:
        return

    try:
        export_image(path, background, orchestrator.bubbles, orchestrator.canvas_size,
                     config=orchestrator.config)
    except ExportError as e:
        log.error("%s", e)
        QMessageBox.critical(parent, "Export", str(e))
        return
    QMessageBox.information(parent, "Export", f"Saved to:\n{path}")
