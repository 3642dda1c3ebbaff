"""
qt_surface.py — QPainter implementation of the text drawing surface.

QtTextMeasurer measures with QFontMetricsF; QPainterSurface adds the draw
calls used by rich_text.draw_lines().  Both need a QGuiApplication (font
metrics are unavailable without one).
"""

from PyQt6.QtCore import Qt, QPointF
from PyQt6.QtGui import QColor, QFont, QFontMetricsF, QPainter, QPen

from rich_text import FontSpec


def qfont_for(spec: FontSpec) -> QFont:
    font = QFont(spec.family)
    font.setPixelSize(max(1, round(spec.size)))
    font.setBold(spec.bold)
    font.setItalic(spec.italic)
    return font


class QtTextMeasurer:
    """Width oracle backed by QFontMetricsF, with a per-font metrics cache."""

    def __init__(self):
        self._metrics: dict[FontSpec, QFontMetricsF] = {}

    def metrics(self, spec: FontSpec) -> QFontMetricsF:
        fm = self._metrics.get(spec)
        if fm is None:
            fm = QFontMetricsF(qfont_for(spec))
            self._metrics[spec] = fm
        return fm

    def measure(self, text: str, font: FontSpec) -> float:
        return self.metrics(font).horizontalAdvance(text)


class QPainterSurface(QtTextMeasurer):
    """
    Draws text runs and decoration lines on a QPainter.

    fill_text() takes the vertical middle of the em box rather than the
    alphabetic baseline, so runs of different sizes on one line share a
    centre line.
    """

    def __init__(self, painter: QPainter):
        super().__init__()
        self._painter = painter
        self._font    = FontSpec("Arial", 12)
        self._fill    = QColor(0, 0, 0)

    def set_font(self, font: FontSpec) -> None:
        self._font = font
        self._painter.setFont(qfont_for(font))

    def set_fill_color(self, color: str) -> None:
        self._fill = QColor(color)

    def set_stroke_style(self, color: str, width: float) -> None:
        self._painter.setPen(QPen(QColor(color), width,
                                  Qt.PenStyle.SolidLine, Qt.PenCapStyle.FlatCap))

    def fill_text(self, text: str, x: float, y: float) -> None:
        fm = self.metrics(self._font)
        baseline = y + (fm.ascent() - fm.descent()) / 2
        self._painter.save()
        self._painter.setPen(QPen(self._fill))
        self._painter.drawText(QPointF(x, baseline), text)
        self._painter.restore()

    def stroke_line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self._painter.drawLine(QPointF(x1, y1), QPointF(x2, y2))
