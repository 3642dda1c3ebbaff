"""
properties_panel.py — Bottom panel: bubble type, font, colours and part defaults.

Edits the orchestrator's ToolSettings.  Font and colour changes also
restyle the selected bubble; the type and part defaults only affect
bubbles placed afterwards.
"""

from PyQt6.QtWidgets import (
    QWidget, QLabel, QHBoxLayout, QVBoxLayout, QPushButton, QToolButton,
    QSpinBox, QDoubleSpinBox, QColorDialog, QFrame, QButtonGroup, QComboBox
)
from PyQt6.QtGui import QColor

from bubble_model import BubbleType, FontName, MAX_FONT_SIZE, MIN_FONT_SIZE, resolve_font_family


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------

def _color_btn(color: QColor, tooltip: str) -> QPushButton:
    """Small square colour-preview button."""
    btn = QPushButton()
    btn.setFixedSize(26, 26)
    btn.setToolTip(tooltip)
    _set_btn_color(btn, color)
    return btn


def _set_btn_color(btn: QPushButton, color: QColor):
    r, g, b = color.red(), color.green(), color.blue()
    btn.setStyleSheet(
        f"QPushButton {{"
        f"  background-color: rgb({r},{g},{b});"
        f"  border: 1.5px solid #777;"
        f"  border-radius: 4px;"
        f"}}"
        f"QPushButton:hover {{ border: 2px solid #aaa; }}"
    )


def _sep() -> QFrame:
    """Vertical separator line."""
    f = QFrame()
    f.setFrameShape(QFrame.Shape.VLine)
    f.setFrameShadow(QFrame.Shadow.Sunken)
    f.setFixedWidth(10)
    return f


def _group(title: str) -> tuple[QWidget, QHBoxLayout]:
    box = QWidget()
    col = QVBoxLayout(box)
    col.setContentsMargins(0, 0, 0, 0)
    col.setSpacing(2)
    col.addWidget(QLabel(title))
    row = QHBoxLayout()
    row.setSpacing(4)
    col.addLayout(row)
    return box, row


TYPE_LABELS = {
    BubbleType.SPEECH_DOWN: "Speech ↓",
    BubbleType.SPEECH_UP:   "Speech ↑",
    BubbleType.THOUGHT:     "Thought",
    BubbleType.SHOUT:       "Shout",
    BubbleType.DESCRIPTIVE: "Caption",
    BubbleType.WHISPER:     "Whisper",
    BubbleType.TEXT_ONLY:   "Text",
}


# ---------------------------------------------------------------------------
# PropertiesPanel
# ---------------------------------------------------------------------------

class PropertiesPanel(QWidget):
    """
    Bottom strip bound to one BubbleOrchestrator.  Every control writes
    through orchestrator.update_tool_settings(); settings_changed repopulates
    the controls, so selecting a bubble shows its font and colours.
    """

    def __init__(self, orchestrator, parent=None):
        super().__init__(parent)
        self._orch = orchestrator
        self._updating = False   # guard against recursive updates
        self.setFixedHeight(72)
        self._build_ui()
        self.update_from_settings(orchestrator.tool_settings)
        orchestrator.settings_changed.connect(self.update_from_settings)

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------

    def _build_ui(self):
        row = QHBoxLayout(self)
        row.setContentsMargins(6, 2, 6, 2)
        row.setSpacing(6)

        # ---- Bubble type ---------------------------------------------
        box, btn_row = _group("New bubble")
        self._type_group = QButtonGroup(self)
        self._type_btns: dict[BubbleType, QToolButton] = {}
        for kind, label in TYPE_LABELS.items():
            btn = QToolButton()
            btn.setText(label)
            btn.setCheckable(True)
            btn.setFixedHeight(28)
            btn.setToolTip(f"Place {label} bubbles")
            btn.setStyleSheet(
                "QToolButton { border: 1px solid #888; border-radius: 4px; padding: 2px 6px; }"
                "QToolButton:checked { background: #3a7bd5; color: white; border: 1px solid #2a5fa0; }"
                "QToolButton:hover { background: #e0e8f8; }"
            )
            self._type_group.addButton(btn)
            self._type_btns[kind] = btn
            btn_row.addWidget(btn)
            btn.clicked.connect(lambda checked, k=kind: self._on_type(k))
        row.addWidget(box)
        row.addWidget(_sep())

        # ---- Font ----------------------------------------------------
        box, font_row = _group("Font")
        self._font_combo = QComboBox()
        self._font_combo.setFixedWidth(150)
        self._font_combo.setFixedHeight(28)
        for name in FontName:
            self._font_combo.addItem(resolve_font_family(name.value), name.value)
        self._font_combo.currentIndexChanged.connect(self._on_font_family)
        font_row.addWidget(self._font_combo)

        self._font_size = QSpinBox()
        self._font_size.setRange(MIN_FONT_SIZE, MAX_FONT_SIZE)
        self._font_size.setFixedWidth(60)
        self._font_size.setFixedHeight(28)
        self._font_size.setSuffix(" px")
        self._font_size.setToolTip("Font size")
        self._font_size.valueChanged.connect(self._on_font_size)
        font_row.addWidget(self._font_size)

        self._btn_text_color = _color_btn(QColor(0, 0, 0), "Text colour")
        self._btn_text_color.clicked.connect(self._on_text_color)
        font_row.addWidget(self._btn_text_color)
        row.addWidget(box)
        row.addWidget(_sep())

        # ---- Border --------------------------------------------------
        box, border_row = _group("Border")
        self._btn_border_color = _color_btn(QColor(0, 0, 0), "Border colour")
        self._btn_border_color.clicked.connect(self._on_border_color)
        border_row.addWidget(self._btn_border_color)
        row.addWidget(box)
        row.addWidget(_sep())

        # ---- Part defaults -------------------------------------------
        box, part_row = _group("Tail / dots")
        self._tail_length = self._spin(part_row, "Tail length", 5, 200, " px",
                                       "default_tail_length")
        self._tail_base = self._spin(part_row, "Tail base width", 5, 100, " px",
                                     "default_tail_base_width")
        self._dot_count = QSpinBox()
        self._dot_count.setRange(0, 8)
        self._dot_count.setFixedHeight(28)
        self._dot_count.setToolTip("Thought dots")
        self._dot_count.valueChanged.connect(
            lambda v: self._write(default_dot_count=v))
        part_row.addWidget(self._dot_count)
        self._dot_size = self._spin(part_row, "Largest dot size", 2, 60, " px",
                                    "default_dot_size")
        row.addWidget(box)
        row.addStretch()

    def _spin(self, row, tooltip, lo, hi, suffix, attr) -> QDoubleSpinBox:
        spin = QDoubleSpinBox()
        spin.setRange(lo, hi)
        spin.setDecimals(0)
        spin.setFixedWidth(70)
        spin.setFixedHeight(28)
        spin.setSuffix(suffix)
        spin.setToolTip(tooltip)
        spin.valueChanged.connect(lambda v: self._write(**{attr: v}))
        row.addWidget(spin)
        return spin

    # ------------------------------------------------------------------
    # Public API, called on settings_changed
    # ------------------------------------------------------------------

    def update_from_settings(self, settings):
        """Populate all controls from a ToolSettings value."""
        self._updating = True
        try:
            for kind, btn in self._type_btns.items():
                btn.setChecked(kind == settings.active_bubble_type)
            idx = self._font_combo.findData(settings.active_font_family)
            if idx >= 0:
                self._font_combo.setCurrentIndex(idx)
            self._font_size.setValue(int(settings.active_font_size))
            _set_btn_color(self._btn_text_color, QColor(settings.active_text_color))
            _set_btn_color(self._btn_border_color, QColor(settings.active_border_color))
            self._tail_length.setValue(settings.default_tail_length)
            self._tail_base.setValue(settings.default_tail_base_width)
            self._dot_count.setValue(int(settings.default_dot_count))
            self._dot_size.setValue(settings.default_dot_size)
        finally:
            self._updating = False

    # ------------------------------------------------------------------
    # Control callbacks
    # ------------------------------------------------------------------

    def _write(self, **changes):
        if not self._updating:
            self._orch.update_tool_settings(**changes)

    def _on_type(self, kind: BubbleType):
        self._write(active_bubble_type=kind)

    def _on_font_family(self, index: int):
        value = self._font_combo.itemData(index)
        if value:
            self._write(active_font_family=value)

    def _on_font_size(self, size: int):
        self._write(active_font_size=size)

    def _on_text_color(self):
        current = QColor(self._orch.tool_settings.active_text_color)
        color = QColorDialog.getColor(current, self, "Text Colour")
        if color.isValid():
            self._write(active_text_color=color.name())

    def _on_border_color(self):
        current = QColor(self._orch.tool_settings.active_border_color)
        color = QColorDialog.getColor(current, self, "Border Colour")
        if color.isValid():
            self._write(active_border_color=color.name())
