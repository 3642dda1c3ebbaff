"""
orchestrator.py — BubbleOrchestrator: owns the bubble list, selection,
                  stacking order, tool settings and the undo stack.

Every user-visible edit goes through a QUndoCommand pushed on
``undo_stack``; the commands call back into the un-recorded primitives
(_insert / _remove / _replace) so redo and undo never re-enter the stack.
Views listen to the signals and re-read bubble values by id.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import dataclass, replace
from itertools import count

from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtGui import QUndoStack

from bubble_model import (
    Bubble, BubbleType, DEFAULT_COLOR, DEFAULT_TEXT,
    MAX_FONT_SIZE, MIN_DOT_COUNT, MIN_DOT_SIZE, MIN_FONT_SIZE,
    MIN_TAIL_BASE_WIDTH, MIN_TAIL_LENGTH, VARIANT_TYPES,
    SpeechTailPart, ThoughtDotPart, ToolSettings, normalize_bubble,
)
from config import DEFAULT_CONFIG, EngineConfig
from text_fit import auto_fit_bubble_text
from undo_commands import AddBubbleCommand, DeleteBubbleCommand, UpdateBubbleCommand
from version import PROJECT_SCHEMA

log = logging.getLogger(__name__)

NEW_BUBBLE_WIDTH  = 150
NEW_BUBBLE_HEIGHT = NEW_BUBBLE_WIDTH * 0.6
FIRST_Z_INDEX     = 10
FONT_SIZE_STEP    = 2
DEFAULT_CANVAS    = (800, 600)


class ProjectFormatError(ValueError):
    """A project file is not valid JSON or lacks a required field."""


@dataclass(frozen=True)
class ProjectImage:
    """Background image reference: a path or data URL plus its pixel size."""
    url: str
    width: int
    height: int

    def to_dict(self) -> dict:
        return {"url": self.url, "width": self.width, "height": self.height}


def fit_canvas_size(image_w: int, image_h: int,
                    max_w: float, max_h: float) -> tuple[int, int]:
    """Display size for an image: scaled down to fit, never scaled up."""
    if image_w <= 0 or image_h <= 0:
        return DEFAULT_CANVAS
    scale = min(max_w / image_w, max_h / image_h, 1.0)
    return math.floor(image_w * scale), math.floor(image_h * scale)


class BubbleOrchestrator(QObject):
    bubble_added      = pyqtSignal(str)
    bubble_removed    = pyqtSignal(str)
    bubble_changed    = pyqtSignal(str)
    selection_changed = pyqtSignal(object)   # bubble id or None
    settings_changed  = pyqtSignal(object)   # ToolSettings
    project_reset     = pyqtSignal()

    def __init__(self, parent=None, measurer=None, config: EngineConfig | None = None):
        super().__init__(parent)
        self.undo_stack = QUndoStack(self)
        self.config = config or DEFAULT_CONFIG
        self._measurer = measurer
        self._bubbles: dict[str, Bubble] = {}
        self._selected_id: str | None = None
        self._settings = ToolSettings()
        self._ids = count(1)
        self.next_z_index = FIRST_Z_INDEX
        self.image: ProjectImage | None = None
        self.canvas_size: tuple[float, float] = DEFAULT_CANVAS

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def bubbles(self) -> list[Bubble]:
        """All bubbles in ascending stacking order."""
        return sorted(self._bubbles.values(), key=lambda b: b.z_index)

    def bubble(self, bubble_id: str) -> Bubble | None:
        return self._bubbles.get(bubble_id)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected(self) -> Bubble | None:
        return self._bubbles.get(self._selected_id) if self._selected_id else None

    @property
    def tool_settings(self) -> ToolSettings:
        return self._settings

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}-{uuid.uuid4().hex[:8]}"

    def _take_z(self) -> int:
        z = self.next_z_index
        self.next_z_index += 1
        return z

    # ------------------------------------------------------------------
    # Image / canvas
    # ------------------------------------------------------------------

    def set_image(self, image: ProjectImage, canvas_size: tuple[float, float]):
        """Start a new page: bubbles, selection and history are cleared."""
        self.image = image
        self.canvas_size = canvas_size
        self._reset()
        log.info("Image %s loaded (%dx%d), canvas %sx%s",
                 image.url[:80], image.width, image.height, *canvas_size)

    def clear_all(self):
        self.image = None
        self.canvas_size = DEFAULT_CANVAS
        self._reset()

    def _reset(self):
        self._bubbles.clear()
        self._selected_id = None
        self.next_z_index = FIRST_Z_INDEX
        self.undo_stack.clear()
        self.project_reset.emit()
        self.selection_changed.emit(None)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_bubble(self, x: float, y: float) -> Bubble:
        """
        Build (but do not insert) a bubble of the active type centred on
        (x, y), clamped into the canvas, with its default tail or dots.
        """
        s = self._settings
        w, h = NEW_BUBBLE_WIDTH, NEW_BUBBLE_HEIGHT
        cw, ch = self.canvas_size
        bx = max(0.0, min(x - w / 2, cw - w))
        by = max(0.0, min(y - h / 2, ch - h))
        return Bubble(
            id=self._new_id("bubble"),
            type=s.active_bubble_type,
            text=DEFAULT_TEXT,
            x=bx, y=by, width=w, height=h,
            font_family=s.active_font_family,
            font_size=s.active_font_size,
            text_color=s.active_text_color,
            border_color=s.active_border_color,
            z_index=self._take_z(),
            parts=self._default_parts(s.active_bubble_type, w, h),
        )

    def _default_parts(self, kind: BubbleType, w: float, h: float) -> tuple:
        s = self._settings
        if kind in (BubbleType.SPEECH_DOWN, BubbleType.WHISPER, BubbleType.SPEECH_UP):
            length = max(MIN_TAIL_LENGTH, s.default_tail_length)
            base_w = max(MIN_TAIL_BASE_WIDTH, s.default_tail_base_width)
            base_cy = 0.0 if kind == BubbleType.SPEECH_UP else h
            tip_y = base_cy - length if kind == BubbleType.SPEECH_UP else base_cy + length
            return (SpeechTailPart(self._new_id("part"), w / 2, base_cy, base_w,
                                   w / 2, tip_y, length, base_w),)

        if kind == BubbleType.THOUGHT:
            n = max(MIN_DOT_COUNT, s.default_dot_count)
            base = max(MIN_DOT_SIZE, s.default_dot_size)
            dots = []
            for i in range(n):
                size = max(MIN_DOT_SIZE, base - i * (base / max(1, n - 1) * 0.5))
                dots.append(ThoughtDotPart(
                    self._new_id("part"),
                    offset_x=w / 2 - (n * (size + 5)) / 2 + i * (size + 5) + size / 2,
                    offset_y=h + i * (size / 2 + 2) + 10 + size / 2,
                    size=size,
                ))
            return tuple(dots)
        return ()

    def add_bubble(self, x: float, y: float) -> Bubble | None:
        """Place a new bubble at a canvas click; nothing without an image."""
        if self.image is None:
            log.debug("Ignoring add at (%s, %s): no image loaded", x, y)
            return None
        bubble = self.create_bubble(x, y)
        self.undo_stack.push(AddBubbleCommand(self, bubble))
        return bubble

    # ------------------------------------------------------------------
    # Recorded edits
    # ------------------------------------------------------------------

    def delete_bubble(self, bubble_id: str):
        bubble = self._bubbles.get(bubble_id)
        if bubble is not None:
            self.undo_stack.push(DeleteBubbleCommand(self, bubble))

    def delete_selected(self):
        if self._selected_id:
            self.delete_bubble(self._selected_id)

    def update_bubble(self, bubble: Bubble, label: str = "Edit Bubble"):
        """Record ``bubble`` as the new value for its id (no-op if unchanged)."""
        before = self._bubbles.get(bubble.id)
        if before is None:
            log.warning("Update for unknown bubble %s ignored", bubble.id)
            return
        after = normalize_bubble(bubble)
        if after != before:
            self.undo_stack.push(UpdateBubbleCommand(self, before, after, label))

    def commit_gesture(self, before: Bubble, after: Bubble, label: str = "Transform Bubble"):
        """
        Record a finished drag.  The live value is already ``after`` (set
        through preview()); the command's first redo() is then a no-op.
        """
        if before != after:
            self.undo_stack.push(UpdateBubbleCommand(self, before, after, label))

    def preview(self, bubble: Bubble):
        """Show an intermediate gesture value without recording it."""
        if bubble.id in self._bubbles:
            self._replace(bubble)

    def set_text(self, bubble_id: str, text: str, fit: bool = True):
        bubble = self._bubbles.get(bubble_id)
        if bubble is None or bubble.text == text:
            return
        new = replace(bubble, text=text)
        if fit:
            new = auto_fit_bubble_text(new, self._measurer, self.config)
        self.update_bubble(new, "Edit Text")

    def cycle_shape_variant(self, bubble_id: str, delta: int = 1):
        bubble = self._bubbles.get(bubble_id)
        if bubble is None or bubble.type not in VARIANT_TYPES:
            return
        variant = (bubble.shape_variant or 0) + delta
        self.update_bubble(replace(bubble, shape_variant=variant), "Change Shape")

    def adjust_font_size(self, bubble_id: str, delta: int):
        bubble = self._bubbles.get(bubble_id)
        if bubble is None:
            return
        size = max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, bubble.font_size + delta * FONT_SIZE_STEP))
        self.update_bubble(replace(bubble, font_size=size), "Font Size")

    # ------------------------------------------------------------------
    # Selection / tool settings
    # ------------------------------------------------------------------

    def select(self, bubble_id: str | None):
        """Select (and raise to the top) a bubble, or clear with None."""
        if bubble_id is not None:
            bubble = self._bubbles.get(bubble_id)
            if bubble is None:
                return
            self._replace(replace(bubble, z_index=self._take_z()))
            self._sync_settings_from(self._bubbles[bubble_id])
        if bubble_id != self._selected_id:
            self._selected_id = bubble_id
            self.selection_changed.emit(bubble_id)

    def _sync_settings_from(self, bubble: Bubble):
        settings = replace(self._settings,
                           active_font_family=bubble.font_family,
                           active_font_size=bubble.font_size,
                           active_text_color=bubble.text_color,
                           active_border_color=bubble.border_color)
        if settings != self._settings:
            self._settings = settings
            self.settings_changed.emit(settings)

    def update_tool_settings(self, **changes):
        """Change tool settings; font and colours also apply to the selection."""
        self._settings = replace(self._settings, **changes)
        self.settings_changed.emit(self._settings)

        bubble = self.selected
        if bubble is None:
            return
        updates = {}
        for attr, field in (("active_font_family", "font_family"),
                            ("active_font_size", "font_size"),
                            ("active_text_color", "text_color"),
                            ("active_border_color", "border_color")):
            if attr in changes and changes[attr]:
                updates[field] = changes[attr]
        if updates:
            self.update_bubble(replace(bubble, **updates), "Change Style")

    # ------------------------------------------------------------------
    # Primitives used by the undo commands
    # ------------------------------------------------------------------

    def _insert(self, bubble: Bubble, select: bool = True):
        self._bubbles[bubble.id] = bubble
        self.bubble_added.emit(bubble.id)
        if select:
            self._selected_id = bubble.id
            self.selection_changed.emit(bubble.id)

    def _remove(self, bubble_id: str):
        if self._bubbles.pop(bubble_id, None) is None:
            return
        if self._selected_id == bubble_id:
            self._selected_id = None
            self.selection_changed.emit(None)
        self.bubble_removed.emit(bubble_id)

    def _replace(self, bubble: Bubble):
        if self._bubbles.get(bubble.id) == bubble:
            return
        self._bubbles[bubble.id] = bubble
        self.bubble_changed.emit(bubble.id)
        if bubble.id == self._selected_id:
            self._sync_settings_from(bubble)

    # ------------------------------------------------------------------
    # Project persistence
    # ------------------------------------------------------------------

    def to_project(self) -> dict:
        if self.image is None:
            raise ProjectFormatError("No image loaded; nothing to save")
        return {
            "image": self.image.to_dict(),
            "bubbles": [b.to_dict() for b in self.bubbles],
            "toolSettings": self._settings.to_dict(),
            "nextZIndex": self.next_z_index,
            "canvasSize": {"width": self.canvas_size[0], "height": self.canvas_size[1]},
            "version": PROJECT_SCHEMA,
        }

    def save_project(self, path: str):
        data = self.to_project()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        log.info("Saved project with %d bubbles to %s", len(data["bubbles"]), path)

    def from_project(self, data: dict):
        """Replace the whole state with a project record."""
        if not isinstance(data, dict):
            raise ProjectFormatError("Project root must be an object")
        missing = [k for k in ("image", "bubbles", "nextZIndex")
                   if data.get(k) in (None, "", 0)]
        if missing:
            raise ProjectFormatError(f"Invalid or corrupt project: missing {', '.join(missing)}")

        img = data["image"]
        if isinstance(img, str):
            img = {"url": img, "width": 0, "height": 0}
        try:
            image = ProjectImage(str(img["url"]), int(img.get("width", 0)),
                                 int(img.get("height", 0)))
            bubbles = []
            for raw in data["bubbles"]:
                raw = {"textColor": DEFAULT_COLOR, "borderColor": DEFAULT_COLOR, **raw}
                bubbles.append(normalize_bubble(Bubble.from_dict(raw)))
            settings = ToolSettings().merged(data.get("toolSettings") or {})
            canvas = data.get("canvasSize")
            if canvas:
                canvas_size = (float(canvas["width"]), float(canvas["height"]))
            else:
                canvas_size = (image.width / 2, image.height / 2)
            next_z = int(data["nextZIndex"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProjectFormatError(f"Invalid or corrupt project: {e}") from e

        self.image = image
        self.canvas_size = canvas_size
        self._reset()
        self._settings = settings
        self.next_z_index = next_z
        for b in bubbles:
            self._insert(b, select=False)
        self.settings_changed.emit(settings)
        log.info("Loaded project: %d bubbles, canvas %sx%s", len(bubbles), *canvas_size)

    def load_project(self, path: str):
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProjectFormatError(f"Not a project file: {e}") from e
        self.from_project(data)
