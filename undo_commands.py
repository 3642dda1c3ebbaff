"""
undo_commands.py — QUndoCommand subclasses for the undo/redo stack.

Commands hold whole Bubble values (they are immutable, so no copies are
needed) and call the orchestrator's un-recorded primitives.

Commands implemented:
  AddBubbleCommand     — redo = insert bubble,  undo = remove it
  DeleteBubbleCommand  — redo = remove bubble,  undo = insert it back
  UpdateBubbleCommand  — redo = after value,    undo = before value
                         (consecutive edits of one bubble with the same
                         label are merged, e.g. font-size nudges)
"""

from dataclasses import replace

from PyQt6.QtGui import QUndoCommand


class AddBubbleCommand(QUndoCommand):
    def __init__(self, orchestrator, bubble):
        super().__init__("Add Bubble")
        self._orch   = orchestrator
        self._bubble = bubble

    def redo(self):
        self._orch._insert(self._bubble)

    def undo(self):
        self._orch._remove(self._bubble.id)


class DeleteBubbleCommand(QUndoCommand):
    def __init__(self, orchestrator, bubble):
        super().__init__("Delete Bubble")
        self._orch   = orchestrator
        self._bubble = bubble

    def redo(self):
        self._orch._remove(self._bubble.id)

    def undo(self):
        self._orch._insert(self._bubble)


class UpdateBubbleCommand(QUndoCommand):
    # Edits share one id so Qt offers them to mergeWith()
    _ID = 42

    def __init__(self, orchestrator, before, after, label: str = "Edit Bubble"):
        super().__init__(label)
        self._orch   = orchestrator
        self._before = before
        self._after  = after

    def id(self) -> int:
        return self._ID

    def mergeWith(self, other: QUndoCommand) -> bool:
        """Merge a follow-up edit of the same bubble and kind — keeps before→last."""
        if (isinstance(other, UpdateBubbleCommand)
                and other._after.id == self._after.id
                and other.text() == self.text()
                and other.text() in ("Font Size", "Change Shape")):
            self._after = other._after
            return True
        return False

    def _apply(self, value):
        # stacking order is owned by selection, not by history
        current = self._orch.bubble(value.id)
        if current is not None:
            value = replace(value, z_index=current.z_index)
        self._orch._replace(value)

    def redo(self):
        self._apply(self._after)

    def undo(self):
        self._apply(self._before)
