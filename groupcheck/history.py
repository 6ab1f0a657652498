"""Undo/redo over assignment snapshots."""

from groupcheck.models import Assignment
from groupcheck.schedule import clone_assignments


class EditHistory:
    """
    Two stacks of full assignment-list snapshots.

    Everything stored or handed out is a deep copy, so callers can mutate what
    they get back without touching the history. A history created without a
    draft takes its first commit as the starting point.
    """

    def __init__(self, initial: list[Assignment] | None = None):
        self._current = None if initial is None else clone_assignments(initial)
        self._undo: list[list[Assignment]] = []
        self._redo: list[list[Assignment]] = []

    @property
    def current(self) -> list[Assignment] | None:
        if self._current is None:
            return None
        return clone_assignments(self._current)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def reset(self, assignments: list[Assignment]) -> None:
        """Start over from a new base, dropping both stacks."""
        self._current = clone_assignments(assignments)
        self._undo.clear()
        self._redo.clear()

    def commit(self, next_assignments: list[Assignment]) -> list[Assignment]:
        if self._current is not None:
            self._undo.append(self._current)
        self._redo.clear()
        self._current = clone_assignments(next_assignments)
        return self.current

    def undo(self) -> list[Assignment] | None:
        if self._undo:
            self._redo.append(self._current)
            self._current = self._undo.pop()
        return self.current

    def redo(self) -> list[Assignment] | None:
        if self._redo:
            self._undo.append(self._current)
            self._current = self._redo.pop()
        return self.current
