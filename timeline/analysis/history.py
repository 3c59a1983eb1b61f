"""
Undo/Redo History.

Keeps a bounded log of (forward, inverse) mutation pairs. Undo and redo are
replayed through the same propagator used for live edits.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.config.settings import settings
from ..cpm.state import ProjectState
from .accordion import AccordionPropagator, PropagationResult
from .mutations import Mutation

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    forward: Mutation
    inverse: Mutation

    @property
    def label(self) -> str:
        return self.forward.label


class HistoryManager:
    """Command log with undo/redo over project snapshots."""

    def __init__(self, propagator: AccordionPropagator, limit: Optional[int] = None):
        self.propagator = propagator
        self.limit = settings.MAX_UNDO_HISTORY if limit is None else limit
        self._past: list[HistoryEntry] = []
        self._future: list[HistoryEntry] = []

    def execute(self, state: ProjectState, mutation: Mutation) -> PropagationResult:
        """Apply a mutation and record it. A rejected mutation is not recorded."""
        result = self.propagator.apply(state, mutation)
        self.record(mutation, result.inverse)
        return result

    def record(self, forward: Mutation, inverse: Mutation) -> None:
        """Record an applied (forward, inverse) pair and drop the redo stack."""
        self._past.append(HistoryEntry(forward, inverse))
        self._future.clear()
        if len(self._past) > self.limit:
            dropped = self._past.pop(0)
            logger.warning(f"Undo history full; dropped oldest entry '{dropped.label}'")

    def undo(self, state: ProjectState) -> Optional[PropagationResult]:
        """Revert the latest mutation. Returns None if there is nothing to undo."""
        if not self._past:
            return None
        entry = self._past.pop()
        result = self.propagator.apply(state, entry.inverse)
        self._future.append(entry)
        return result

    def redo(self, state: ProjectState) -> Optional[PropagationResult]:
        """Re-apply the latest undone mutation. Returns None if there is nothing to redo."""
        if not self._future:
            return None
        entry = self._future.pop()
        result = self.propagator.apply(state, entry.forward)
        self._past.append(HistoryEntry(entry.forward, result.inverse))
        return result

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    @property
    def undo_labels(self) -> list[str]:
        return [entry.label for entry in reversed(self._past)]

    def __len__(self) -> int:
        return len(self._past)
