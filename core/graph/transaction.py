"""
Transactions
All-or-nothing mutation scopes over the GraphModel, with editor-style undo/redo

A TransactionScope snapshots every loaded blueprint on begin. Rollback
restores the snapshot; commit records the before/after states in the
UndoHistory.
"""
from typing import List, Optional
import logging

from .registry import GraphModel, GraphModelSnapshot

logger = logging.getLogger(__name__)


class TransactionError(RuntimeError):
    """Raised when a transaction is used out of order"""


class UndoEntry:
    """One committed transaction"""

    def __init__(self, label: str, before: GraphModelSnapshot, after: GraphModelSnapshot):
        self.label = label
        self.before = before
        self.after = after


class UndoHistory:
    """
    Bounded undo/redo stacks of committed transactions

    Args:
        graph_model: Model that undo/redo restore into
        max_entries: Oldest entries are dropped beyond this depth
    """

    def __init__(self, graph_model: GraphModel, max_entries: int = 50):
        self.graph_model = graph_model
        self.max_entries = max_entries
        self._undo: List[UndoEntry] = []
        self._redo: List[UndoEntry] = []
        self.locked = False

    @property
    def can_undo(self) -> bool:
        return bool(self._undo) and not self.locked

    @property
    def can_redo(self) -> bool:
        return bool(self._redo) and not self.locked

    def labels(self) -> List[str]:
        return [entry.label for entry in self._undo]

    def record(self, entry: UndoEntry):
        self._undo.append(entry)
        if len(self._undo) > self.max_entries:
            del self._undo[0]
        self._redo.clear()

    def undo(self) -> Optional[str]:
        """
        Revert the most recent committed transaction

        Returns:
            Label of the undone transaction, or None if nothing to undo
        """
        if self.locked:
            raise TransactionError("Cannot undo while a transaction is open")
        if not self._undo:
            return None

        entry = self._undo.pop()
        self.graph_model.restore(entry.before)
        self._redo.append(entry)
        logger.info(f"Undo: {entry.label}")
        return entry.label

    def redo(self) -> Optional[str]:
        """
        Re-apply the most recently undone transaction

        Returns:
            Label of the redone transaction, or None if nothing to redo
        """
        if self.locked:
            raise TransactionError("Cannot redo while a transaction is open")
        if not self._redo:
            return None

        entry = self._redo.pop()
        self.graph_model.restore(entry.after)
        self._undo.append(entry)
        logger.info(f"Redo: {entry.label}")
        return entry.label


class TransactionScope:
    """
    Single open transaction over a GraphModel

    At most one transaction may be open per scope. Beginning a second one
    while the first is open is an error, never an implicit commit.

    Usage:
        scope = TransactionScope(model, history)
        scope.begin("Apply AI Patch")
        ...mutate...
        scope.commit()   # or scope.rollback()
    """

    def __init__(self, graph_model: GraphModel, history: Optional[UndoHistory] = None):
        self.graph_model = graph_model
        self.history = history
        self.label: Optional[str] = None
        self._before: Optional[GraphModelSnapshot] = None

    @property
    def is_open(self) -> bool:
        return self._before is not None

    def begin(self, label: str):
        if self.is_open:
            raise TransactionError(f"Transaction '{self.label}' is still open; cannot begin '{label}'")

        self._before = self.graph_model.snapshot()
        self.label = label
        if self.history:
            self.history.locked = True
        logger.debug(f"Began transaction '{label}'")

    def commit(self):
        if not self.is_open:
            raise TransactionError("No open transaction to commit")

        if self.history:
            self.history.locked = False
            self.history.record(UndoEntry(self.label, self._before, self.graph_model.snapshot()))

        logger.debug(f"Committed transaction '{self.label}'")
        self._close()

    def rollback(self):
        if not self.is_open:
            raise TransactionError("No open transaction to roll back")

        self.graph_model.restore(self._before)
        if self.history:
            self.history.locked = False

        logger.debug(f"Rolled back transaction '{self.label}'")
        self._close()

    def _close(self):
        self._before = None
        self.label = None
