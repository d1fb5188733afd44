"""
TransactionManager - linear undo/redo history for caller-owned state.

Groups reversible operations into labelled transactions and keeps them on a
single timeline with a cursor marking the last applied transaction.

Design decisions:
- Operations are (redo, undo) callable pairs; the manager never touches the
  state they close over
- Redo replays a transaction's operations last-to-first, undo first-to-last
  (symmetric replay available behind the `symmetric_redo` flag)
- Cursor is a plain index with -1 as the "before first" sentinel, so
  truncating the timeline can never leave it dangling
- Beginning a transaction after undo discards the stale future
- Precondition violations raise, they are never asserted away
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..config.settings import is_enabled

logger = logging.getLogger(__name__)

# Type aliases
Action = Callable[[], Any]

BEFORE_FIRST = -1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================

class TransactionStatus(Enum):
    """Transaction lifecycle states."""
    OPEN = "open"
    COMMITTED = "committed"


# ============================================================================
# Exceptions
# ============================================================================

class TransactionError(Exception):
    """Base exception for transaction errors."""
    pass


class PreconditionViolation(TransactionError):
    """History operation called in a state where it is meaningless."""
    pass


class NoOpenTransaction(PreconditionViolation):
    """No transaction is current."""
    pass


class TransactionClosed(PreconditionViolation):
    """Transaction is committed and no longer accepts operations."""
    pass


class NothingToUndo(PreconditionViolation):
    """Cursor is before the first transaction."""
    pass


class NothingToRedo(PreconditionViolation):
    """No transaction after the cursor."""
    pass


class OperationExecutionError(TransactionError):
    """A redo or undo action raised."""

    def __init__(self, label: str, index: int, direction: str, error: Exception):
        self.label = label
        self.index = index
        self.direction = direction
        super().__init__(
            f"{direction} action {index} of transaction '{label}' failed: {error}"
        )


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Operation:
    """One reversible change: a forward action and its inverse."""
    redo_action: Action
    undo_action: Action


@dataclass
class HistoryEntry:
    """Read-only summary of one timeline entry."""
    index: int
    label: str
    status: TransactionStatus
    operations_count: int
    applied: bool


@dataclass
class Transaction:
    """Ordered batch of operations recorded under one label."""
    label: str
    operations: List[Operation] = field(default_factory=list)
    status: TransactionStatus = TransactionStatus.OPEN
    started_at: datetime = field(default_factory=_utcnow)
    committed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    symmetric_redo: bool = False

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def is_open(self) -> bool:
        return self.status == TransactionStatus.OPEN

    def store_and_execute(self, redo_action: Action, undo_action: Action) -> None:
        """
        Run redo_action now and record the pair.

        Nothing is recorded if redo_action raises.

        Raises:
            TransactionClosed: If the transaction is already committed
            OperationExecutionError: If redo_action fails
        """
        if not self.is_open:
            raise TransactionClosed(
                f"Transaction '{self.label}' is {self.status.value}, "
                f"cannot record new operations"
            )

        self._run(redo_action, len(self.operations), "redo")
        self.operations.append(Operation(redo_action, undo_action))

    def commit(self) -> None:
        """Freeze the operation list."""
        if self.is_open:
            self.status = TransactionStatus.COMMITTED
            self.committed_at = _utcnow()

    def redo(self) -> None:
        """Reapply every operation, last recorded first."""
        indexed = list(enumerate(self.operations))
        if not self.symmetric_redo:
            indexed.reverse()

        for index, op in indexed:
            self._run(op.redo_action, index, "redo")

    def undo(self) -> None:
        """Reverse every operation, first recorded first."""
        for index, op in enumerate(self.operations):
            self._run(op.undo_action, index, "undo")

    def _run(self, action: Action, index: int, direction: str) -> None:
        logger.debug(f"Transaction '{self.label}': {direction} operation {index}")
        try:
            action()
        except Exception as e:
            logger.error(
                f"Transaction '{self.label}': {direction} operation {index} raised {e!r}"
            )
            raise OperationExecutionError(self.label, index, direction, e) from e


# ============================================================================
# TransactionManager
# ============================================================================

class TransactionManager:
    """
    Linear undo/redo history over caller-owned state.

    The timeline holds every retained transaction. Transactions up to and
    including the cursor are applied; those after it can be redone until the
    next begin() discards them.

    Usage:
        item = {"a": "Hello"}
        mgr = TransactionManager()

        mgr.begin("Add string")
        mgr.store_and_execute(
            lambda: item.update(a="Hello World"),
            lambda: item.update(a="Hello"),
        )
        mgr.commit()

        mgr.undo()   # item["a"] == "Hello"
        mgr.redo()   # item["a"] == "Hello World"
    """

    def __init__(
        self,
        symmetric_redo: Optional[bool] = None,
        rollback_reverses: Optional[bool] = None
    ):
        """
        Initialize transaction manager.

        Args:
            symmetric_redo: Replay redo in recording order. Defaults to the
                'symmetric_redo' feature flag.
            rollback_reverses: Make rollback() undo instead of redo. Defaults
                to the 'rollback_reverses' feature flag.
        """
        if symmetric_redo is None:
            symmetric_redo = is_enabled('symmetric_redo')
        if rollback_reverses is None:
            rollback_reverses = is_enabled('rollback_reverses')

        self.symmetric_redo = symmetric_redo
        self.rollback_reverses = rollback_reverses
        self._timeline: List[Transaction] = []
        self._current = BEFORE_FIRST

        logger.info(
            f"TransactionManager initialized "
            f"(symmetric_redo: {symmetric_redo}, rollback_reverses: {rollback_reverses})"
        )

    # ========================================================================
    # Public API
    # ========================================================================

    def begin(self, label: str, metadata: Optional[Dict[str, Any]] = None) -> Transaction:
        """
        Begin a new transaction at the cursor.

        Every transaction after the cursor is discarded first. No replay
        happens.

        Args:
            label: Description of the transaction
            metadata: Optional transaction metadata

        Returns:
            The new open transaction
        """
        current = self.current_transaction
        if current is not None and current.is_open:
            logger.warning(
                f"Transaction '{current.label}' was still open, committing it "
                f"before beginning '{label}'"
            )
            current.commit()

        # Drop the undone future
        stale = len(self._timeline) - (self._current + 1)
        if stale:
            del self._timeline[self._current + 1:]
            logger.info(f"Discarded {stale} undone transaction(s)")

        transaction = Transaction(
            label=label,
            metadata=metadata or {},
            symmetric_redo=self.symmetric_redo
        )
        self._timeline.append(transaction)
        self._current = len(self._timeline) - 1

        logger.info(f"Transaction '{label}' started at index {self._current}")

        return transaction

    def store_and_execute(self, redo_action: Action, undo_action: Action) -> None:
        """
        Execute redo_action and record the pair in the open transaction.

        Args:
            redo_action: Forward action, run immediately
            undo_action: Inverse action

        Raises:
            NoOpenTransaction: If no transaction is current
            TransactionClosed: If the current transaction is committed
            OperationExecutionError: If redo_action fails
        """
        transaction = self.current_transaction
        if transaction is None:
            raise NoOpenTransaction("store_and_execute() requires an open transaction")

        transaction.store_and_execute(redo_action, undo_action)

    def commit(self) -> None:
        """Finalize the open transaction. Does nothing if none is open."""
        transaction = self.current_transaction
        if transaction is None or not transaction.is_open:
            logger.debug("commit() called without an open transaction")
            return

        transaction.commit()

        logger.info(
            f"Transaction '{transaction.label}' committed "
            f"({len(transaction)} operations)"
        )

    def rollback(self) -> None:
        """
        Replay the most recent transaction once more and drop it.

        The transaction's redo() is run, not its undo(), unless
        rollback_reverses is set.

        Raises:
            NoOpenTransaction: If no transaction is current
            PreconditionViolation: If the cursor is not on the most recent
                transaction
        """
        transaction = self.current_transaction
        if transaction is None:
            raise NoOpenTransaction("rollback() requires a current transaction")
        if self._current != len(self._timeline) - 1:
            raise PreconditionViolation(
                f"rollback() only applies to the most recent transaction "
                f"(cursor {self._current}, last index {len(self._timeline) - 1})"
            )

        if self.rollback_reverses:
            transaction.undo()
        else:
            transaction.redo()

        self._timeline.pop()
        self._current = len(self._timeline) - 1

        logger.info(
            f"Transaction '{transaction.label}' rolled back "
            f"({len(transaction)} operations discarded)"
        )

    def undo(self) -> None:
        """
        Reverse the transaction at the cursor and step back.

        The transaction stays in the timeline for redo(). If it fails, the
        cursor does not move.

        Raises:
            NothingToUndo: If the cursor is before the first transaction
            OperationExecutionError: If an undo action fails
        """
        transaction = self.current_transaction
        if transaction is None:
            raise NothingToUndo("Nothing to undo")

        if transaction.is_open:
            logger.warning(f"Undoing open transaction '{transaction.label}', committing it")
            transaction.commit()

        transaction.undo()
        self._current -= 1

        logger.info(f"Undid '{transaction.label}' (cursor now {self._current})")

    def redo(self) -> None:
        """
        Step forward and reapply the transaction now at the cursor.

        The cursor advances before replay, so it stays advanced if an action
        fails.

        Raises:
            NothingToRedo: If the cursor is on the last transaction
            OperationExecutionError: If a redo action fails
        """
        if not self.can_redo():
            raise NothingToRedo("Nothing to redo")

        self._current += 1
        transaction = self._timeline[self._current]
        transaction.redo()

        logger.info(f"Redid '{transaction.label}' (cursor now {self._current})")

    def size(self) -> int:
        """Number of transactions in the timeline, open one included."""
        return len(self._timeline)

    def last_index(self) -> int:
        """Cursor position, -1 when before the first transaction."""
        return self._current

    @contextmanager
    def transaction(
        self,
        label: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Iterator[Transaction]:
        """
        Context manager for transactions.

        Commits on exit. Operations recorded before an exception stay
        committed and the exception propagates.
        """
        tx = self.begin(label, metadata)
        try:
            yield tx
        finally:
            self.commit()

    # ========================================================================
    # Inspection
    # ========================================================================

    @property
    def current_transaction(self) -> Optional[Transaction]:
        if self._current == BEFORE_FIRST:
            return None
        return self._timeline[self._current]

    def can_undo(self) -> bool:
        return self._current != BEFORE_FIRST

    def can_redo(self) -> bool:
        return self._current + 1 < len(self._timeline)

    def undo_label(self) -> Optional[str]:
        """Label of the transaction undo() would reverse."""
        transaction = self.current_transaction
        return transaction.label if transaction is not None else None

    def redo_label(self) -> Optional[str]:
        """Label of the transaction redo() would reapply."""
        if not self.can_redo():
            return None
        return self._timeline[self._current + 1].label

    def history(self) -> List[HistoryEntry]:
        """Summaries of every timeline entry, oldest first."""
        return [
            HistoryEntry(
                index=index,
                label=tx.label,
                status=tx.status,
                operations_count=len(tx),
                applied=index <= self._current
            )
            for index, tx in enumerate(self._timeline)
        ]

    def get_status(self) -> Dict[str, Any]:
        """
        Get manager status.

        Returns:
            Dictionary with cursor position, undo/redo availability and a
            summary of each transaction
        """
        current = self.current_transaction

        return {
            "size": self.size(),
            "last_index": self.last_index(),
            "can_undo": self.can_undo(),
            "can_redo": self.can_redo(),
            "open_transaction": current.label if current is not None and current.is_open else None,
            "transactions": [
                {
                    "index": entry.index,
                    "label": entry.label,
                    "status": entry.status.value,
                    "operations_count": entry.operations_count,
                    "applied": entry.applied
                }
                for entry in self.history()
            ]
        }
