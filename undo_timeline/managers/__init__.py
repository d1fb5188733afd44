"""
Manager components for undo-timeline.
"""

from .transaction_manager import (
    TransactionManager,
    Transaction,
    TransactionStatus,
    Operation,
    HistoryEntry,
    BEFORE_FIRST,
    # Exceptions
    TransactionError,
    PreconditionViolation,
    NoOpenTransaction,
    TransactionClosed,
    NothingToUndo,
    NothingToRedo,
    OperationExecutionError,
)

__all__ = [
    'TransactionManager',
    'Transaction',
    'TransactionStatus',
    'Operation',
    'HistoryEntry',
    'BEFORE_FIRST',
    # Exceptions
    'TransactionError',
    'PreconditionViolation',
    'NoOpenTransaction',
    'TransactionClosed',
    'NothingToUndo',
    'NothingToRedo',
    'OperationExecutionError',
]
