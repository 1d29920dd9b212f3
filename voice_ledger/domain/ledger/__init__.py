"""Ledger domain exports (models, policy and errors)."""

from .exceptions import (
    ConcurrentModification,
    DuplicateEvent,
    EventInProgress,
    EventOwnerMismatch,
    InsufficientFunds,
    StoreUnavailable,
)
from .models import (
    AccountSnapshot,
    LedgerEntry,
    LedgerEntryStatus,
    MutationResult,
    OverdraftPolicy,
    Reservation,
    TransactionMetadata,
    TransactionRecord,
    TransactionType,
)
from .policy import BalancePolicy

__all__ = [
    "AccountSnapshot",
    "BalancePolicy",
    "ConcurrentModification",
    "DuplicateEvent",
    "EventInProgress",
    "EventOwnerMismatch",
    "InsufficientFunds",
    "LedgerEntry",
    "LedgerEntryStatus",
    "MutationResult",
    "OverdraftPolicy",
    "Reservation",
    "StoreUnavailable",
    "TransactionMetadata",
    "TransactionRecord",
    "TransactionType",
]
