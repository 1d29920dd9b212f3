"""Domain models for balances, transactions and processed events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    CALL_CHARGE = "call-charge"
    ADJUSTMENT = "adjustment"


class LedgerEntryStatus(str, Enum):
    RESERVED = "reserved"
    COMPLETED = "completed"


class OverdraftPolicy(str, Enum):
    STRICT = "strict"
    GRACE = "grace"
    CAPPED = "capped"


@dataclass(slots=True)
class AccountSnapshot:
    user_id: str
    balance_cents: int
    version: int
    currency: str
    updated_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class TransactionMetadata:
    description: Optional[str] = None
    call_id: Optional[str] = None
    destination: Optional[str] = None
    duration_seconds: Optional[int] = None
    billable_seconds: Optional[int] = None
    rate_per_unit: Optional[Decimal] = None
    pricing_version: Optional[str] = None


@dataclass(slots=True)
class TransactionRecord:
    id: str
    user_id: str
    event_id: str
    type: TransactionType
    amount_cents: int
    currency: str
    status: str
    balance_after_cents: int
    account_version: int
    created_at: datetime
    requested_amount_cents: Optional[int] = None
    metadata: TransactionMetadata = TransactionMetadata()


@dataclass(slots=True)
class LedgerEntry:
    event_id: str
    source: str
    user_id: str
    status: LedgerEntryStatus
    created_at: datetime
    result_balance_cents: Optional[int] = None
    transaction_id: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status is LedgerEntryStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class Reservation:
    first_reservation: bool
    entry: LedgerEntry


@dataclass(slots=True)
class MutationResult:
    user_id: str
    event_id: str
    new_balance_cents: int
    duplicate: bool = False
    transaction: Optional[TransactionRecord] = None
