"""Repository protocols for accounts, transactions and processed events."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .models import AccountSnapshot, LedgerEntry, TransactionMetadata, TransactionRecord, TransactionType


class AccountRepository(Protocol):
    async def get_account(self, user_id: str) -> AccountSnapshot | None:
        ...

    async def create_account(self, user_id: str, currency: str) -> AccountSnapshot:
        ...

    async def compare_and_set_balance(
        self,
        user_id: str,
        *,
        expected_version: int,
        new_balance_cents: int,
    ) -> bool:
        ...

    async def add_transaction(
        self,
        *,
        user_id: str,
        event_id: str,
        type: TransactionType,
        amount_cents: int,
        currency: str,
        balance_after_cents: int,
        account_version: int,
        requested_amount_cents: int | None,
        metadata: TransactionMetadata,
    ) -> TransactionRecord:
        ...

    async def list_transactions(self, user_id: str, limit: int) -> Sequence[TransactionRecord]:
        ...


class LedgerEventRepository(Protocol):
    async def get(self, event_id: str) -> LedgerEntry | None:
        ...

    async def insert_reserved(self, event_id: str, *, source: str, user_id: str) -> LedgerEntry:
        ...

    async def mark_completed(
        self,
        event_id: str,
        *,
        result_balance_cents: int,
        transaction_id: str | None,
        completed_at: datetime,
    ) -> None:
        ...

    async def delete_reserved_before(self, cutoff: datetime) -> int:
        ...
