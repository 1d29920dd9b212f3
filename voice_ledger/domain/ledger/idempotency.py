"""Idempotency ledger of processed external events.

Turns at-least-once delivered notifications into at-most-once applied
balance changes. Entries are written inside the caller's transaction, so a
reservation commits together with the mutation it guards or not at all.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.infrastructure.database.repositories.ledger_event_repository import SqlLedgerEventRepository

from .models import LedgerEntry, Reservation
from .repository import LedgerEventRepository

logger = logging.getLogger(__name__)


class IdempotencyLedger:
    def __init__(self, repository: LedgerEventRepository) -> None:
        self._repository = repository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "IdempotencyLedger":
        return cls(SqlLedgerEventRepository(session))

    async def get(self, event_id: str) -> LedgerEntry | None:
        return await self._repository.get(event_id)

    async def reserve(self, event_id: str, *, source: str, user_id: str) -> Reservation:
        """Claim ``event_id``.

        Only one caller ever observes ``first_reservation=True``. A concurrent
        claim that loses the race surfaces as ``ConcurrentModification`` from
        the repository and must be retried in a fresh transaction.
        """
        existing = await self._repository.get(event_id)
        if existing is not None:
            return Reservation(first_reservation=False, entry=existing)
        entry = await self._repository.insert_reserved(event_id, source=source, user_id=user_id)
        return Reservation(first_reservation=True, entry=entry)

    async def mark_completed(
        self,
        event_id: str,
        *,
        result_balance_cents: int,
        transaction_id: str | None = None,
    ) -> None:
        await self._repository.mark_completed(
            event_id,
            result_balance_cents=result_balance_cents,
            transaction_id=transaction_id,
            completed_at=datetime.now(timezone.utc),
        )

    async def sweep_stale(self, older_than: timedelta) -> int:
        """Release reservations that never completed so their events can be retried."""
        cutoff = datetime.now(timezone.utc) - older_than
        released = await self._repository.delete_reserved_before(cutoff)
        if released:
            logger.warning("Released %d stale event reservations older than %s", released, cutoff)
        return released


__all__ = ["IdempotencyLedger"]
