"""SQLAlchemy implementation for the idempotency ledger"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.db.models import LedgerEvent
from voice_ledger.domain.ledger.exceptions import ConcurrentModification
from voice_ledger.domain.ledger.models import LedgerEntry, LedgerEntryStatus


class SqlLedgerEventRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, event_id: str) -> LedgerEntry | None:
        stmt = select(LedgerEvent).where(LedgerEvent.event_id == event_id)
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def insert_reserved(self, event_id: str, *, source: str, user_id: str) -> LedgerEntry:
        model = LedgerEvent(
            event_id=event_id,
            source=source,
            user_id=user_id,
            status=LedgerEntryStatus.RESERVED.value,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConcurrentModification(f"event {event_id} reserved concurrently") from exc
        return self._to_domain(model)

    async def mark_completed(
        self,
        event_id: str,
        *,
        result_balance_cents: int,
        transaction_id: str | None,
        completed_at: datetime,
    ) -> None:
        stmt = (
            update(LedgerEvent)
            .where(LedgerEvent.event_id == event_id)
            .values(
                status=LedgerEntryStatus.COMPLETED.value,
                result_balance_cents=result_balance_cents,
                transaction_id=transaction_id,
                completed_at=completed_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def delete_reserved_before(self, cutoff: datetime) -> int:
        stmt = (
            delete(LedgerEvent)
            .where(LedgerEvent.status == LedgerEntryStatus.RESERVED.value)
            .where(LedgerEvent.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    @staticmethod
    def _to_domain(model: LedgerEvent) -> LedgerEntry:
        return LedgerEntry(
            event_id=model.event_id,
            source=model.source,
            user_id=model.user_id,
            status=LedgerEntryStatus(model.status),
            created_at=model.created_at,
            result_balance_cents=model.result_balance_cents,
            transaction_id=model.transaction_id,
            completed_at=model.completed_at,
        )
