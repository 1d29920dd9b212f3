"""SQLAlchemy implementation for accounts and their transaction trail"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.db.models import Account, Transaction
from voice_ledger.domain.ledger.exceptions import ConcurrentModification
from voice_ledger.domain.ledger.models import (
    AccountSnapshot,
    TransactionMetadata,
    TransactionRecord,
    TransactionType,
)


class SqlAccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_account(self, user_id: str) -> AccountSnapshot | None:
        stmt = select(Account).where(Account.user_id == user_id)
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_snapshot(model) if model else None

    async def create_account(self, user_id: str, currency: str) -> AccountSnapshot:
        account = Account(user_id=user_id, currency=currency, balance_cents=0, version=0)
        self.session.add(account)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConcurrentModification(f"account {user_id} created concurrently") from exc
        return self._to_snapshot(account)

    async def compare_and_set_balance(
        self,
        user_id: str,
        *,
        expected_version: int,
        new_balance_cents: int,
    ) -> bool:
        stmt = (
            update(Account)
            .where(Account.user_id == user_id)
            .where(Account.version == expected_version)
            .values(
                balance_cents=new_balance_cents,
                version=Account.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

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
        tx = Transaction(
            user_id=user_id,
            event_id=event_id,
            type=type.value,
            amount_cents=amount_cents,
            currency=currency,
            status="completed",
            balance_after_cents=balance_after_cents,
            account_version=account_version,
            requested_amount_cents=requested_amount_cents,
            description=metadata.description,
            call_id=metadata.call_id,
            destination=metadata.destination,
            duration_seconds=metadata.duration_seconds,
            billable_seconds=metadata.billable_seconds,
            rate_per_unit=metadata.rate_per_unit,
            pricing_version=metadata.pricing_version,
        )
        self.session.add(tx)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConcurrentModification(f"transaction for {event_id} recorded concurrently") from exc
        return self._to_transaction(tx)

    async def list_transactions(self, user_id: str, limit: int) -> list[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(desc(Transaction.account_version))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_transaction(row) for row in result.scalars().all()]

    @staticmethod
    def _to_snapshot(model: Account) -> AccountSnapshot:
        return AccountSnapshot(
            user_id=model.user_id,
            balance_cents=model.balance_cents,
            version=model.version,
            currency=model.currency,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _to_transaction(model: Transaction) -> TransactionRecord:
        return TransactionRecord(
            id=model.id,
            user_id=model.user_id,
            event_id=model.event_id,
            type=TransactionType(model.type),
            amount_cents=model.amount_cents,
            currency=model.currency,
            status=model.status,
            balance_after_cents=model.balance_after_cents,
            account_version=model.account_version,
            created_at=model.created_at,
            requested_amount_cents=model.requested_amount_cents,
            metadata=TransactionMetadata(
                description=model.description,
                call_id=model.call_id,
                destination=model.destination,
                duration_seconds=model.duration_seconds,
                billable_seconds=model.billable_seconds,
                rate_per_unit=Decimal(model.rate_per_unit) if model.rate_per_unit is not None else None,
                pricing_version=model.pricing_version,
            ),
        )
