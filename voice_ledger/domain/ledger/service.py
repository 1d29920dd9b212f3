"""Read side of the ledger: balances and transaction history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.infrastructure.database.repositories.account_repository import SqlAccountRepository

from .models import AccountSnapshot, TransactionRecord
from .repository import AccountRepository

MAX_TRANSACTION_PAGE = 100


@dataclass(slots=True)
class AccountService:
    repository: AccountRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "AccountService":
        return cls(SqlAccountRepository(session))

    async def ensure_account(self, user_id: str, currency: str = "USD") -> AccountSnapshot:
        account = await self.repository.get_account(user_id)
        if account is not None:
            return account
        return await self.repository.create_account(user_id, currency)

    async def get_balance(self, user_id: str) -> int:
        account = await self.repository.get_account(user_id)
        return account.balance_cents if account else 0

    async def get_account(self, user_id: str) -> AccountSnapshot | None:
        return await self.repository.get_account(user_id)

    async def list_transactions(self, user_id: str, limit: int = 20) -> Sequence[TransactionRecord]:
        if limit <= 0:
            return []
        return await self.repository.list_transactions(user_id, min(limit, MAX_TRANSACTION_PAGE))
