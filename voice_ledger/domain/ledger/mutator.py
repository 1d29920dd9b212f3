"""Atomic, idempotent balance mutations.

Every mutation runs as one database transaction: reserve the event id, read
the account, apply the overdraft policy, compare-and-set the balance on the
account version, append the transaction record and complete the reservation.
Either all of it commits or none of it does. Conflicting writers lose the
version check (or the event id insert) and retry from scratch.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from voice_ledger.infrastructure.database.repositories.account_repository import SqlAccountRepository

from .exceptions import (
    ConcurrentModification,
    DuplicateEvent,
    EventInProgress,
    EventOwnerMismatch,
    StoreUnavailable,
)
from .idempotency import IdempotencyLedger
from .models import MutationResult, TransactionMetadata, TransactionType
from .policy import BalancePolicy
from .repository import AccountRepository

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 1.0


class AccountMutator:
    """The only writer of account balances and transaction records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        policy: BalancePolicy | None = None,
        currency: str = "USD",
        max_retries: int = 5,
        retry_backoff_seconds: float = 0.05,
        account_repository_factory: Callable[[AsyncSession], AccountRepository] = SqlAccountRepository,
    ) -> None:
        self._session_factory = session_factory
        self._policy = policy or BalancePolicy()
        self._currency = currency
        self._max_retries = max_retries
        self._retry_backoff_seconds = retry_backoff_seconds
        self._account_repository_factory = account_repository_factory

    @property
    def policy(self) -> BalancePolicy:
        return self._policy

    async def apply_transaction(
        self,
        user_id: str,
        event_id: str,
        type: TransactionType,
        signed_amount_cents: int,
        metadata: TransactionMetadata | None = None,
        *,
        source: str | None = None,
    ) -> MutationResult:
        """Apply one balance change for ``event_id`` exactly once.

        Replaying an event that already committed returns the balance it
        produced with ``duplicate=True`` and writes nothing.

        Raises:
            InsufficientFunds: the debit breaches the overdraft policy.
            EventOwnerMismatch: the event id was already applied for another user.
            StoreUnavailable: the store could not commit; retrying is safe.
        """
        self._validate_amount(type, signed_amount_cents)
        metadata = metadata or TransactionMetadata()
        source = source or type.value

        attempt = 0
        while True:
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        return await self._apply_once(
                            session, user_id, event_id, type, signed_amount_cents, metadata, source
                        )
            except DuplicateEvent as exc:
                logger.info(
                    "Event %s already applied for %s; replaying balance %s",
                    event_id,
                    user_id,
                    exc.result_balance_cents,
                )
                return MutationResult(
                    user_id=user_id,
                    event_id=event_id,
                    new_balance_cents=exc.result_balance_cents,
                    duplicate=True,
                )
            except (ConcurrentModification, IntegrityError) as exc:
                reason = f"conflict: {exc}"
            except (PoolTimeoutError, DBAPIError) as exc:
                reason = f"store error: {exc}"
            except SQLAlchemyError as exc:
                logger.error("Unexpected store failure applying %s: %s", event_id, exc)
                raise StoreUnavailable(f"could not apply event {event_id}") from exc

            if attempt >= self._max_retries:
                logger.error("Giving up on event %s after %d attempts (%s)", event_id, attempt + 1, reason)
                raise StoreUnavailable(f"could not apply event {event_id}: {reason}")
            attempt += 1
            logger.warning("Retrying event %s (attempt %d, %s)", event_id, attempt, reason)
            await asyncio.sleep(self._backoff(attempt))

    async def _apply_once(
        self,
        session: AsyncSession,
        user_id: str,
        event_id: str,
        type: TransactionType,
        signed_amount_cents: int,
        metadata: TransactionMetadata,
        source: str,
    ) -> MutationResult:
        ledger = IdempotencyLedger.with_session(session)
        accounts = self._account_repository_factory(session)

        reservation = await ledger.reserve(event_id, source=source, user_id=user_id)
        if not reservation.first_reservation:
            entry = reservation.entry
            if not entry.is_completed:
                raise EventInProgress(f"event {event_id} is reserved but not completed")
            if entry.user_id != user_id:
                logger.warning(
                    "Event %s replayed for %s but was applied to %s", event_id, user_id, entry.user_id
                )
                raise EventOwnerMismatch(event_id, user_id)
            raise DuplicateEvent(event_id, entry.result_balance_cents)

        account = await accounts.get_account(user_id)
        if account is None:
            account = await accounts.create_account(user_id, self._currency)

        applied = self._policy.settle(user_id, account.balance_cents, signed_amount_cents, type)
        new_balance = account.balance_cents + applied
        if not await accounts.compare_and_set_balance(
            user_id, expected_version=account.version, new_balance_cents=new_balance
        ):
            raise ConcurrentModification(f"account {user_id} changed since version {account.version}")

        transaction = await accounts.add_transaction(
            user_id=user_id,
            event_id=event_id,
            type=type,
            amount_cents=applied,
            currency=account.currency,
            balance_after_cents=new_balance,
            account_version=account.version + 1,
            requested_amount_cents=signed_amount_cents if applied != signed_amount_cents else None,
            metadata=metadata,
        )
        await ledger.mark_completed(
            event_id, result_balance_cents=new_balance, transaction_id=transaction.id
        )

        if applied != signed_amount_cents:
            logger.warning(
                "Capped %s for %s: requested %d cents, collected %d",
                event_id,
                user_id,
                signed_amount_cents,
                applied,
            )
        logger.info(
            "Applied %s %s for %s: %+d cents, balance %d -> %d",
            type.value,
            event_id,
            user_id,
            applied,
            account.balance_cents,
            new_balance,
        )
        return MutationResult(
            user_id=user_id,
            event_id=event_id,
            new_balance_cents=new_balance,
            transaction=transaction,
        )

    def _backoff(self, attempt: int) -> float:
        delay = min(self._retry_backoff_seconds * (2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)
        return delay + random.uniform(0, delay)

    @staticmethod
    def _validate_amount(type: TransactionType, signed_amount_cents: int) -> None:
        if type is TransactionType.DEPOSIT and signed_amount_cents <= 0:
            raise ValueError("deposits must be positive")
        if type is TransactionType.CALL_CHARGE and signed_amount_cents >= 0:
            raise ValueError("call charges must be negative")
        if type is TransactionType.ADJUSTMENT and signed_amount_cents == 0:
            raise ValueError("adjustments must be non-zero")


__all__ = ["AccountMutator"]
