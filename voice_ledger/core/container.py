"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from voice_ledger.core.config import Settings, get_settings
from voice_ledger.domain.events.processor import EventProcessor
from voice_ledger.domain.ledger.idempotency import IdempotencyLedger
from voice_ledger.domain.ledger.models import OverdraftPolicy
from voice_ledger.domain.ledger.mutator import AccountMutator
from voice_ledger.domain.ledger.policy import BalancePolicy
from voice_ledger.domain.pricing.models import MarkupConfig
from voice_ledger.domain.pricing.snapshot import PricingSnapshotProvider
from voice_ledger.infrastructure.database import build_engine, build_session_factory, init_db


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    pricing: PricingSnapshotProvider
    mutator: AccountMutator
    processor: EventProcessor

    @classmethod
    def build(cls, settings: Settings) -> "ApplicationContainer":
        engine = build_engine(settings.database, settings.debug)
        session_factory = build_session_factory(engine)
        pricing = PricingSnapshotProvider(
            session_factory,
            default_markup=MarkupConfig(default_markup_percent=settings.pricing.default_markup_percent),
            unit_seconds=settings.pricing.unit_seconds,
        )
        mutator = AccountMutator(
            session_factory,
            policy=BalancePolicy(
                mode=OverdraftPolicy(settings.ledger.overdraft_policy),
                grace_limit_cents=settings.ledger.grace_limit_cents,
            ),
            currency=settings.ledger.currency,
            max_retries=settings.ledger.max_retries,
            retry_backoff_seconds=settings.ledger.retry_backoff_seconds,
        )
        processor = EventProcessor(
            mutator,
            pricing,
            timeout_seconds=settings.ledger.event_timeout_seconds,
            payment_webhook_secret=settings.payments.webhook_secret,
            payment_tolerance_seconds=settings.payments.signature_tolerance_seconds,
            telephony_auth_token=settings.telephony.auth_token,
            accept_unsigned_callbacks=settings.accepts_unsigned_callbacks,
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            pricing=pricing,
            mutator=mutator,
            processor=processor,
        )

    async def startup(self) -> None:
        """Create tables, release stale reservations and warm the pricing snapshot."""
        await init_db(self.engine)
        async with self.session_factory() as session:
            async with session.begin():
                ledger = IdempotencyLedger.with_session(session)
                await ledger.sweep_stale(timedelta(seconds=self.settings.ledger.reservation_timeout_seconds))
        await self.pricing.current()

    async def shutdown(self) -> None:
        await self.engine.dispose()


@lru_cache()
def get_container() -> ApplicationContainer:
    return ApplicationContainer.build(get_settings())


__all__ = ["ApplicationContainer", "get_container"]
