"""Versioned pricing snapshots loaded from the committed rate table."""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from voice_ledger.infrastructure.database.repositories.pricing_repository import SqlPricingRepository

from .models import EMPTY_SNAPSHOT, MarkupConfig, PricingSnapshot
from .repository import PricingRepository
from .resolver import PricingResolver

logger = logging.getLogger(__name__)


class PricingSnapshotProvider:
    """Hands out the snapshot matching the latest committed rate table and markup.

    The committed versions are checked on every call; the snapshot itself is
    only rebuilt when one of them moved, and is swapped in as a whole.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        default_markup: MarkupConfig | None = None,
        unit_seconds: int = 60,
        repository_factory: Callable[[AsyncSession], PricingRepository] = SqlPricingRepository,
    ) -> None:
        self._session_factory = session_factory
        self._default_markup = default_markup or MarkupConfig()
        self._unit_seconds = unit_seconds
        self._repository_factory = repository_factory
        self._snapshot = EMPTY_SNAPSHOT

    @property
    def cached(self) -> PricingSnapshot:
        return self._snapshot

    async def current(self) -> PricingSnapshot:
        async with self._session_factory() as session:
            repository = self._repository_factory(session)
            rate_version = await repository.latest_rate_version()
            markup_revision = await repository.latest_markup_revision()

            snapshot = self._snapshot
            if (snapshot.rate_version, snapshot.markup_revision) == (rate_version, markup_revision):
                return snapshot

            entries = await repository.load_rate_entries(rate_version) if rate_version else []
            markup = await repository.load_markup(markup_revision) if markup_revision else None

        loaded = PricingSnapshot(
            rate_version=rate_version,
            markup_revision=markup_revision,
            rates={entry.destination: entry for entry in entries},
            markup=markup or self._default_markup,
        )
        if (loaded.rate_version, loaded.markup_revision) >= (
            self._snapshot.rate_version,
            self._snapshot.markup_revision,
        ):
            self._snapshot = loaded
            logger.info(
                "Loaded pricing snapshot %s with %d destinations",
                loaded.version,
                len(loaded.rates),
            )
        return loaded

    async def resolver(self) -> PricingResolver:
        return PricingResolver(await self.current(), unit_seconds=self._unit_seconds)


__all__ = ["PricingSnapshotProvider"]
