"""Administrative refresh of rate tables and markup configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.infrastructure.database.repositories.pricing_repository import SqlPricingRepository

from .exceptions import InvalidRateTable
from .models import MarkupConfig, RateEntry, normalize_destination
from .repository import PricingRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PricingService:
    repository: PricingRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "PricingService":
        return cls(SqlPricingRepository(session))

    async def replace_rate_table(self, entries: Iterable[RateEntry]) -> int:
        """Commit a complete new rate table; returns its version."""
        normalized: dict[str, RateEntry] = {}
        for entry in entries:
            code = normalize_destination(entry.destination)
            if not code:
                raise InvalidRateTable("destination must not be empty")
            if code in normalized:
                raise InvalidRateTable(f"duplicate destination {code}")
            normalized[code] = RateEntry(
                destination=code,
                base_price=entry.base_price,
                billing_increment_seconds=entry.billing_increment_seconds,
                country_name=entry.country_name,
            )
        if not normalized:
            raise InvalidRateTable("rate table must contain at least one destination")

        version = await self.repository.create_rate_table(list(normalized.values()))
        logger.info("Rate table version %d created with %d destinations", version, len(normalized))
        return version

    async def update_markup(self, config: MarkupConfig) -> int:
        revision = await self.repository.create_markup(config)
        logger.info(
            "Markup revision %d created (default %s%%, %d overrides)",
            revision,
            config.default_markup_percent,
            len(config.overrides),
        )
        return revision
