"""SQLAlchemy implementation for rate tables and markup configuration"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.db.models import (
    MarkupConfig as MarkupConfigModel,
    RateEntry as RateEntryModel,
    RateTable as RateTableModel,
)
from voice_ledger.domain.pricing.models import MarkupConfig, RateEntry


class SqlPricingRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def latest_rate_version(self) -> int:
        result = await self.session.execute(select(func.max(RateTableModel.version)))
        return result.scalar() or 0

    async def latest_markup_revision(self) -> int:
        result = await self.session.execute(select(func.max(MarkupConfigModel.revision)))
        return result.scalar() or 0

    async def load_rate_entries(self, version: int) -> list[RateEntry]:
        stmt = (
            select(RateEntryModel)
            .where(RateEntryModel.table_version == version)
            .order_by(RateEntryModel.destination)
        )
        result = await self.session.execute(stmt)
        return [self._to_rate(row) for row in result.scalars().all()]

    async def load_markup(self, revision: int) -> MarkupConfig | None:
        stmt = select(MarkupConfigModel).where(MarkupConfigModel.revision == revision)
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_markup(model) if model else None

    async def create_rate_table(self, entries: Sequence[RateEntry]) -> int:
        table = RateTableModel(entry_count=len(entries))
        table.entries = [
            RateEntryModel(
                destination=entry.destination,
                country_name=entry.country_name,
                base_price=entry.base_price,
                billing_increment_seconds=entry.billing_increment_seconds,
            )
            for entry in entries
        ]
        self.session.add(table)
        await self.session.flush()
        return table.version

    async def create_markup(self, config: MarkupConfig) -> int:
        model = MarkupConfigModel(
            default_markup_percent=config.default_markup_percent,
            minimum_markup_percent=config.minimum_markup_percent,
            minimum_final_price=config.minimum_final_price,
            overrides={key: str(value) for key, value in config.overrides.items()},
        )
        self.session.add(model)
        await self.session.flush()
        return model.revision

    @staticmethod
    def _to_rate(model: RateEntryModel) -> RateEntry:
        return RateEntry(
            destination=model.destination,
            base_price=Decimal(model.base_price),
            billing_increment_seconds=model.billing_increment_seconds,
            country_name=model.country_name,
        )

    @staticmethod
    def _to_markup(model: MarkupConfigModel) -> MarkupConfig:
        return MarkupConfig(
            default_markup_percent=Decimal(model.default_markup_percent),
            minimum_markup_percent=Decimal(model.minimum_markup_percent),
            minimum_final_price=Decimal(model.minimum_final_price),
            overrides={key: Decimal(value) for key, value in (model.overrides or {}).items()},
        )
