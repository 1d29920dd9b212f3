"""Repository protocol for rate tables and markup configuration."""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import MarkupConfig, RateEntry


class PricingRepository(Protocol):
    async def latest_rate_version(self) -> int:
        ...

    async def latest_markup_revision(self) -> int:
        ...

    async def load_rate_entries(self, version: int) -> Sequence[RateEntry]:
        ...

    async def load_markup(self, revision: int) -> MarkupConfig | None:
        ...

    async def create_rate_table(self, entries: Sequence[RateEntry]) -> int:
        ...

    async def create_markup(self, config: MarkupConfig) -> int:
        ...
