"""Domain models for rates, markup and pricing snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional

RATE_PRECISION = Decimal("0.000001")


def normalize_destination(destination: str) -> str:
    return destination.strip().upper()


@dataclass(frozen=True, slots=True)
class RateEntry:
    destination: str
    base_price: Decimal
    billing_increment_seconds: int = 60
    country_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.base_price < 0:
            raise ValueError(f"base_price must be >= 0 for {self.destination}")
        if self.billing_increment_seconds <= 0:
            raise ValueError(f"billing_increment_seconds must be > 0 for {self.destination}")


@dataclass(frozen=True, slots=True)
class MarkupConfig:
    default_markup_percent: Decimal = Decimal("0")
    minimum_markup_percent: Decimal = Decimal("0")
    minimum_final_price: Decimal = Decimal("0")
    overrides: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.default_markup_percent < 0:
            raise ValueError("default_markup_percent must be >= 0")
        if self.minimum_markup_percent < 0:
            raise ValueError("minimum_markup_percent must be >= 0")
        if self.minimum_final_price < 0:
            raise ValueError("minimum_final_price must be >= 0")
        for destination, percent in self.overrides.items():
            if percent < 0:
                raise ValueError(f"markup override for {destination} must be >= 0")
        overrides = {normalize_destination(key): value for key, value in self.overrides.items()}
        object.__setattr__(self, "overrides", MappingProxyType(overrides))

    def markup_for(self, destination: str) -> Decimal:
        markup = self.overrides.get(destination, self.default_markup_percent)
        return max(markup, self.minimum_markup_percent)


@dataclass(frozen=True, slots=True)
class PricingSnapshot:
    """Immutable view of one committed rate table and markup revision."""

    rate_version: int
    markup_revision: int
    rates: Mapping[str, RateEntry]
    markup: MarkupConfig

    def __post_init__(self) -> None:
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))

    @property
    def version(self) -> str:
        return f"{self.rate_version}.{self.markup_revision}"

    def get(self, destination: str) -> RateEntry | None:
        return self.rates.get(normalize_destination(destination))


@dataclass(frozen=True, slots=True)
class ResolvedRate:
    destination: str
    base_price: Decimal
    markup_percent: Decimal
    effective_rate_per_unit: Decimal
    billing_increment_seconds: int
    pricing_version: str


@dataclass(frozen=True, slots=True)
class CallCost:
    duration_seconds: int
    billable_seconds: int
    amount: Decimal


@dataclass(frozen=True, slots=True)
class CallQuote:
    rate: ResolvedRate
    cost: CallCost
    amount_cents: int


EMPTY_SNAPSHOT = PricingSnapshot(rate_version=0, markup_revision=0, rates={}, markup=MarkupConfig())
