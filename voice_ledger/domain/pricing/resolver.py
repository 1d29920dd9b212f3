"""Effective rate resolution against a pricing snapshot."""

from __future__ import annotations

from decimal import Decimal

from .cost import compute_cost, to_cents
from .exceptions import UnknownDestination
from .models import RATE_PRECISION, CallQuote, PricingSnapshot, RateEntry, ResolvedRate, normalize_destination

HUNDRED = Decimal("100")


class PricingResolver:
    """Resolves per-destination rates from one immutable snapshot."""

    def __init__(self, snapshot: PricingSnapshot, unit_seconds: int = 60) -> None:
        self._snapshot = snapshot
        self._unit_seconds = unit_seconds

    @property
    def snapshot(self) -> PricingSnapshot:
        return self._snapshot

    def get_rate(self, destination: str) -> RateEntry | None:
        return self._snapshot.get(destination)

    def resolve_rate(self, destination: str) -> ResolvedRate:
        code = normalize_destination(destination)
        entry = self._snapshot.rates.get(code)
        if entry is None:
            raise UnknownDestination(code)

        markup = self._snapshot.markup.markup_for(code)
        effective = entry.base_price * (Decimal("1") + markup / HUNDRED)
        effective = max(effective, self._snapshot.markup.minimum_final_price)
        return ResolvedRate(
            destination=code,
            base_price=entry.base_price,
            markup_percent=markup,
            effective_rate_per_unit=effective.quantize(RATE_PRECISION),
            billing_increment_seconds=entry.billing_increment_seconds,
            pricing_version=self._snapshot.version,
        )

    def quote(self, destination: str, duration_seconds: int) -> CallQuote:
        rate = self.resolve_rate(destination)
        cost = compute_cost(
            rate.effective_rate_per_unit,
            rate.billing_increment_seconds,
            duration_seconds,
            unit_seconds=self._unit_seconds,
        )
        return CallQuote(rate=rate, cost=cost, amount_cents=to_cents(cost.amount))
