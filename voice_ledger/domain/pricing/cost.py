"""Cost accrual for metered calls.

Billing is unit based: a call is billed in whole billing increments, so the
billable duration is the reported duration rounded up to the next multiple of
the increment. Amounts stay unrounded Decimals until ``to_cents`` is applied
at the moment a transaction is recorded.
"""

from __future__ import annotations

from decimal import ROUND_UP, Decimal

from .models import CallCost

CENT = Decimal("0.01")


def billable_seconds(duration_seconds: int, billing_increment_seconds: int) -> int:
    if duration_seconds < 0:
        raise ValueError("duration_seconds must be >= 0")
    if billing_increment_seconds <= 0:
        raise ValueError("billing_increment_seconds must be > 0")
    increments = -(-duration_seconds // billing_increment_seconds)
    return increments * billing_increment_seconds


def compute_cost(
    effective_rate_per_unit: Decimal,
    billing_increment_seconds: int,
    duration_seconds: int,
    unit_seconds: int = 60,
) -> CallCost:
    """Convert a call duration into a monetary amount.

    ``effective_rate_per_unit`` is the price of one ``unit_seconds`` block
    (a per-minute rate with the default of 60).
    """
    if unit_seconds <= 0:
        raise ValueError("unit_seconds must be > 0")
    if effective_rate_per_unit < 0:
        raise ValueError("effective_rate_per_unit must be >= 0")

    billable = billable_seconds(duration_seconds, billing_increment_seconds)
    if billable == 0:
        return CallCost(duration_seconds=duration_seconds, billable_seconds=0, amount=Decimal("0"))

    amount = effective_rate_per_unit * Decimal(billable) / Decimal(unit_seconds)
    return CallCost(duration_seconds=duration_seconds, billable_seconds=billable, amount=amount)


def to_cents(amount: Decimal) -> int:
    """Round a dollar amount up to whole cents."""
    return int((amount.quantize(CENT, rounding=ROUND_UP) * 100).to_integral_value())


__all__ = ["billable_seconds", "compute_cost", "to_cents"]
