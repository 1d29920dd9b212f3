"""Pricing domain exports (pure models and calculations)."""

from .cost import billable_seconds, compute_cost, to_cents
from .exceptions import InvalidRateTable, PricingError, UnknownDestination
from .models import (
    CallCost,
    CallQuote,
    MarkupConfig,
    PricingSnapshot,
    RateEntry,
    ResolvedRate,
    normalize_destination,
)
from .resolver import PricingResolver

__all__ = [
    "CallCost",
    "CallQuote",
    "InvalidRateTable",
    "MarkupConfig",
    "PricingError",
    "PricingResolver",
    "PricingSnapshot",
    "RateEntry",
    "ResolvedRate",
    "UnknownDestination",
    "billable_seconds",
    "compute_cost",
    "normalize_destination",
    "to_cents",
]
