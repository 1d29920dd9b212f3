"""Pricing domain specific exceptions."""

from voice_ledger.domain.common.exceptions import LedgerError


class PricingError(LedgerError):
    """Base class for pricing related domain errors."""


class UnknownDestination(PricingError):
    """Raised when no rate is available for the requested destination."""

    def __init__(self, destination: str) -> None:
        super().__init__(f"No rate available for destination {destination!r}")
        self.destination = destination


class InvalidRateTable(PricingError):
    """Raised when a rate table or markup refresh violates its invariants."""
