"""Balance ledger and call pricing engine."""

__version__ = "0.1.0"
