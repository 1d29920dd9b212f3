"""Root of the ledger exception hierarchy."""


class LedgerError(Exception):
    """Base class for every error raised by the billing core."""
