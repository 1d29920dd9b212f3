"""Event domain specific exceptions."""

from voice_ledger.domain.common.exceptions import LedgerError


class EventValidationError(LedgerError):
    """Raised when an inbound notification is malformed; nothing is applied."""


class AuthenticationFailed(EventValidationError):
    """Raised when an inbound notification fails signature verification."""
