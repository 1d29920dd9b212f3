"""Ledger domain specific exceptions."""

from voice_ledger.domain.common.exceptions import LedgerError


class DuplicateEvent(LedgerError):
    """Raised when an event id has already produced a mutation."""

    def __init__(self, event_id: str, result_balance_cents: int | None = None) -> None:
        super().__init__(f"Event {event_id} was already applied")
        self.event_id = event_id
        self.result_balance_cents = result_balance_cents


class InsufficientFunds(LedgerError):
    """Raised when a debit would breach the configured overdraft policy."""

    def __init__(self, user_id: str, balance_cents: int, requested_cents: int) -> None:
        super().__init__(
            f"Debit of {requested_cents} cents exceeds available balance {balance_cents} for {user_id}"
        )
        self.user_id = user_id
        self.balance_cents = balance_cents
        self.requested_cents = requested_cents


class StoreUnavailable(LedgerError):
    """Raised when the transactional store cannot commit; the event is safe to retry."""


class EventInProgress(StoreUnavailable):
    """Raised when an event is reserved but its mutation has not completed yet."""


class ConcurrentModification(LedgerError):
    """Raised inside an attempt when another writer committed first."""


class EventOwnerMismatch(LedgerError):
    """Raised when an applied event id is replayed for a different user."""

    def __init__(self, event_id: str, user_id: str) -> None:
        super().__init__(f"Event {event_id} does not belong to {user_id}")
        self.event_id = event_id
        self.user_id = user_id
