"""SQLAlchemy-backed repository implementations."""

from .account_repository import SqlAccountRepository
from .ledger_event_repository import SqlLedgerEventRepository
from .pricing_repository import SqlPricingRepository

__all__ = [
    "SqlAccountRepository",
    "SqlLedgerEventRepository",
    "SqlPricingRepository",
]
