"""Inbound event contracts (parsed models, outcomes and errors)."""

from .exceptions import AuthenticationFailed, EventValidationError
from .models import (
    TERMINAL_CALL_STATUSES,
    AdjustmentEvent,
    CallCompletedEvent,
    CallStatus,
    DepositEvent,
    EventOutcome,
    LedgerEvent,
    ProcessingResult,
)
from .parsing import (
    compute_telephony_signature,
    destination_from_number,
    parse_call_status,
    parse_payment_webhook,
    verify_telephony_signature,
)

__all__ = [
    "TERMINAL_CALL_STATUSES",
    "AdjustmentEvent",
    "AuthenticationFailed",
    "CallCompletedEvent",
    "CallStatus",
    "DepositEvent",
    "EventOutcome",
    "EventValidationError",
    "LedgerEvent",
    "ProcessingResult",
    "compute_telephony_signature",
    "destination_from_number",
    "parse_call_status",
    "parse_payment_webhook",
    "verify_telephony_signature",
]
