"""Tagged union of ledger events and processing outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CallStatus(str, Enum):
    QUEUED = "queued"
    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    FAILED = "failed"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_CALL_STATUSES


TERMINAL_CALL_STATUSES = frozenset(
    {
        CallStatus.COMPLETED,
        CallStatus.BUSY,
        CallStatus.FAILED,
        CallStatus.NO_ANSWER,
        CallStatus.CANCELED,
    }
)


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1, max_length=128)


class DepositEvent(_Event):
    kind: Literal["deposit"] = "deposit"
    session_id: str = Field(min_length=1)
    amount_cents: int = Field(gt=0)

    @property
    def event_id(self) -> str:
        return f"deposit:{self.session_id}"


class CallCompletedEvent(_Event):
    kind: Literal["call"] = "call"
    call_id: str = Field(min_length=1)
    status: CallStatus
    duration_seconds: int = Field(default=0, ge=0)
    destination: Optional[str] = None
    to_number: Optional[str] = None

    @field_validator("destination")
    @classmethod
    def _normalize_destination(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @property
    def event_id(self) -> str:
        return f"call:{self.call_id}"

    @property
    def billed_duration_seconds(self) -> int:
        # Only an answered call consumes airtime.
        if self.status is CallStatus.COMPLETED:
            return self.duration_seconds
        return 0


class AdjustmentEvent(_Event):
    kind: Literal["adjustment"] = "adjustment"
    idempotency_key: str = Field(min_length=1, max_length=128)
    amount_cents: int
    description: Optional[str] = Field(default=None, max_length=255)

    @field_validator("amount_cents")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("amount_cents must be non-zero")
        return value

    @property
    def event_id(self) -> str:
        return f"adjustment:{self.idempotency_key}"


LedgerEvent = Annotated[
    Union[DepositEvent, CallCompletedEvent, AdjustmentEvent],
    Field(discriminator="kind"),
]


class EventOutcome(str, Enum):
    ACKNOWLEDGED = "acknowledged"
    AUTHENTICATION_FAILED = "authentication_failed"
    MALFORMED = "malformed"
    REJECTED = "rejected"
    TRANSIENT = "transient"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    EventOutcome.ACKNOWLEDGED: 200,
    EventOutcome.AUTHENTICATION_FAILED: 401,
    EventOutcome.MALFORMED: 400,
    EventOutcome.REJECTED: 422,
    EventOutcome.TRANSIENT: 503,
}


@dataclass(slots=True)
class ProcessingResult:
    outcome: EventOutcome
    event_id: Optional[str] = None
    detail: Optional[str] = None
    new_balance_cents: Optional[int] = None
    amount_cents: Optional[int] = None
    duplicate: bool = False
    applied: bool = False

    @property
    def http_status(self) -> int:
        return self.outcome.http_status
