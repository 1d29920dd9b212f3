"""Event processor: drives the pricing engine and account mutator.

Each inbound notification ends in exactly one ``EventOutcome``. Failures are
translated here and nowhere else; transient failures are never reported as
success so the sender retries, and idempotency makes the retry safe.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from voice_ledger.domain.ledger.exceptions import EventOwnerMismatch, InsufficientFunds, StoreUnavailable
from voice_ledger.domain.ledger.models import MutationResult, TransactionMetadata, TransactionType
from voice_ledger.domain.ledger.mutator import AccountMutator
from voice_ledger.domain.pricing.exceptions import UnknownDestination
from voice_ledger.domain.pricing.snapshot import PricingSnapshotProvider

from .exceptions import AuthenticationFailed, EventValidationError
from .models import (
    AdjustmentEvent,
    CallCompletedEvent,
    DepositEvent,
    EventOutcome,
    LedgerEvent,
    ProcessingResult,
)
from .parsing import parse_call_status, parse_payment_webhook, verify_telephony_signature

logger = logging.getLogger(__name__)


class EventProcessor:
    def __init__(
        self,
        mutator: AccountMutator,
        pricing: PricingSnapshotProvider,
        *,
        timeout_seconds: float = 10.0,
        payment_webhook_secret: Optional[str] = None,
        payment_tolerance_seconds: int = 300,
        telephony_auth_token: Optional[str] = None,
        accept_unsigned_callbacks: bool = False,
    ) -> None:
        self._mutator = mutator
        self._pricing = pricing
        self._timeout_seconds = timeout_seconds
        self._payment_webhook_secret = payment_webhook_secret
        self._payment_tolerance_seconds = payment_tolerance_seconds
        self._telephony_auth_token = telephony_auth_token
        self._accept_unsigned_callbacks = accept_unsigned_callbacks

    async def handle_payment_webhook(self, payload: bytes, signature: Optional[str]) -> ProcessingResult:
        try:
            event = parse_payment_webhook(
                payload,
                signature,
                secret=self._payment_webhook_secret,
                tolerance_seconds=self._payment_tolerance_seconds,
            )
        except EventValidationError as exc:
            return self._failure(exc)
        if event is None:
            return ProcessingResult(outcome=EventOutcome.ACKNOWLEDGED, detail="ignored")
        return await self.process(event)

    async def handle_call_status(
        self,
        url: str,
        params: Mapping[str, str],
        signature: Optional[str],
        *,
        user_id: Optional[str],
        destination: Optional[str] = None,
    ) -> ProcessingResult:
        try:
            self._authenticate_callback(url, params, signature)
            event = parse_call_status(params, user_id=user_id, destination=destination)
        except EventValidationError as exc:
            return self._failure(exc)
        return await self.process(event)

    async def process(self, event: LedgerEvent) -> ProcessingResult:
        """Apply one parsed event within the processing deadline."""
        try:
            return await asyncio.wait_for(self._dispatch(event), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("Processing %s exceeded %.1fs", event.event_id, self._timeout_seconds)
            return ProcessingResult(
                outcome=EventOutcome.TRANSIENT, event_id=event.event_id, detail="processing timed out"
            )
        except (
            EventValidationError,
            EventOwnerMismatch,
            UnknownDestination,
            InsufficientFunds,
            StoreUnavailable,
        ) as exc:
            return self._failure(exc, event.event_id)
        except ValueError as exc:
            return self._failure(EventValidationError(str(exc)), event.event_id)
        except SQLAlchemyError as exc:
            return self._failure(StoreUnavailable(str(exc)), event.event_id)

    async def _dispatch(self, event: LedgerEvent) -> ProcessingResult:
        if isinstance(event, DepositEvent):
            return await self._apply_deposit(event)
        if isinstance(event, CallCompletedEvent):
            return await self._apply_call(event)
        if isinstance(event, AdjustmentEvent):
            return await self._apply_adjustment(event)
        raise EventValidationError(f"unsupported event {type(event).__name__}")

    async def _apply_deposit(self, event: DepositEvent) -> ProcessingResult:
        return await self._applied(
            event.event_id,
            self._mutator.apply_transaction(
                event.user_id,
                event.event_id,
                TransactionType.DEPOSIT,
                event.amount_cents,
                TransactionMetadata(description="Account deposit"),
                source="payment",
            ),
        )

    async def _apply_call(self, event: CallCompletedEvent) -> ProcessingResult:
        if not event.status.is_terminal:
            logger.debug("Call %s is %s; nothing to bill yet", event.call_id, event.status.value)
            return ProcessingResult(
                outcome=EventOutcome.ACKNOWLEDGED, event_id=event.event_id, detail=f"call {event.status.value}"
            )

        duration = event.billed_duration_seconds
        if duration == 0:
            logger.info("Call %s ended %s with nothing to bill", event.call_id, event.status.value)
            return ProcessingResult(
                outcome=EventOutcome.ACKNOWLEDGED, event_id=event.event_id, amount_cents=0, detail="not billable"
            )

        if not event.destination:
            raise EventValidationError(f"call {event.call_id} has no resolvable destination")

        resolver = await self._pricing.resolver()
        quote = resolver.quote(event.destination, duration)
        if quote.amount_cents == 0:
            logger.info("Call %s to %s priced at zero", event.call_id, event.destination)
            return ProcessingResult(
                outcome=EventOutcome.ACKNOWLEDGED, event_id=event.event_id, amount_cents=0, detail="free call"
            )

        metadata = TransactionMetadata(
            description=f"Call to {event.to_number or event.destination}",
            call_id=event.call_id,
            destination=quote.rate.destination,
            duration_seconds=event.duration_seconds,
            billable_seconds=quote.cost.billable_seconds,
            rate_per_unit=quote.rate.effective_rate_per_unit,
            pricing_version=quote.rate.pricing_version,
        )
        return await self._applied(
            event.event_id,
            self._mutator.apply_transaction(
                event.user_id,
                event.event_id,
                TransactionType.CALL_CHARGE,
                -quote.amount_cents,
                metadata,
                source="call",
            ),
        )

    async def _apply_adjustment(self, event: AdjustmentEvent) -> ProcessingResult:
        return await self._applied(
            event.event_id,
            self._mutator.apply_transaction(
                event.user_id,
                event.event_id,
                TransactionType.ADJUSTMENT,
                event.amount_cents,
                TransactionMetadata(description=event.description or "Balance adjustment"),
                source="admin",
            ),
        )

    @staticmethod
    async def _applied(event_id: str, mutation: Awaitable[MutationResult]) -> ProcessingResult:
        result = await mutation
        return ProcessingResult(
            outcome=EventOutcome.ACKNOWLEDGED,
            event_id=event_id,
            new_balance_cents=result.new_balance_cents,
            amount_cents=result.transaction.amount_cents if result.transaction else None,
            duplicate=result.duplicate,
            applied=not result.duplicate,
            detail="duplicate" if result.duplicate else "applied",
        )

    def _authenticate_callback(self, url: str, params: Mapping[str, str], signature: Optional[str]) -> None:
        if self._telephony_auth_token:
            verify_telephony_signature(self._telephony_auth_token, url, params, signature)
            return
        if self._accept_unsigned_callbacks:
            logger.warning("Accepting unsigned call status callback for %s", params.get("CallSid"))
            return
        raise AuthenticationFailed("telephony auth token is not configured")

    @staticmethod
    def _failure(exc: Exception, event_id: Optional[str] = None) -> ProcessingResult:
        if isinstance(exc, AuthenticationFailed):
            outcome = EventOutcome.AUTHENTICATION_FAILED
        elif isinstance(exc, (EventValidationError, EventOwnerMismatch)):
            outcome = EventOutcome.MALFORMED
        elif isinstance(exc, (UnknownDestination, InsufficientFunds)):
            outcome = EventOutcome.REJECTED
        else:
            outcome = EventOutcome.TRANSIENT

        if outcome is EventOutcome.TRANSIENT:
            logger.error("Event %s failed transiently: %s", event_id, exc)
        else:
            logger.warning("Event %s %s: %s", event_id, outcome.value, exc)
        return ProcessingResult(outcome=outcome, event_id=event_id, detail=str(exc))


__all__ = ["EventProcessor"]
