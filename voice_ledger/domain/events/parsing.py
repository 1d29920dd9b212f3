"""Authentication and parsing of inbound notifications.

Payloads are verified and turned into one of the typed events in
``models`` before any ledger access. Anything that does not verify or does
not fit the event shape raises ``EventValidationError``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional

import phonenumbers
import stripe
from pydantic import ValidationError

from .exceptions import AuthenticationFailed, EventValidationError
from .models import CallCompletedEvent, CallStatus, DepositEvent

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def parse_payment_webhook(
    payload: bytes,
    signature_header: Optional[str],
    *,
    secret: Optional[str],
    tolerance_seconds: int = 300,
) -> Optional[DepositEvent]:
    """Verify a Stripe webhook and extract the deposit it carries.

    Returns ``None`` for verified events that do not credit a balance
    (other event types, unpaid sessions).
    """
    if not secret:
        raise AuthenticationFailed("payment webhook secret is not configured")
    if not signature_header:
        raise AuthenticationFailed("missing payment signature")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EventValidationError("payment payload is not valid UTF-8") from exc

    try:
        stripe.WebhookSignature.verify_header(body, signature_header, secret, tolerance_seconds)
    except stripe.SignatureVerificationError as exc:
        raise AuthenticationFailed(f"invalid payment signature: {exc}") from exc

    try:
        event = json.loads(body)
    except ValueError as exc:
        raise EventValidationError("payment payload is not valid JSON") from exc
    if not isinstance(event, dict):
        raise EventValidationError("payment payload must be a JSON object")

    event_type = event.get("type")
    if event_type != CHECKOUT_COMPLETED:
        logger.info("Ignoring payment event %s of type %s", event.get("id"), event_type)
        return None

    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        raise EventValidationError("checkout event has no session object")

    if session.get("payment_status") != "paid":
        logger.info(
            "Ignoring checkout session %s with payment status %s",
            session.get("id"),
            session.get("payment_status"),
        )
        return None

    metadata = session.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise EventValidationError("checkout session metadata must be an object")
    user_id = metadata.get("userId") or session.get("client_reference_id")
    amount_cents = _deposit_amount_cents(metadata.get("amountToAdd"), session.get("amount_total"))

    try:
        return DepositEvent(session_id=session.get("id") or "", user_id=user_id or "", amount_cents=amount_cents)
    except ValidationError as exc:
        raise EventValidationError(f"invalid checkout session: {exc.errors()[0]['msg']}") from exc


def _deposit_amount_cents(amount_to_add: Any, amount_total: Any) -> int:
    # The credited amount in dollars wins over the charged total in cents.
    if amount_to_add is not None:
        try:
            dollars = Decimal(str(amount_to_add))
        except InvalidOperation as exc:
            raise EventValidationError(f"invalid deposit amount {amount_to_add!r}") from exc
        if not dollars.is_finite():
            raise EventValidationError(f"invalid deposit amount {amount_to_add!r}")
        return int((dollars * 100).to_integral_value(rounding=ROUND_HALF_UP))
    if isinstance(amount_total, int) and not isinstance(amount_total, bool):
        return amount_total
    raise EventValidationError("checkout session carries no deposit amount")


def compute_telephony_signature(auth_token: str, url: str, params: Mapping[str, str]) -> str:
    """Twilio request signature: HMAC-SHA1 over the URL and sorted form fields."""
    data = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_telephony_signature(
    auth_token: str,
    url: str,
    params: Mapping[str, str],
    signature: Optional[str],
) -> None:
    if not signature:
        raise AuthenticationFailed("missing telephony signature")
    expected = compute_telephony_signature(auth_token, url, params)
    if not hmac.compare_digest(expected, signature):
        raise AuthenticationFailed("invalid telephony signature")


def destination_from_number(number: Optional[str]) -> Optional[str]:
    """Region code (ISO country) of an E.164 number, if it can be determined."""
    if not number:
        return None
    try:
        parsed = phonenumbers.parse(number, None)
    except phonenumbers.NumberParseException:
        logger.debug("Could not parse dialled number %s", number)
        return None
    region = phonenumbers.region_code_for_number(parsed)
    if not region or region == "ZZ":
        return None
    return region


def parse_call_status(
    params: Mapping[str, str],
    *,
    user_id: Optional[str],
    destination: Optional[str] = None,
) -> CallCompletedEvent:
    """Build a call event from status callback form fields."""
    raw_status = (params.get("CallStatus") or "").strip().lower()
    try:
        status = CallStatus(raw_status)
    except ValueError as exc:
        raise EventValidationError(f"unknown call status {raw_status!r}") from exc

    raw_duration = params.get("CallDuration")
    if raw_duration in (None, ""):
        if status is CallStatus.COMPLETED:
            raise EventValidationError("completed call without CallDuration")
        duration = 0
    else:
        try:
            duration = int(raw_duration)
        except ValueError as exc:
            raise EventValidationError(f"invalid CallDuration {raw_duration!r}") from exc

    to_number = params.get("To") or None
    if not destination:
        destination = destination_from_number(to_number)

    try:
        return CallCompletedEvent(
            call_id=params.get("CallSid") or "",
            user_id=user_id or "",
            status=status,
            duration_seconds=duration,
            destination=destination,
            to_number=to_number,
        )
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise EventValidationError(f"invalid call status callback ({field}): {error['msg']}") from exc


__all__ = [
    "compute_telephony_signature",
    "destination_from_number",
    "parse_call_status",
    "parse_payment_webhook",
    "verify_telephony_signature",
]
