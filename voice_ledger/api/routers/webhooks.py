"""Inbound notifications from the payment gateway and telephony provider."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from voice_ledger.api.deps import get_container
from voice_ledger.core.config import Settings
from voice_ledger.core.container import ApplicationContainer
from voice_ledger.domain.events import ProcessingResult
from voice_ledger.schemas import EventResponse

router = APIRouter()


def event_response(result: ProcessingResult) -> JSONResponse:
    body = EventResponse(
        outcome=result.outcome.value,
        event_id=result.event_id,
        detail=result.detail,
        duplicate=result.duplicate,
        new_balance_cents=result.new_balance_cents,
    )
    return JSONResponse(status_code=result.http_status, content=body.model_dump())


def signed_url(request: Request, settings: Settings) -> str:
    """URL the telephony provider signed; behind a proxy it is the public one."""
    base_url = settings.telephony.public_base_url
    if not base_url:
        return str(request.url)
    url = base_url.rstrip("/") + request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


@router.post("/payments", response_model=EventResponse)
async def payment_webhook(
    request: Request,
    container: ApplicationContainer = Depends(get_container),
):
    payload = await request.body()
    result = await container.processor.handle_payment_webhook(
        payload, request.headers.get("Stripe-Signature")
    )
    return event_response(result)


@router.post("/calls/status", response_model=EventResponse)
async def call_status_webhook(
    request: Request,
    user_id: Optional[str] = Query(default=None),
    destination: Optional[str] = Query(default=None),
    container: ApplicationContainer = Depends(get_container),
):
    form = await request.form()
    params = {key: value for key, value in form.items() if isinstance(value, str)}
    result = await container.processor.handle_call_status(
        signed_url(request, container.settings),
        params,
        request.headers.get("X-Twilio-Signature"),
        user_id=user_id,
        destination=destination,
    )
    return event_response(result)
