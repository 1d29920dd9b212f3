"""Administrative endpoints for pricing data and balance adjustments."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.api.deps import get_container, get_db_session
from voice_ledger.api.routers.accounts import balance_response
from voice_ledger.api.routers.webhooks import event_response
from voice_ledger.core.container import ApplicationContainer
from voice_ledger.core.security import CurrentUser, get_current_admin
from voice_ledger.domain.events import AdjustmentEvent
from voice_ledger.domain.ledger.service import AccountService
from voice_ledger.domain.pricing import InvalidRateTable, MarkupConfig, RateEntry
from voice_ledger.domain.pricing.service import PricingService
from voice_ledger.schemas import (
    AdjustmentRequest,
    BalanceResponse,
    EventResponse,
    MarkupResponse,
    MarkupUpdate,
    RateTableResponse,
    RateTableUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/rates", response_model=RateTableResponse)
async def replace_rates(
    payload: RateTableUpdate,
    admin: CurrentUser = Depends(get_current_admin),
    container: ApplicationContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
):
    default_increment = container.settings.pricing.default_billing_increment_seconds
    try:
        entries = [
            RateEntry(
                destination=item.destination,
                base_price=item.base_price,
                billing_increment_seconds=item.billing_increment_seconds or default_increment,
                country_name=item.country_name,
            )
            for item in payload.entries
        ]
        version = await PricingService.with_session(db).replace_rate_table(entries)
    except (InvalidRateTable, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    await db.commit()
    logger.info("Rate table version %d published by %s", version, admin.user_id)
    await container.pricing.current()
    return RateTableResponse(version=version, entry_count=len(entries))


@router.put("/markup", response_model=MarkupResponse)
async def replace_markup(
    payload: MarkupUpdate,
    admin: CurrentUser = Depends(get_current_admin),
    container: ApplicationContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        config = MarkupConfig(
            default_markup_percent=payload.default_markup_percent,
            minimum_markup_percent=payload.minimum_markup_percent,
            minimum_final_price=payload.minimum_final_price,
            overrides=payload.overrides,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    revision = await PricingService.with_session(db).update_markup(config)
    await db.commit()
    logger.info("Markup revision %d published by %s", revision, admin.user_id)
    await container.pricing.current()
    return MarkupResponse(revision=revision)


@router.get("/accounts/{user_id}", response_model=BalanceResponse)
async def get_account(
    user_id: str,
    admin: CurrentUser = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db_session),
):
    account = await AccountService.with_session(db).get_account(user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return balance_response(account)


@router.post("/accounts/{user_id}/adjustments", response_model=EventResponse)
async def adjust_balance(
    user_id: str,
    payload: AdjustmentRequest,
    admin: CurrentUser = Depends(get_current_admin),
    container: ApplicationContainer = Depends(get_container),
):
    try:
        event = AdjustmentEvent(
            user_id=user_id,
            idempotency_key=payload.idempotency_key,
            amount_cents=payload.amount_cents,
            description=payload.description or f"Adjustment by {admin.user_id}",
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors()[0]["msg"]
        ) from exc
    result = await container.processor.process(event)
    return event_response(result)
