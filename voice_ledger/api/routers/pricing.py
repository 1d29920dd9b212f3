"""Public rate lookup and pre-call cost quotes."""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from voice_ledger.api.deps import get_container
from voice_ledger.core.container import ApplicationContainer
from voice_ledger.domain.pricing import UnknownDestination
from voice_ledger.schemas import QuoteResponse, RateResponse

router = APIRouter()


@router.get("/{destination}", response_model=RateResponse)
async def get_rate(
    destination: str,
    container: ApplicationContainer = Depends(get_container),
):
    resolver = await container.pricing.resolver()
    entry = resolver.get_rate(destination)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No rate for {destination}")
    rate = resolver.resolve_rate(destination)
    return RateResponse(
        destination=rate.destination,
        country_name=entry.country_name,
        base_price=rate.base_price,
        markup_percent=rate.markup_percent,
        effective_rate_per_unit=rate.effective_rate_per_unit,
        billing_increment_seconds=rate.billing_increment_seconds,
        unit_seconds=container.settings.pricing.unit_seconds,
        pricing_version=rate.pricing_version,
    )


@router.get("/{destination}/quote", response_model=QuoteResponse)
async def quote_call(
    destination: str,
    duration_seconds: int = Query(..., ge=0),
    container: ApplicationContainer = Depends(get_container),
):
    resolver = await container.pricing.resolver()
    try:
        quote = resolver.quote(destination, duration_seconds)
    except UnknownDestination as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return QuoteResponse(
        destination=quote.rate.destination,
        duration_seconds=duration_seconds,
        billable_seconds=quote.cost.billable_seconds,
        effective_rate_per_unit=quote.rate.effective_rate_per_unit,
        amount_cents=quote.amount_cents,
        pricing_version=quote.rate.pricing_version,
    )
