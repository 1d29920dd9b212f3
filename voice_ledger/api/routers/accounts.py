"""Balance and transaction history of the authenticated user."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from voice_ledger.api.deps import get_container, get_db_session
from voice_ledger.core.container import ApplicationContainer
from voice_ledger.core.security import CurrentUser, get_current_user
from voice_ledger.domain.ledger import AccountSnapshot, ConcurrentModification, TransactionRecord
from voice_ledger.domain.ledger.service import MAX_TRANSACTION_PAGE, AccountService
from voice_ledger.schemas import BalanceResponse, TransactionListResponse, TransactionResponse

router = APIRouter()


def balance_response(account: AccountSnapshot) -> BalanceResponse:
    return BalanceResponse(
        user_id=account.user_id,
        balance_cents=account.balance_cents,
        currency=account.currency,
        version=account.version,
        updated_at=account.updated_at,
    )


def transaction_response(record: TransactionRecord) -> TransactionResponse:
    metadata = record.metadata
    return TransactionResponse(
        id=record.id,
        event_id=record.event_id,
        type=record.type.value,
        amount_cents=record.amount_cents,
        currency=record.currency,
        status=record.status,
        balance_after_cents=record.balance_after_cents,
        requested_amount_cents=record.requested_amount_cents,
        description=metadata.description,
        call_id=metadata.call_id,
        destination=metadata.destination,
        duration_seconds=metadata.duration_seconds,
        billable_seconds=metadata.billable_seconds,
        rate_per_unit=metadata.rate_per_unit,
        pricing_version=metadata.pricing_version,
        created_at=record.created_at,
    )


@router.get("/me", response_model=BalanceResponse)
async def my_balance(
    user: CurrentUser = Depends(get_current_user),
    container: ApplicationContainer = Depends(get_container),
    db: AsyncSession = Depends(get_db_session),
):
    service = AccountService.with_session(db)
    try:
        account = await service.ensure_account(user.user_id, container.settings.ledger.currency)
        await db.commit()
    except ConcurrentModification:
        # Created by a concurrent event; read the committed row.
        await db.rollback()
        account = await service.get_account(user.user_id)
    return balance_response(account)


@router.get("/me/transactions", response_model=TransactionListResponse)
async def my_transactions(
    limit: int = Query(default=20, ge=1, le=MAX_TRANSACTION_PAGE),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    service = AccountService.with_session(db)
    records = await service.list_transactions(user.user_id, limit)
    return TransactionListResponse(
        total=len(records),
        transactions=[transaction_response(record) for record in records],
    )
