"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EventResponse(BaseModel):
    outcome: str
    event_id: Optional[str] = None
    detail: Optional[str] = None
    duplicate: bool = False
    new_balance_cents: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    user_id: str
    balance_cents: int
    currency: str
    version: int
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    id: str
    event_id: str
    type: str
    amount_cents: int
    currency: str
    status: str
    balance_after_cents: int
    requested_amount_cents: Optional[int] = None
    description: Optional[str] = None
    call_id: Optional[str] = None
    destination: Optional[str] = None
    duration_seconds: Optional[int] = None
    billable_seconds: Optional[int] = None
    rate_per_unit: Optional[Decimal] = None
    pricing_version: Optional[str] = None
    created_at: datetime


class TransactionListResponse(BaseModel):
    total: int
    transactions: list[TransactionResponse]


class RateEntryPayload(BaseModel):
    destination: str = Field(..., min_length=1, max_length=16)
    base_price: Decimal = Field(..., ge=0)
    billing_increment_seconds: Optional[int] = Field(default=None, gt=0)
    country_name: Optional[str] = Field(default=None, max_length=128)


class RateTableUpdate(BaseModel):
    entries: list[RateEntryPayload] = Field(..., min_length=1)


class RateTableResponse(BaseModel):
    version: int
    entry_count: int


class MarkupUpdate(BaseModel):
    default_markup_percent: Decimal = Field(default=Decimal("0"), ge=0)
    minimum_markup_percent: Decimal = Field(default=Decimal("0"), ge=0)
    minimum_final_price: Decimal = Field(default=Decimal("0"), ge=0)
    overrides: dict[str, Decimal] = Field(default_factory=dict)


class MarkupResponse(BaseModel):
    revision: int


class RateResponse(BaseModel):
    destination: str
    country_name: Optional[str] = None
    base_price: Decimal
    markup_percent: Decimal
    effective_rate_per_unit: Decimal
    billing_increment_seconds: int
    unit_seconds: int
    pricing_version: str


class QuoteResponse(BaseModel):
    destination: str
    duration_seconds: int
    billable_seconds: int
    effective_rate_per_unit: Decimal
    amount_cents: int
    pricing_version: str


class AdjustmentRequest(BaseModel):
    amount_cents: int
    idempotency_key: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=255)
