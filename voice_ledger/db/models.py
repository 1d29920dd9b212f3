"""SQLAlchemy ORM models."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from voice_ledger.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "accounts"

    user_id = Column(String(128), primary_key=True)
    balance_cents = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    transactions = relationship("Transaction", back_populates="account")


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("event_id", name="uq_transactions_event_id"),
        UniqueConstraint("user_id", "account_version", name="uq_transactions_account_version"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(128), ForeignKey("accounts.user_id"), nullable=False, index=True)
    event_id = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)  # deposit, call-charge, adjustment
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default="completed")
    balance_after_cents = Column(Integer, nullable=False)
    account_version = Column(Integer, nullable=False)
    description = Column(String(255))
    call_id = Column(String(64))
    destination = Column(String(16))
    duration_seconds = Column(Integer)
    billable_seconds = Column(Integer)
    rate_per_unit = Column(Numeric(14, 6))
    requested_amount_cents = Column(Integer)
    pricing_version = Column(String(32))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    account = relationship("Account", back_populates="transactions")


class LedgerEvent(Base):
    __tablename__ = "ledger_events"

    event_id = Column(String(255), primary_key=True)
    source = Column(String(20), nullable=False)
    user_id = Column(String(128), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="reserved")  # reserved, completed
    result_balance_cents = Column(Integer)
    transaction_id = Column(String(36))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True))


class RateTable(Base):
    __tablename__ = "rate_tables"

    version = Column(Integer, primary_key=True, autoincrement=True)
    entry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    entries = relationship("RateEntry", back_populates="table", cascade="all, delete-orphan")


class RateEntry(Base):
    __tablename__ = "rate_entries"
    __table_args__ = (Index("ix_rate_entries_destination", "destination"),)

    table_version = Column(Integer, ForeignKey("rate_tables.version"), primary_key=True)
    destination = Column(String(16), primary_key=True)
    country_name = Column(String(100))
    base_price = Column(Numeric(14, 6), nullable=False)
    billing_increment_seconds = Column(Integer, nullable=False, default=60)

    table = relationship("RateTable", back_populates="entries")


class MarkupConfig(Base):
    __tablename__ = "markup_configs"

    revision = Column(Integer, primary_key=True, autoincrement=True)
    default_markup_percent = Column(Numeric(9, 4), nullable=False, default=0)
    minimum_markup_percent = Column(Numeric(9, 4), nullable=False, default=0)
    minimum_final_price = Column(Numeric(14, 6), nullable=False, default=0)
    overrides = Column(JSON, nullable=False, default=dict)  # destination -> percent (as string)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
