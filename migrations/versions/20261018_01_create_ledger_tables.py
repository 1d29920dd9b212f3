"""create ledger and pricing tables

Revision ID: 4f2a9c1d7e30
Revises: 
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "4f2a9c1d7e30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("user_id", sa.String(length=128), primary_key=True),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="USD"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=128), sa.ForeignKey("accounts.user_id"), nullable=False),
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
        sa.Column("balance_after_cents", sa.Integer(), nullable=False),
        sa.Column("account_version", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=255)),
        sa.Column("call_id", sa.String(length=64)),
        sa.Column("destination", sa.String(length=16)),
        sa.Column("duration_seconds", sa.Integer()),
        sa.Column("billable_seconds", sa.Integer()),
        sa.Column("rate_per_unit", sa.Numeric(14, 6)),
        sa.Column("requested_amount_cents", sa.Integer()),
        sa.Column("pricing_version", sa.String(length=32)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", name="uq_transactions_event_id"),
        sa.UniqueConstraint("user_id", "account_version", name="uq_transactions_account_version"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])

    op.create_table(
        "ledger_events",
        sa.Column("event_id", sa.String(length=255), primary_key=True),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="reserved"),
        sa.Column("result_balance_cents", sa.Integer()),
        sa.Column("transaction_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_ledger_events_user_id", "ledger_events", ["user_id"])

    op.create_table(
        "rate_tables",
        sa.Column("version", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "rate_entries",
        sa.Column("table_version", sa.Integer(), sa.ForeignKey("rate_tables.version"), primary_key=True),
        sa.Column("destination", sa.String(length=16), primary_key=True),
        sa.Column("country_name", sa.String(length=100)),
        sa.Column("base_price", sa.Numeric(14, 6), nullable=False),
        sa.Column("billing_increment_seconds", sa.Integer(), nullable=False, server_default="60"),
    )
    op.create_index("ix_rate_entries_destination", "rate_entries", ["destination"])

    op.create_table(
        "markup_configs",
        sa.Column("revision", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("default_markup_percent", sa.Numeric(9, 4), nullable=False, server_default="0"),
        sa.Column("minimum_markup_percent", sa.Numeric(9, 4), nullable=False, server_default="0"),
        sa.Column("minimum_final_price", sa.Numeric(14, 6), nullable=False, server_default="0"),
        sa.Column("overrides", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("markup_configs")
    op.drop_index("ix_rate_entries_destination", table_name="rate_entries")
    op.drop_table("rate_entries")
    op.drop_table("rate_tables")
    op.drop_index("ix_ledger_events_user_id", table_name="ledger_events")
    op.drop_table("ledger_events")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("accounts")
