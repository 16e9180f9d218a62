"""Create the credits schema: reference tables, transactions and usage ledger.

Revision ID: 20261019_0001_credits_schema
Revises:
Create Date: 2026-10-19

This migration:
  * Creates schema: credits.
  * Creates reference tables: cards, card_credits, credit_matching_rules,
    user_wallets, linked_accounts.
  * Creates user_transactions (feed rows plus reconciliation annotations).
  * Creates the usage ledger: credit_usage and credit_usage_transactions.

Notes:
  - credit_usage_transactions.transaction_id is UNIQUE; reconciliation relies
    on it (INSERT .. ON CONFLICT DO NOTHING) for idempotence across runs.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "20261019_0001_credits_schema"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

_SCHEMA = "credits"


def _uuid(name: str, *args: Any, **kwargs: Any) -> sa.Column[Any]:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _timestamps() -> list[sa.Column[Any]]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    """Apply the migration."""
    op.get_bind().exec_driver_sql(f"CREATE SCHEMA IF NOT EXISTS {_SCHEMA}")

    op.create_table(
        "cards",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _uuid("issuer_id", nullable=True),
        schema=_SCHEMA,
    )

    op.create_table(
        "card_credits",
        _uuid("id", primary_key=True, nullable=False),
        _uuid(
            "card_id",
            sa.ForeignKey(f"{_SCHEMA}.cards.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("brand_name", sa.String(length=255), nullable=True),
        sa.Column("reset_cycle", sa.String(length=32), nullable=False),
        sa.Column("reset_day_of_month", sa.Integer, nullable=True),
        sa.Column("default_value_cents", sa.Integer, nullable=True),
        sa.Column("credit_count", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("credit_count >= 1", name="ck_card_credits_credit_count_positive"),
        sa.CheckConstraint(
            "reset_day_of_month IS NULL OR reset_day_of_month BETWEEN 1 AND 31",
            name="ck_card_credits_reset_day_range",
        ),
        sa.CheckConstraint(
            "reset_cycle IN ('monthly', 'quarterly', 'semiannual', 'annual', "
            "'cardmember_year', 'usage_based')",
            name="ck_card_credits_reset_cycle_known",
        ),
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_card_credits_card_id_active",
        "card_credits",
        ["card_id", "is_active"],
        schema=_SCHEMA,
    )

    op.create_table(
        "credit_matching_rules",
        _uuid("id", primary_key=True, nullable=False),
        _uuid(
            "credit_id",
            sa.ForeignKey(f"{_SCHEMA}.card_credits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("pattern", sa.Text, nullable=False),
        sa.Column("match_amount_cents", sa.BigInteger, nullable=True),
        *_timestamps(),
        schema=_SCHEMA,
    )

    op.create_table(
        "user_wallets",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        _uuid("card_id", sa.ForeignKey(f"{_SCHEMA}.cards.id"), nullable=False),
        sa.Column("approval_date", sa.Date, nullable=True),
        sa.Column("closed_date", sa.Date, nullable=True),
        *_timestamps(),
        schema=_SCHEMA,
    )
    op.create_index("ix_user_wallets_user_id", "user_wallets", ["user_id"], schema=_SCHEMA)

    op.create_table(
        "linked_accounts",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("external_account_id", sa.String(length=255), nullable=False),
        _uuid(
            "wallet_id",
            sa.ForeignKey(f"{_SCHEMA}.user_wallets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "external_account_id",
            name="uq_linked_accounts_external_account_id",
        ),
        schema=_SCHEMA,
    )
    op.create_index("ix_linked_accounts_user_id", "linked_accounts", ["user_id"], schema=_SCHEMA)

    op.create_table(
        "user_transactions",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        _uuid(
            "linked_account_id",
            sa.ForeignKey(f"{_SCHEMA}.linked_accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("external_transaction_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("original_description", sa.Text, nullable=True),
        sa.Column("amount_cents", sa.BigInteger, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("authorized_date", sa.Date, nullable=True),
        sa.Column("pending", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("dismissed", sa.Boolean, nullable=False, server_default=sa.text("false")),
        _uuid(
            "matched_credit_id",
            sa.ForeignKey(f"{_SCHEMA}.card_credits.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _uuid(
            "matched_rule_id",
            sa.ForeignKey(f"{_SCHEMA}.credit_matching_rules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_clawback", sa.Boolean, nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint(
            "external_transaction_id",
            name="uq_user_transactions_external_transaction_id",
        ),
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_user_transactions_user_unmatched",
        "user_transactions",
        ["user_id", "matched_credit_id", "date"],
        schema=_SCHEMA,
    )

    op.create_table(
        "credit_usage",
        _uuid("id", primary_key=True, nullable=False),
        _uuid(
            "user_wallet_id",
            sa.ForeignKey(f"{_SCHEMA}.user_wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _uuid(
            "credit_id",
            sa.ForeignKey(f"{_SCHEMA}.card_credits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("period_start", sa.Date, nullable=False),
        sa.Column("period_end", sa.Date, nullable=False),
        sa.Column("slot_number", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("amount_used", sa.Numeric(12, 2), nullable=False),
        sa.Column("auto_detected", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("is_clawback", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.Date, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_wallet_id",
            "credit_id",
            "period_start",
            "slot_number",
            name="uq_credit_usage_wallet_credit_period_slot",
        ),
        sa.CheckConstraint("slot_number >= 1", name="ck_credit_usage_slot_number_positive"),
        sa.CheckConstraint("amount_used >= 0", name="ck_credit_usage_amount_used_non_negative"),
        schema=_SCHEMA,
    )

    op.create_table(
        "credit_usage_transactions",
        _uuid("id", primary_key=True, nullable=False),
        _uuid(
            "usage_id",
            sa.ForeignKey(f"{_SCHEMA}.credit_usage.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _uuid(
            "transaction_id",
            sa.ForeignKey(f"{_SCHEMA}.user_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount_cents", sa.BigInteger, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint(
            "transaction_id",
            name="uq_credit_usage_transactions_transaction_id",
        ),
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_credit_usage_transactions_usage_id",
        "credit_usage_transactions",
        ["usage_id"],
        schema=_SCHEMA,
    )


def downgrade() -> None:
    """Revert the migration."""
    for table in (
        "credit_usage_transactions",
        "credit_usage",
        "user_transactions",
        "linked_accounts",
        "user_wallets",
        "credit_matching_rules",
        "card_credits",
        "cards",
    ):
        op.drop_table(table, schema=_SCHEMA)
    op.get_bind().exec_driver_sql(f"DROP SCHEMA IF EXISTS {_SCHEMA}")
