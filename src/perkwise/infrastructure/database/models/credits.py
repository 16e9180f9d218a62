# src/perkwise/infrastructure/database/models/credits.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit tracking ORM models.

Purpose:
    Provide SQLAlchemy ORM mappings for the ``credits`` schema:

    * ``credits.cards``: Card products and their issuer.
    * ``credits.card_credits``: Recurring credit definitions per card.
    * ``credits.credit_matching_rules``: Text/amount rules linking
      transactions to credits.
    * ``credits.user_wallets``: Cards held by a user.
    * ``credits.linked_accounts``: External bank accounts mapped to wallets.
    * ``credits.user_transactions``: Transactions supplied by the banking
      feed, annotated by reconciliation.
    * ``credits.credit_usage``: Usage ledger per wallet/credit/period/slot.
    * ``credits.credit_usage_transactions``: Links between transactions and
      the usage records they changed.

Design:
    - ``credit_usage_transactions.transaction_id`` is UNIQUE: a transaction
      funds or reduces exactly one usage record, ever.
    - ``credit_usage`` is UNIQUE on (wallet, credit, period_start, slot).
    - Reference tables (cards, credits, rules, wallets, accounts) are owned
      by admin tooling; reconciliation only reads them.

Layer:
    infrastructure / database / models
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from perkwise.domain.enums.reset_cycle import ResetCycle
from perkwise.infrastructure.database.models.base import (
    CREDITS_SCHEMA,
    Base,
    ReprMixin,
    TimestampMixin,
)

_RESET_CYCLES_SQL = ", ".join(f"'{cycle.value}'" for cycle in ResetCycle)


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


class Card(Base, ReprMixin):
    """Card product (credits.cards)."""

    __tablename__ = "cards"
    __table_args__ = ({"schema": CREDITS_SCHEMA},)

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    issuer_id: Mapped[uuid.UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)


class CardCredit(Base, ReprMixin, TimestampMixin):
    """Recurring credit definition (credits.card_credits)."""

    __tablename__ = "card_credits"
    __table_args__ = (
        CheckConstraint("credit_count >= 1", name="credit_count_positive"),
        CheckConstraint(
            "reset_day_of_month IS NULL OR reset_day_of_month BETWEEN 1 AND 31",
            name="reset_day_range",
        ),
        CheckConstraint(
            f"reset_cycle IN ({_RESET_CYCLES_SQL})",
            name="reset_cycle_known",
        ),
        Index("ix_card_credits_card_id_active", "card_id", "is_active"),
        {"schema": CREDITS_SCHEMA},
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    card_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reset_cycle: Mapped[str] = mapped_column(String(32), nullable=False)
    reset_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    default_value_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    credit_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )


class CreditMatchingRule(Base, ReprMixin, TimestampMixin):
    """Transaction matching rule (credits.credit_matching_rules)."""

    __tablename__ = "credit_matching_rules"
    __table_args__ = ({"schema": CREDITS_SCHEMA},)

    id: Mapped[uuid.UUID] = _uuid_pk()
    credit_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.card_credits.id", ondelete="CASCADE"),
        nullable=False,
    )
    pattern: Mapped[str] = mapped_column(Text, nullable=False)
    match_amount_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class UserWallet(Base, ReprMixin, TimestampMixin):
    """Card held by a user (credits.user_wallets)."""

    __tablename__ = "user_wallets"
    __table_args__ = (
        Index("ix_user_wallets_user_id", "user_id"),
        {"schema": CREDITS_SCHEMA},
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    card_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.cards.id"),
        nullable=False,
    )
    approval_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    closed_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)


class LinkedAccount(Base, ReprMixin, TimestampMixin):
    """External bank account mapped to a wallet (credits.linked_accounts)."""

    __tablename__ = "linked_accounts"
    __table_args__ = (
        UniqueConstraint("external_account_id", name="uq_linked_accounts_external_account_id"),
        Index("ix_linked_accounts_user_id", "user_id"),
        {"schema": CREDITS_SCHEMA},
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    wallet_id: Mapped[uuid.UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.user_wallets.id", ondelete="SET NULL"),
        nullable=True,
    )


class UserTransaction(Base, ReprMixin, TimestampMixin):
    """Transaction from the banking feed (credits.user_transactions)."""

    __tablename__ = "user_transactions"
    __table_args__ = (
        UniqueConstraint(
            "external_transaction_id", name="uq_user_transactions_external_transaction_id"
        ),
        Index("ix_user_transactions_user_unmatched", "user_id", "matched_credit_id", "date"),
        {"schema": CREDITS_SCHEMA},
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    linked_account_id: Mapped[uuid.UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.linked_accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    external_transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    original_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    authorized_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    pending: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    dismissed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    matched_credit_id: Mapped[uuid.UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.card_credits.id", ondelete="SET NULL"),
        nullable=True,
    )
    matched_rule_id: Mapped[uuid.UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.credit_matching_rules.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_clawback: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )


class CreditUsage(Base, ReprMixin, TimestampMixin):
    """Usage ledger entry (credits.credit_usage)."""

    __tablename__ = "credit_usage"
    __table_args__ = (
        UniqueConstraint(
            "user_wallet_id",
            "credit_id",
            "period_start",
            "slot_number",
            name="uq_credit_usage_wallet_credit_period_slot",
        ),
        CheckConstraint("slot_number >= 1", name="slot_number_positive"),
        CheckConstraint("amount_used >= 0", name="amount_used_non_negative"),
        {"schema": CREDITS_SCHEMA},
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_wallet_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.user_wallets.id", ondelete="CASCADE"),
        nullable=False,
    )
    credit_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.card_credits.id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[dt.date] = mapped_column(Date, nullable=False)
    period_end: Mapped[dt.date] = mapped_column(Date, nullable=False)
    slot_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    amount_used: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    auto_detected: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_clawback: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    used_at: Mapped[dt.date | None] = mapped_column(Date, nullable=True)


class CreditUsageTransaction(Base, ReprMixin):
    """Transaction ↔ usage link (credits.credit_usage_transactions)."""

    __tablename__ = "credit_usage_transactions"
    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_credit_usage_transactions_transaction_id"),
        Index("ix_credit_usage_transactions_usage_id", "usage_id"),
        {"schema": CREDITS_SCHEMA},
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    usage_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.credit_usage.id", ondelete="CASCADE"),
        nullable=False,
    )
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(f"{CREDITS_SCHEMA}.user_transactions.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


__all__ = [
    "Card",
    "CardCredit",
    "CreditMatchingRule",
    "CreditUsage",
    "CreditUsageTransaction",
    "LinkedAccount",
    "UserTransaction",
    "UserWallet",
]
