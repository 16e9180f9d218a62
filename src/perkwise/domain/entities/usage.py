# src/perkwise/domain/entities/usage.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Transaction and usage-ledger entities.

Purpose:
    Immutable domain representations of bank/card transactions and of the
    usage ledger they feed (usage records plus transaction links).

Layer:
    domain/entities

Notes:
    Amount conventions follow the banking feed: negative ``amount_cents`` is a
    statement credit (benefit used), positive is a debit (refund/clawback).
    Ledger amounts (``amount_used``) are decimal dollars.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from perkwise.domain.entities.base import BaseEntity

CENTS_PER_DOLLAR = Decimal(100)


def cents_to_dollars(cents: int) -> Decimal:
    """Convert integer cents to a two-decimal dollar amount."""
    return (Decimal(cents) / CENTS_PER_DOLLAR).quantize(Decimal("0.01"))


@dataclass(frozen=True, slots=True)
class Transaction(BaseEntity):
    """Persisted bank/card transaction supplied by the aggregation feed.

    Attributes:
        id:
            Transaction row identifier.
        user_id:
            Owning user.
        linked_account_id:
            External account the transaction posted to, when known.
        name:
            Short merchant/description text from the feed.
        amount_cents:
            Signed amount in cents (negative = credit, positive = debit).
        date:
            Posting date.
        original_description:
            Raw description text, preferred over ``name`` for matching.
        authorized_date:
            Authorization date, preferred over ``date`` for period math.
        pending:
            Pending transactions are never reconciled.
        dismissed:
            Transactions dismissed by an admin are excluded from rematching.
        matched_credit_id:
            Annotation written by reconciliation.
        matched_rule_id:
            Annotation written by reconciliation.
        is_clawback:
            Annotation written by reconciliation.
    """

    id: UUID
    user_id: str
    linked_account_id: UUID | None
    name: str
    amount_cents: int
    date: date
    original_description: str | None = None
    authorized_date: date | None = None
    pending: bool = False
    dismissed: bool = False
    matched_credit_id: UUID | None = None
    matched_rule_id: UUID | None = None
    is_clawback: bool = False

    @property
    def effective_date(self) -> date:
        """Return the date used for period math (authorized date wins)."""
        return self.authorized_date or self.date

    @property
    def is_refund(self) -> bool:
        """Return True for debits, which reverse previously recorded usage."""
        return self.amount_cents > 0

    @property
    def absolute_amount_cents(self) -> int:
        """Return the unsigned amount in cents."""
        return abs(self.amount_cents)


@dataclass(frozen=True, slots=True)
class UsageRecord(BaseEntity):
    """Amount used for one (wallet, credit, period, slot).

    Attributes:
        id:
            Usage record identifier.
        user_wallet_id:
            Wallet the usage belongs to.
        credit_id:
            Concrete credit definition being used.
        period_start:
            Inclusive period start.
        period_end:
            Inclusive period end.
        slot_number:
            Slot within the period (1..credit_count).
        amount_used:
            Decimal dollars used; never negative.
        auto_detected:
            True when created by reconciliation rather than manually.
        is_clawback:
            True for placeholder records created only to anchor a clawback link.
        used_at:
            Date of the transaction that created the record.
    """

    id: UUID
    user_wallet_id: UUID
    credit_id: UUID
    period_start: date
    period_end: date
    slot_number: int
    amount_used: Decimal
    auto_detected: bool = True
    is_clawback: bool = False
    used_at: date | None = None

    def __post_init__(self) -> None:
        """Validate invariants for the usage record."""
        if self.slot_number < 1:
            raise ValueError("slot_number must be >= 1")
        if self.amount_used < 0:
            raise ValueError("amount_used must be >= 0")
        if self.period_end < self.period_start:
            raise ValueError("period_end must not precede period_start")

    def is_full(self, default_value_cents: int | None) -> bool:
        """Return True when the slot has consumed the credit's dollar value.

        A credit without a positive dollar value is never considered full.
        """
        if not default_value_cents or default_value_cents <= 0:
            return False
        return self.amount_used * CENTS_PER_DOLLAR >= default_value_cents


@dataclass(frozen=True, slots=True)
class UsageTransactionLink(BaseEntity):
    """Join record between a transaction and the usage record it changed.

    ``amount_cents`` is positive for funding links and negative for clawbacks.
    At most one link exists per ``transaction_id``.
    """

    usage_id: UUID
    transaction_id: UUID
    amount_cents: int


__all__ = [
    "CENTS_PER_DOLLAR",
    "Transaction",
    "UsageRecord",
    "UsageTransactionLink",
    "cents_to_dollars",
]
