# src/perkwise/domain/entities/credits.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Card credit reference entities.

Purpose:
    Immutable domain representations of the reference data consumed by
    credit reconciliation: matching rules, credit definitions, wallets and
    linked bank accounts. These are read-only for the duration of a batch.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from perkwise.domain.entities.base import BaseEntity
from perkwise.domain.enums.reset_cycle import ResetCycle
from perkwise.domain.exceptions.credits import InvalidCreditConfigurationError


@dataclass(frozen=True, slots=True)
class MatchingRule(BaseEntity):
    """Rule linking transaction text (and optionally an exact amount) to a credit.

    Attributes:
        id:
            Rule identifier.
        credit_id:
            Credit definition the rule was authored against.
        pattern:
            Case-insensitive substring searched for in the transaction text.
        match_amount_cents:
            Optional exact, sign-sensitive amount filter in cents.
    """

    id: UUID
    credit_id: UUID
    pattern: str
    match_amount_cents: int | None = None


@dataclass(frozen=True, slots=True)
class CreditDefinition(BaseEntity):
    """A recurring cardholder benefit attached to a card product.

    Attributes:
        id:
            Credit identifier.
        card_id:
            Card product that carries the credit.
        name:
            Display name; credits with the same name and issuer are treated as
            the same benefit across card products.
        reset_cycle:
            Period policy used to bucket usage.
        credit_count:
            Number of parallel usage slots per period (>= 1).
        issuer_id:
            Issuer of the owning card, when known.
        brand_name:
            Merchant/brand the benefit is tied to, when known.
        reset_day_of_month:
            Day-of-month boundary for monthly credits (1..31).
        default_value_cents:
            Per-slot dollar value in cents; ``None`` or 0 means "no cap".
        is_active:
            Inactive credits are never loaded for reconciliation.

    Raises:
        InvalidCreditConfigurationError:
            If ``credit_count`` is below 1 or ``reset_day_of_month`` is out of range.
    """

    id: UUID
    card_id: UUID
    name: str
    reset_cycle: ResetCycle
    credit_count: int = 1
    issuer_id: UUID | None = None
    brand_name: str | None = None
    reset_day_of_month: int | None = None
    default_value_cents: int | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        """Validate invariants for the credit definition."""
        if self.credit_count < 1:
            raise InvalidCreditConfigurationError(
                "credit_count must be >= 1",
                details={"credit_id": str(self.id), "credit_count": self.credit_count},
            )
        if self.reset_day_of_month is not None and not 1 <= self.reset_day_of_month <= 31:
            raise InvalidCreditConfigurationError(
                "reset_day_of_month must be between 1 and 31",
                details={
                    "credit_id": str(self.id),
                    "reset_day_of_month": self.reset_day_of_month,
                },
            )
        if not isinstance(self.reset_cycle, ResetCycle):
            try:
                object.__setattr__(self, "reset_cycle", ResetCycle(self.reset_cycle))
            except ValueError as exc:
                raise InvalidCreditConfigurationError(
                    "unknown reset_cycle",
                    details={"credit_id": str(self.id), "reset_cycle": self.reset_cycle},
                ) from exc

    @property
    def has_dollar_value(self) -> bool:
        """Return True when the credit defines a positive per-slot value."""
        return bool(self.default_value_cents and self.default_value_cents > 0)


@dataclass(frozen=True, slots=True)
class Wallet(BaseEntity):
    """A user's instance of owning a card product.

    Attributes:
        id:
            Wallet identifier.
        card_id:
            Card product held.
        user_id:
            Owning user.
        approval_date:
            Card approval date; anchors cardmember-year credits.
        closed_date:
            Closure date; closed wallets do not participate in reconciliation.
    """

    id: UUID
    card_id: UUID
    user_id: str
    approval_date: date | None = None
    closed_date: date | None = None

    @property
    def is_open(self) -> bool:
        """Return True while the wallet has not been closed."""
        return self.closed_date is None


@dataclass(frozen=True, slots=True)
class LinkedAccount(BaseEntity):
    """External bank account mapped to at most one wallet."""

    id: UUID
    user_id: str
    wallet_id: UUID | None = None


__all__ = ["CreditDefinition", "LinkedAccount", "MatchingRule", "Wallet"]
