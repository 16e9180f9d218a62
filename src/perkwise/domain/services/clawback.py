# src/perkwise/domain/services/clawback.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Clawback handler.

Purpose:
    Decide how a refund/reversal (positive-amount) transaction reduces
    previously recorded usage within a period.

Layer:
    domain/services

Notes:
    - The most recently touched slot (highest slot number) absorbs the
      reduction, floored at zero.
    - When nothing has been recorded in the period yet, a zero-amount
      placeholder record flagged ``is_clawback`` is created so the clawback
      transaction still has a usage record to link to.
    - Clawback links store a negative amount.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from perkwise.domain.entities.usage import UsageRecord, cents_to_dollars

_ZERO = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class ClawbackAdjustment:
    """Clawback decision for one refund transaction.

    Attributes:
        target:
            Usage record to reduce; None when a placeholder must be created.
        amount_used:
            Resulting ``amount_used`` (decimal dollars), never negative.
        link_amount_cents:
            Negative amount stored on the transaction link.
    """

    target: UsageRecord | None
    amount_used: Decimal
    link_amount_cents: int

    @property
    def creates_placeholder(self) -> bool:
        """Return True when no usage existed and a placeholder is needed."""
        return self.target is None


def plan_clawback(*, existing: Sequence[UsageRecord], amount_cents: int) -> ClawbackAdjustment:
    """Plan the usage reduction for a refund transaction.

    Args:
        existing:
            Usage records for (wallet, credit, period_start), across slots.
        amount_cents:
            Refund amount in cents; the sign is ignored.

    Returns:
        ClawbackAdjustment describing the update to apply.
    """
    amount_cents = abs(amount_cents)
    link_amount_cents = -amount_cents

    if not existing:
        return ClawbackAdjustment(
            target=None,
            amount_used=_ZERO,
            link_amount_cents=link_amount_cents,
        )

    target = max(existing, key=lambda u: u.slot_number)
    reduced = max(_ZERO, target.amount_used - cents_to_dollars(amount_cents))
    return ClawbackAdjustment(
        target=target,
        amount_used=reduced,
        link_amount_cents=link_amount_cents,
    )


__all__ = ["ClawbackAdjustment", "plan_clawback"]
