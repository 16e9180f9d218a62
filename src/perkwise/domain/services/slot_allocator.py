# src/perkwise/domain/services/slot_allocator.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Slot allocator for multi-use credits.

Purpose:
    Decide which usage slot a new credit (negative-amount) transaction is
    booked against within a (wallet, credit, period).

Layer:
    domain/services

Notes:
    - Pure domain logic: the allocator only returns a decision; the
      reconciliation use case applies it through the usage-ledger repository.
    - Allocation order:
        1. The first slot (ascending slot number) that is not full.
        2. Otherwise a new record at the lowest unused slot in [1, N], which
           tolerates gaps left by manually deleted records.
        3. Otherwise (all N slots full) the lowest existing slot, so
           over-limit usage is still recorded.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from perkwise.domain.entities.credits import CreditDefinition
from perkwise.domain.entities.usage import UsageRecord, cents_to_dollars


class AllocationAction(str, Enum):
    """How a credit amount is booked."""

    ADD_TO_EXISTING = "ADD_TO_EXISTING"
    CREATE_SLOT = "CREATE_SLOT"
    OVERFLOW_TO_FIRST = "OVERFLOW_TO_FIRST"


@dataclass(frozen=True, slots=True)
class SlotAllocation:
    """Allocation decision for one credit transaction.

    Attributes:
        action:
            Allocation branch taken.
        slot_number:
            Slot receiving the amount.
        target:
            Existing usage record to update; None when a slot is created.
        amount_used:
            Resulting ``amount_used`` (decimal dollars) for the slot.
        link_amount_cents:
            Amount stored on the transaction link (absolute amount).
    """

    action: AllocationAction
    slot_number: int
    target: UsageRecord | None
    amount_used: Decimal
    link_amount_cents: int


def _lowest_unused_slot(existing: Sequence[UsageRecord], credit_count: int) -> int | None:
    used = {u.slot_number for u in existing}
    for slot in range(1, credit_count + 1):
        if slot not in used:
            return slot
    return None


def plan_credit_allocation(
    *,
    existing: Sequence[UsageRecord],
    credit: CreditDefinition,
    amount_cents: int,
) -> SlotAllocation:
    """Plan where a credit amount lands within a period.

    Args:
        existing:
            Usage records already present for (wallet, credit, period_start),
            across all slots.
        credit:
            Concrete credit definition (slot count and per-slot value).
        amount_cents:
            Transaction amount in cents; the sign is ignored.

    Returns:
        SlotAllocation describing the update to apply.
    """
    amount_cents = abs(amount_cents)
    amount = cents_to_dollars(amount_cents)
    ordered = sorted(existing, key=lambda u: u.slot_number)

    for usage in ordered:
        if not usage.is_full(credit.default_value_cents):
            return SlotAllocation(
                action=AllocationAction.ADD_TO_EXISTING,
                slot_number=usage.slot_number,
                target=usage,
                amount_used=usage.amount_used + amount,
                link_amount_cents=amount_cents,
            )

    if len(ordered) < credit.credit_count:
        slot = _lowest_unused_slot(ordered, credit.credit_count)
        if slot is not None:
            return SlotAllocation(
                action=AllocationAction.CREATE_SLOT,
                slot_number=slot,
                target=None,
                amount_used=amount,
                link_amount_cents=amount_cents,
            )

    first = ordered[0]
    return SlotAllocation(
        action=AllocationAction.OVERFLOW_TO_FIRST,
        slot_number=first.slot_number,
        target=first,
        amount_used=first.amount_used + amount,
        link_amount_cents=amount_cents,
    )


__all__ = ["AllocationAction", "SlotAllocation", "plan_credit_allocation"]
