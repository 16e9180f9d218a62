# tests/unit/domain/services/test_slot_allocator.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

from perkwise.domain.entities.credits import CreditDefinition
from perkwise.domain.entities.usage import UsageRecord
from perkwise.domain.enums.reset_cycle import ResetCycle
from perkwise.domain.services.slot_allocator import AllocationAction, plan_credit_allocation

_CREDIT_ID = uuid4()
_WALLET_ID = uuid4()


def _credit(credit_count: int = 2, default_value_cents: int | None = 1000) -> CreditDefinition:
    return CreditDefinition(
        id=_CREDIT_ID,
        card_id=uuid4(),
        name="Dining Credit",
        reset_cycle=ResetCycle.MONTHLY,
        credit_count=credit_count,
        default_value_cents=default_value_cents,
    )


def _usage(slot: int, amount: str) -> UsageRecord:
    return UsageRecord(
        id=uuid4(),
        user_wallet_id=_WALLET_ID,
        credit_id=_CREDIT_ID,
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        slot_number=slot,
        amount_used=Decimal(amount),
    )


def test_first_use_creates_slot_one() -> None:
    plan = plan_credit_allocation(existing=[], credit=_credit(), amount_cents=-800)

    assert plan.action is AllocationAction.CREATE_SLOT
    assert plan.slot_number == 1
    assert plan.target is None
    assert plan.amount_used == Decimal("8.00")
    assert plan.link_amount_cents == 800


def test_not_full_slot_absorbs_the_amount() -> None:
    slot1 = _usage(1, "4.00")
    plan = plan_credit_allocation(existing=[slot1], credit=_credit(), amount_cents=-300)

    assert plan.action is AllocationAction.ADD_TO_EXISTING
    assert plan.target == slot1
    assert plan.amount_used == Decimal("7.00")


def test_full_slot_one_opens_slot_two() -> None:
    plan = plan_credit_allocation(
        existing=[_usage(1, "10.00")],
        credit=_credit(),
        amount_cents=-500,
    )

    assert plan.action is AllocationAction.CREATE_SLOT
    assert plan.slot_number == 2
    assert plan.amount_used == Decimal("5.00")


def test_all_slots_full_overflows_into_slot_one() -> None:
    slot1, slot2 = _usage(1, "10.00"), _usage(2, "12.00")
    plan = plan_credit_allocation(existing=[slot2, slot1], credit=_credit(), amount_cents=-250)

    assert plan.action is AllocationAction.OVERFLOW_TO_FIRST
    assert plan.target == slot1
    assert plan.amount_used == Decimal("12.50")
    assert plan.link_amount_cents == 250


def test_missing_slot_is_gap_filled() -> None:
    plan = plan_credit_allocation(
        existing=[_usage(2, "10.00")],
        credit=_credit(credit_count=3),
        amount_cents=-100,
    )

    assert plan.action is AllocationAction.CREATE_SLOT
    assert plan.slot_number == 1


def test_credit_without_dollar_value_is_never_full() -> None:
    slot1 = _usage(1, "500.00")
    for value in (None, 0):
        plan = plan_credit_allocation(
            existing=[slot1],
            credit=_credit(default_value_cents=value),
            amount_cents=-100,
        )
        assert plan.action is AllocationAction.ADD_TO_EXISTING
        assert plan.amount_used == Decimal("501.00")
