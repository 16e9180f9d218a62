# tests/unit/domain/services/test_clawback.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

from perkwise.domain.entities.usage import UsageRecord
from perkwise.domain.services.clawback import plan_clawback


def _usage(slot: int, amount: str) -> UsageRecord:
    return UsageRecord(
        id=uuid4(),
        user_wallet_id=uuid4(),
        credit_id=uuid4(),
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        slot_number=slot,
        amount_used=Decimal(amount),
    )


def test_clawback_reduces_highest_slot() -> None:
    slot1, slot2 = _usage(1, "15.00"), _usage(2, "9.00")
    plan = plan_clawback(existing=[slot1, slot2], amount_cents=400)

    assert plan.target == slot2
    assert plan.amount_used == Decimal("5.00")
    assert plan.link_amount_cents == -400
    assert not plan.creates_placeholder


def test_clawback_is_floored_at_zero() -> None:
    plan = plan_clawback(existing=[_usage(1, "5.00")], amount_cents=1500)

    assert plan.amount_used == Decimal("0.00")
    assert plan.link_amount_cents == -1500


def test_clawback_without_usage_plans_a_placeholder() -> None:
    plan = plan_clawback(existing=[], amount_cents=1500)

    assert plan.creates_placeholder
    assert plan.target is None
    assert plan.amount_used == Decimal("0.00")
    assert plan.link_amount_cents == -1500
