# tests/unit/application/use_cases/reconciliation/test_rematch_unmatched_transactions.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from credits_testkit import USER_ID, build_uber_world

from perkwise.application.use_cases.reconciliation.rematch_unmatched_transactions import (
    RematchUnmatchedTransactionsUseCase,
)


@pytest.mark.asyncio
async def test_rematch_pages_through_unmatched_history() -> None:
    world = build_uber_world()
    ubers = [world.txn(-500, date(2024, 3, day)) for day in range(1, 6)]
    world.txn(-700, date(2024, 3, 7), name="STARBUCKS")
    world.txn(-500, date(2024, 3, 8), dismissed=True)
    world.txn(-500, date(2024, 3, 9), matched_credit_id=world.credit.id)
    world.txn(-500, date(2024, 3, 10), user_id="someone-else")

    use_case = RematchUnmatchedTransactionsUseCase(uow=world.uow, batch_size=2)
    result = await use_case.execute(USER_ID)

    assert result.total_candidates == 6
    assert result.outcome.matched == 5
    assert result.outcome.errors == ()
    (usage,) = world.store.usage_for(world.credit.id)
    assert usage.amount_used == Decimal("25.00")
    assert {u.id for u in ubers} <= set(world.store.links)


@pytest.mark.asyncio
async def test_rematch_after_rule_added_picks_up_old_transactions() -> None:
    world = build_uber_world()
    rule = world.rule
    world.store.rules = []
    txn = world.txn(-1500, date(2024, 2, 14))

    use_case = RematchUnmatchedTransactionsUseCase(uow=world.uow)
    first = await use_case.execute(USER_ID)
    assert (first.total_candidates, first.outcome.matched) == (1, 0)

    world.store.rules = [replace(rule, id=uuid4())]
    second = await use_case.execute(USER_ID)

    assert (second.total_candidates, second.outcome.matched) == (1, 1)
    (usage,) = world.store.usage_for(world.credit.id)
    assert usage.period_start == date(2024, 2, 1)
    assert world.store.transactions[txn.id].matched_credit_id == world.credit.id

    third = await use_case.execute(USER_ID)
    assert third.total_candidates == 0


@pytest.mark.asyncio
async def test_rematch_without_candidates_returns_empty_outcome() -> None:
    world = build_uber_world()

    result = await RematchUnmatchedTransactionsUseCase(uow=world.uow).execute(USER_ID)

    assert result.total_candidates == 0
    assert result.outcome.matched == 0


def test_rematch_rejects_non_positive_batch_size() -> None:
    world = build_uber_world()
    with pytest.raises(ValueError):
        RematchUnmatchedTransactionsUseCase(uow=world.uow, batch_size=0)
