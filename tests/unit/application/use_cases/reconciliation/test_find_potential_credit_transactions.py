# tests/unit/application/use_cases/reconciliation/test_find_potential_credit_transactions.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date

import pytest
from credits_testkit import USER_ID, build_uber_world

from perkwise.application.use_cases.reconciliation.find_potential_credit_transactions import (
    FindPotentialCreditTransactionsUseCase,
)


@pytest.mark.asyncio
async def test_finds_unmatched_credits_that_look_like_benefits() -> None:
    world = build_uber_world()
    generic = world.txn(-2000, date(2024, 3, 2), name="PLATINUM HOTEL CREDIT")
    world.txn(-700, date(2024, 3, 3), name="STARBUCKS")
    world.txn(1500, date(2024, 3, 4), name="UBER TRIP")
    branded = world.txn(-999, date(2024, 3, 5), name="UBER ONE MEMBERSHIP")
    world.txn(-999, date(2024, 3, 6), name="UBER ONE MEMBERSHIP", dismissed=True)

    use_case = FindPotentialCreditTransactionsUseCase(uow=world.uow, batch_size=2)
    result = await use_case.execute(USER_ID)

    assert result.brand_names == ("credit", "uber")
    assert [t.id for t in result.transactions] == [generic.id, branded.id]


@pytest.mark.asyncio
async def test_potential_credits_do_not_write() -> None:
    world = build_uber_world()
    world.txn(-1500, date(2024, 3, 5))

    await FindPotentialCreditTransactionsUseCase(uow=world.uow).execute(USER_ID)

    assert world.uow.commits == 0
    assert world.store.usage == {}
