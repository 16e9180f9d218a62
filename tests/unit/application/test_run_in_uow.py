# tests/unit/application/test_run_in_uow.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date

import pytest
from credits_testkit import FakeUnitOfWork, InMemoryCreditsStore, build_uber_world

from perkwise.application.uow import UnitOfWork, run_in_uow


@pytest.mark.asyncio
async def test_run_in_uow_commits_and_returns_result() -> None:
    uow = FakeUnitOfWork(InMemoryCreditsStore())

    async def _fn(tx: UnitOfWork) -> str:
        assert tx.in_scope
        return "ok"

    assert await run_in_uow(uow, _fn) == "ok"
    assert uow.commits == 1
    assert uow.rollbacks == 0
    assert not uow.in_scope


@pytest.mark.asyncio
async def test_run_in_uow_rolls_back_writes_and_propagates() -> None:
    world = build_uber_world()
    txn = world.txn(-1500, date(2024, 3, 12))

    async def _fn(tx: UnitOfWork) -> None:
        await world.uow.transactions_repo.annotate_match(
            transaction_id=txn.id,
            matched_credit_id=world.credit.id,
            matched_rule_id=world.rule.id,
            is_clawback=False,
        )
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await run_in_uow(world.uow, _fn)

    assert world.uow.rollbacks == 1
    assert world.uow.commits == 0
    assert world.store.transactions[txn.id].matched_credit_id is None


@pytest.mark.asyncio
async def test_sequential_scopes_are_allowed() -> None:
    uow = FakeUnitOfWork(InMemoryCreditsStore())

    async def _noop(tx: UnitOfWork) -> None:
        return None

    await run_in_uow(uow, _noop)
    await run_in_uow(uow, _noop)

    assert uow.scopes == 2
    assert uow.commits == 2


@pytest.mark.asyncio
async def test_run_in_uow_rejects_an_open_scope() -> None:
    uow = FakeUnitOfWork(InMemoryCreditsStore())

    async def _noop(tx: UnitOfWork) -> None:
        return None

    async with uow:
        with pytest.raises(RuntimeError):
            await run_in_uow(uow, _noop)

    assert uow.scopes == 1
    assert uow.commits == 0
