# tests/unit/observability/test_reconcile_metrics.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date

import prometheus_client as prom
import pytest
from credits_testkit import USER_ID, build_uber_world

from perkwise.application.use_cases.reconciliation.reconcile_transactions import reconcile
from perkwise.infrastructure.observability import metrics as m


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return prom.REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_accessors_return_stable_collectors() -> None:
    assert m.get_reconcile_transactions_total() is m.get_reconcile_transactions_total()
    assert m.get_reconcile_batch_duration_seconds() is m.get_reconcile_batch_duration_seconds()
    assert m.get_db_errors_total() is m.get_db_errors_total()
    assert m.get_db_operation_duration_seconds() is m.get_db_operation_duration_seconds()


@pytest.mark.asyncio
async def test_reconciliation_records_outcomes() -> None:
    world = build_uber_world()
    matched = world.txn(-1500, date(2024, 3, 12))
    skipped = world.txn(-700, date(2024, 3, 12), name="STARBUCKS")

    before_matched = _sample("perkwise_reconcile_transactions_total", {"outcome": "matched"})
    before_skipped = _sample(
        "perkwise_reconcile_transactions_total", {"outcome": "skipped_no_rule"}
    )
    before_batches = _sample(
        "perkwise_reconcile_batch_duration_seconds_count", {"outcome": "success"}
    )

    await reconcile(world.uow, USER_ID, [matched, skipped])

    assert (
        _sample("perkwise_reconcile_transactions_total", {"outcome": "matched"})
        == before_matched + 1
    )
    assert (
        _sample("perkwise_reconcile_transactions_total", {"outcome": "skipped_no_rule"})
        == before_skipped + 1
    )
    assert (
        _sample("perkwise_reconcile_batch_duration_seconds_count", {"outcome": "success"})
        == before_batches + 1
    )


@pytest.mark.asyncio
async def test_aborted_batch_is_observed() -> None:
    world = build_uber_world()
    world.store.failing.add("list_open_wallets")
    txn = world.txn(-1500, date(2024, 3, 12))

    before = _sample("perkwise_reconcile_batch_duration_seconds_count", {"outcome": "aborted"})

    await reconcile(world.uow, USER_ID, [txn])

    after = _sample("perkwise_reconcile_batch_duration_seconds_count", {"outcome": "aborted"})
    assert after == before + 1
