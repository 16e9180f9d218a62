# tests/unit/domain/services/test_pattern_matcher.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from perkwise.domain.entities.credits import MatchingRule
from perkwise.domain.entities.usage import Transaction
from perkwise.domain.services.pattern_matcher import (
    find_matching_rules,
    matches_rule,
    order_rules,
    transaction_text,
)


def _txn(
    name: str = "UBER TRIP",
    amount_cents: int = -1500,
    original_description: str | None = None,
) -> Transaction:
    return Transaction(
        id=uuid4(),
        user_id="u1",
        linked_account_id=uuid4(),
        name=name,
        amount_cents=amount_cents,
        date=date(2024, 3, 12),
        original_description=original_description,
    )


def _rule(pattern: str, amount: int | None = None, rule_id: UUID | None = None) -> MatchingRule:
    return MatchingRule(
        id=rule_id or uuid4(),
        credit_id=uuid4(),
        pattern=pattern,
        match_amount_cents=amount,
    )


def test_original_description_wins_over_name() -> None:
    txn = _txn(name="UBER TRIP", original_description="LYFT RIDE 123")
    assert transaction_text(txn) == "LYFT RIDE 123"
    assert not matches_rule(txn, _rule("uber"))
    assert matches_rule(txn, _rule("lyft"))


def test_substring_match_is_case_insensitive() -> None:
    assert matches_rule(_txn(name="Uber *Eats Pending"), _rule("UBER"))
    assert matches_rule(_txn(name="UBER TRIP"), _rule("uber trip"))
    assert not matches_rule(_txn(name="UBR TRIP"), _rule("uber"))


def test_amount_filter_is_exact_and_sign_sensitive() -> None:
    credit_txn = _txn(amount_cents=-1500)
    debit_txn = _txn(amount_cents=1500)

    assert matches_rule(credit_txn, _rule("uber", amount=-1500))
    assert not matches_rule(debit_txn, _rule("uber", amount=-1500))
    assert matches_rule(debit_txn, _rule("uber", amount=1500))
    assert not matches_rule(credit_txn, _rule("uber", amount=-1000))


def test_blank_pattern_never_matches() -> None:
    assert not matches_rule(_txn(), _rule(""))
    assert not matches_rule(_txn(), _rule("   "))


def test_rules_are_evaluated_in_id_order() -> None:
    low = _rule("uber", rule_id=UUID("00000000-0000-0000-0000-000000000001"))
    high = _rule("trip", rule_id=UUID("ffffffff-0000-0000-0000-000000000000"))
    unrelated = _rule("doordash", rule_id=UUID("80000000-0000-0000-0000-000000000000"))

    ordered = order_rules([high, unrelated, low])
    assert ordered == (low, unrelated, high)

    matched = find_matching_rules(_txn(name="UBER TRIP"), ordered)
    assert matched == (low, high)
    assert find_matching_rules(_txn(name="STARBUCKS"), ordered) == ()


def test_pattern_whitespace_is_matched_literally() -> None:
    assert not matches_rule(_txn(name="UBEREATS ORDER"), _rule("UBER "))
    assert matches_rule(_txn(name="UBER TRIP"), _rule("UBER "))
    assert not matches_rule(_txn(name="UBER"), _rule(" uber"))
    assert matches_rule(_txn(name="PMT UBER TRIP"), _rule(" uber"))
