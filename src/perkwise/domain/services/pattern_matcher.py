# src/perkwise/domain/services/pattern_matcher.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Transaction pattern matcher.

Purpose:
    Decide whether a transaction satisfies a credit matching rule and pick
    the winning rule deterministically when several apply.

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from perkwise.domain.entities.credits import MatchingRule
from perkwise.domain.entities.usage import Transaction


def transaction_text(transaction: Transaction) -> str:
    """Return the text rules are matched against.

    The raw ``original_description`` is used when present, otherwise ``name``.
    """
    if transaction.original_description:
        return transaction.original_description
    return transaction.name


def matches_rule(transaction: Transaction, rule: MatchingRule) -> bool:
    """Return True when ``transaction`` satisfies ``rule``.

    A match requires case-insensitive substring containment of the rule
    pattern and, when the rule carries ``match_amount_cents``, an exact
    sign-sensitive amount match. Surrounding whitespace in the pattern is
    significant. Blank patterns never match.
    """
    if not rule.pattern.strip():
        return False
    if rule.pattern.lower() not in transaction_text(transaction).lower():
        return False
    if rule.match_amount_cents is not None:
        return transaction.amount_cents == rule.match_amount_cents
    return True


def order_rules(rules: Iterable[MatchingRule]) -> tuple[MatchingRule, ...]:
    """Return rules in the deterministic evaluation order (rule id ascending)."""
    return tuple(sorted(rules, key=lambda r: str(r.id)))


def find_matching_rules(
    transaction: Transaction,
    ordered_rules: Sequence[MatchingRule],
) -> tuple[MatchingRule, ...]:
    """Return every rule matching ``transaction``, preserving evaluation order.

    The first element is the winning rule; callers treat more than one
    element as an ambiguity signal.
    """
    return tuple(rule for rule in ordered_rules if matches_rule(transaction, rule))


__all__ = ["find_matching_rules", "matches_rule", "order_rules", "transaction_text"]
