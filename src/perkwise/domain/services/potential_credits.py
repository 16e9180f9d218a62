# src/perkwise/domain/services/potential_credits.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Heuristics for spotting unmatched benefit transactions.

Purpose:
    Surface statement credits that no matching rule covers yet, so rule
    authors can see what the reconciler is missing.

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Iterable

from perkwise.domain.entities.credits import CreditDefinition
from perkwise.domain.entities.usage import Transaction
from perkwise.domain.services.pattern_matcher import transaction_text

_MIN_WORD_LENGTH = 4


def credit_brand_names(credits: Iterable[CreditDefinition]) -> tuple[str, ...]:
    """Collect lower-cased brand names and significant credit-name words.

    Words of three characters or fewer are skipped.
    """
    brands: set[str] = set()
    for credit in credits:
        if credit.brand_name:
            brands.add(credit.brand_name.lower())
        for word in credit.name.split():
            if len(word) >= _MIN_WORD_LENGTH:
                brands.add(word.lower())
    return tuple(sorted(brands))


def is_potential_credit_transaction(transaction: Transaction, brand_names: Iterable[str]) -> bool:
    """Return True when a credit transaction looks like an unmatched benefit."""
    if transaction.amount_cents >= 0:
        return False

    text = transaction_text(transaction).lower()
    if "credit" in text:
        return True
    return any(brand in text for brand in brand_names)


__all__ = ["credit_brand_names", "is_potential_credit_transaction"]
