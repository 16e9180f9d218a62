# tests/unit/domain/services/test_potential_credits.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import date
from uuid import uuid4

from perkwise.domain.entities.credits import CreditDefinition
from perkwise.domain.entities.usage import Transaction
from perkwise.domain.enums.reset_cycle import ResetCycle
from perkwise.domain.services.potential_credits import (
    credit_brand_names,
    is_potential_credit_transaction,
)


def _txn(name: str, amount_cents: int) -> Transaction:
    return Transaction(
        id=uuid4(),
        user_id="u1",
        linked_account_id=None,
        name=name,
        amount_cents=amount_cents,
        date=date(2024, 3, 1),
    )


def test_brand_names_include_brands_and_significant_name_words() -> None:
    credits = [
        CreditDefinition(
            id=uuid4(),
            card_id=uuid4(),
            name="Uber Cash",
            reset_cycle=ResetCycle.MONTHLY,
            brand_name="Uber",
        ),
        CreditDefinition(
            id=uuid4(),
            card_id=uuid4(),
            name="Saks Fifth Ave",
            reset_cycle=ResetCycle.SEMIANNUAL,
        ),
    ]

    assert credit_brand_names(credits) == ("cash", "fifth", "saks", "uber")


def test_potential_credit_requires_a_credit_amount() -> None:
    brands = ("saks",)

    assert is_potential_credit_transaction(_txn("SAKS STATEMENT ADJ", -5000), brands)
    assert is_potential_credit_transaction(_txn("AMEX Dining CREDIT", -1000), brands)
    assert not is_potential_credit_transaction(_txn("SAKS FIFTH AVE", 5000), brands)
    assert not is_potential_credit_transaction(_txn("GROCERY REFUND", -1200), brands)
