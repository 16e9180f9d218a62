# tests/unit/domain/entities/test_credit_entities.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from perkwise.domain.entities.credits import CreditDefinition, Wallet
from perkwise.domain.entities.usage import Transaction, UsageRecord, cents_to_dollars
from perkwise.domain.enums.reset_cycle import ResetCycle
from perkwise.domain.exceptions.credits import InvalidCreditConfigurationError


def _credit(**overrides: object) -> CreditDefinition:
    fields: dict[str, object] = {
        "id": uuid4(),
        "card_id": uuid4(),
        "name": "Uber Credit",
        "reset_cycle": ResetCycle.MONTHLY,
    }
    fields.update(overrides)
    return CreditDefinition(**fields)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "overrides",
    [
        {"credit_count": 0},
        {"reset_day_of_month": 0},
        {"reset_day_of_month": 32},
        {"reset_cycle": "weekly"},
    ],
)
def test_invalid_credit_definitions_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(InvalidCreditConfigurationError) as excinfo:
        _credit(**overrides)
    assert excinfo.value.code == "INVALID_CREDIT_CONFIGURATION"


def test_reset_cycle_string_is_coerced() -> None:
    assert _credit(reset_cycle="cardmember_year").reset_cycle is ResetCycle.CARDMEMBER_YEAR


def test_dollar_value_requires_positive_default() -> None:
    assert _credit(default_value_cents=1500).has_dollar_value
    assert not _credit(default_value_cents=0).has_dollar_value
    assert not _credit().has_dollar_value


def test_entities_are_immutable() -> None:
    wallet = Wallet(id=uuid4(), card_id=uuid4(), user_id="u1")
    with pytest.raises(FrozenInstanceError):
        wallet.user_id = "u2"  # type: ignore[misc]
    assert wallet.is_open


def test_transaction_amount_helpers() -> None:
    refund = Transaction(
        id=uuid4(),
        user_id="u1",
        linked_account_id=None,
        name="UBER TRIP",
        amount_cents=1250,
        date=date(2024, 3, 12),
    )
    assert refund.is_refund
    assert refund.absolute_amount_cents == 1250
    assert refund.effective_date == date(2024, 3, 12)


def test_cents_to_dollars_is_exact() -> None:
    assert cents_to_dollars(-1999) == Decimal("-19.99")
    assert cents_to_dollars(5) == Decimal("0.05")


def _usage(**overrides: object) -> UsageRecord:
    fields: dict[str, object] = {
        "id": uuid4(),
        "user_wallet_id": uuid4(),
        "credit_id": uuid4(),
        "period_start": date(2024, 3, 1),
        "period_end": date(2024, 3, 31),
        "slot_number": 1,
        "amount_used": Decimal("10.00"),
    }
    fields.update(overrides)
    return UsageRecord(**fields)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "overrides",
    [
        {"slot_number": 0},
        {"amount_used": Decimal("-0.01")},
        {"period_end": date(2024, 2, 29)},
    ],
)
def test_invalid_usage_records_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        _usage(**overrides)


def test_usage_fullness_against_credit_value() -> None:
    usage = _usage(amount_used=Decimal("10.00"))

    assert usage.is_full(1000)
    assert not usage.is_full(1001)
    assert not usage.is_full(None)
    assert not usage.is_full(0)
