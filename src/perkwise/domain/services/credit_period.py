# src/perkwise/domain/services/credit_period.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit period calculator.

Purpose:
    Compute the inclusive reset period that brackets a transaction's
    effective date for each supported reset-cycle policy.

Layer:
    domain/services

Notes:
    - Pure domain logic:
        * No logging.
        * No persistence or gateways.
    - Day-of-month anchors that do not exist in a given month (reset day 31
      in a 30-day month, a Feb 29 approval date in a common year) are clamped
      to the last day of that month. Consecutive periods therefore remain
      contiguous: each period ends the day before the next one starts.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from perkwise.domain.enums.reset_cycle import ResetCycle

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class CreditPeriod:
    """Inclusive period bracketing a usage.

    Attributes:
        start:
            First day of the period.
        end:
            Last day of the period.
    """

    start: date
    end: date

    def contains(self, value: date) -> bool:
        """Return True when ``value`` falls inside the period."""
        return self.start <= value <= self.end


def _clamped(year: int, month: int, day: int) -> date:
    """Build a date, clamping ``day`` to the last valid day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Return (year, month) shifted by ``delta`` months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _monthly_period(effective: date, reset_day: int) -> CreditPeriod:
    this_boundary = _clamped(effective.year, effective.month, reset_day)
    if effective >= this_boundary:
        start = this_boundary
        next_year, next_month = _shift_month(effective.year, effective.month, 1)
        end = _clamped(next_year, next_month, reset_day) - _ONE_DAY
    else:
        prev_year, prev_month = _shift_month(effective.year, effective.month, -1)
        start = _clamped(prev_year, prev_month, reset_day)
        end = this_boundary - _ONE_DAY
    return CreditPeriod(start=start, end=end)


def _calendar_block_period(effective: date, months_per_block: int) -> CreditPeriod:
    block = (effective.month - 1) // months_per_block
    first_month = block * months_per_block + 1
    last_month = first_month + months_per_block - 1
    return CreditPeriod(
        start=date(effective.year, first_month, 1),
        end=_clamped(effective.year, last_month, 31),
    )


def _cardmember_year_period(effective: date, approval_date: date) -> CreditPeriod:
    anniversary = _clamped(effective.year, approval_date.month, approval_date.day)
    if effective < anniversary:
        anniversary = _clamped(effective.year - 1, approval_date.month, approval_date.day)
    next_anniversary = _clamped(anniversary.year + 1, approval_date.month, approval_date.day)
    return CreditPeriod(start=anniversary, end=next_anniversary - _ONE_DAY)


def calculate_credit_period(
    effective_date: date,
    reset_cycle: ResetCycle | str,
    approval_date: date | None = None,
    reset_day_of_month: int | None = None,
) -> CreditPeriod:
    """Compute the inclusive period bracketing ``effective_date``.

    Policies:
        * ``monthly``: boundary on ``reset_day_of_month`` (default 1).
        * ``quarterly`` / ``semiannual`` / ``annual``: calendar blocks.
        * ``cardmember_year``: anchored to the approval-date anniversary;
          falls back to the calendar year when no approval date is known.
        * ``usage_based``: singleton period ``[effective_date, effective_date]``.

    Args:
        effective_date:
            Transaction effective date (authorized date, else posting date).
        reset_cycle:
            Reset-cycle policy (enum member or its string value).
        approval_date:
            Card approval date, used only by ``cardmember_year``.
        reset_day_of_month:
            Monthly boundary day (1..31), used only by ``monthly``.

    Returns:
        The CreditPeriod containing ``effective_date``.

    Raises:
        ValueError: If ``reset_cycle`` is not a known policy.
    """
    cycle = ResetCycle(reset_cycle)

    if cycle is ResetCycle.MONTHLY:
        return _monthly_period(effective_date, reset_day_of_month or 1)
    if cycle is ResetCycle.QUARTERLY:
        return _calendar_block_period(effective_date, 3)
    if cycle is ResetCycle.SEMIANNUAL:
        return _calendar_block_period(effective_date, 6)
    if cycle is ResetCycle.ANNUAL:
        return _calendar_block_period(effective_date, 12)
    if cycle is ResetCycle.CARDMEMBER_YEAR:
        if approval_date is None:
            return _calendar_block_period(effective_date, 12)
        return _cardmember_year_period(effective_date, approval_date)

    return CreditPeriod(start=effective_date, end=effective_date)


__all__ = ["CreditPeriod", "calculate_credit_period"]
