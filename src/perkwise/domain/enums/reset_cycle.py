# src/perkwise/domain/enums/reset_cycle.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Reset-cycle enum for recurring card credits.

Layer:
    domain/enums
"""

from __future__ import annotations

from enum import Enum


class ResetCycle(str, Enum):
    """Policy governing how often a credit's usage resets."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    CARDMEMBER_YEAR = "cardmember_year"
    USAGE_BASED = "usage_based"


__all__ = ["ResetCycle"]
