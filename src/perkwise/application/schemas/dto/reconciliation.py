# src/perkwise/application/schemas/dto/reconciliation.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Application DTOs for credit reconciliation flows.

Purpose:
    Result shapes returned by the reconciliation use cases. Callers
    (schedulers, admin actions, the CLI) surface a non-empty ``errors``
    list as a warning; it never fails the surrounding sync.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from dataclasses import dataclass, field

from perkwise.domain.entities.usage import Transaction


@dataclass(frozen=True, slots=True)
class ReconciliationOutcomeDTO:
    """Counts and error messages for one reconciliation batch.

    Attributes:
        matched: Credit transactions recorded in (or already linked to) the ledger.
        clawbacks: Refund transactions recorded in (or already linked to) the ledger.
        errors: Human-readable messages, one per failed transaction, or a
            single message when reference data could not be loaded.
    """

    matched: int = 0
    clawbacks: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True, slots=True)
class RematchOutcomeDTO:
    """Result of re-running reconciliation over a user's unmatched history."""

    total_candidates: int
    outcome: ReconciliationOutcomeDTO


@dataclass(frozen=True, slots=True)
class PotentialCreditTransactionsDTO:
    """Unmatched transactions that look like benefit credits."""

    brand_names: tuple[str, ...]
    transactions: tuple[Transaction, ...]


__all__ = [
    "PotentialCreditTransactionsDTO",
    "ReconciliationOutcomeDTO",
    "RematchOutcomeDTO",
]
