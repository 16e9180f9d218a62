# src/perkwise/domain/exceptions/credits.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit reconciliation domain exceptions.

Purpose:
    Error types raised while loading reference data, validating credit
    definitions, and persisting usage-ledger updates.

Layer:
    domain/exceptions

Notes:
    Adapters translate driver/persistence errors (SQLAlchemy) into these
    types; the reconciliation use case decides which of them are fatal for
    the batch and which only abandon a single transaction.
"""

from __future__ import annotations

from perkwise.domain.exceptions.base import DomainError


class ReferenceDataError(DomainError):
    """Raised when rules, wallets, linked accounts, or credits cannot be loaded."""

    code = "REFERENCE_DATA_UNAVAILABLE"


class LedgerPersistenceError(DomainError):
    """Raised when an annotation or usage-ledger write fails."""

    code = "LEDGER_PERSISTENCE_FAILED"


class InvalidCreditConfigurationError(DomainError, ValueError):
    """Raised when a credit definition violates its invariants."""

    code = "INVALID_CREDIT_CONFIGURATION"


__all__ = [
    "InvalidCreditConfigurationError",
    "LedgerPersistenceError",
    "ReferenceDataError",
]
