# src/perkwise/domain/interfaces/repositories/transactions_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Transactions repository interface.

Purpose:
    Annotate persisted transactions with reconciliation results and page
    through a user's unmatched transactions for rematching.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from perkwise.domain.entities.usage import Transaction


class TransactionsRepository(Protocol):
    """Protocol for repositories managing persisted transactions."""

    async def annotate_match(
        self,
        *,
        transaction_id: UUID,
        matched_credit_id: UUID,
        matched_rule_id: UUID,
        is_clawback: bool,
    ) -> None:
        """Write the match annotation onto an existing transaction row."""

    async def list_unmatched_for_user(
        self,
        user_id: str,
        *,
        limit: int,
        offset: int = 0,
    ) -> Sequence[Transaction]:
        """Return unmatched, non-dismissed, non-pending transactions.

        Ordering:
            date ASC, id ASC
        """


__all__ = ["TransactionsRepository"]
