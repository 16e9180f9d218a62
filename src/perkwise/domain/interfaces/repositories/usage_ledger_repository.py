# src/perkwise/domain/interfaces/repositories/usage_ledger_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Usage ledger repository interface.

Purpose:
    Persistence operations for credit usage records and their links to the
    transactions that produced them.

Layer:
    domain/interfaces/repositories

Notes:
    - At most one link exists per transaction id. The storage layer enforces
      this with a uniqueness constraint; ``insert_link`` is a conditional
      write that reports whether the link was inserted instead of raising on
      conflict.
    - Implementations never commit; the unit of work owns the transaction.
    - Driver errors are translated into
      :class:`~perkwise.domain.exceptions.credits.LedgerPersistenceError`.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from perkwise.domain.entities.usage import UsageRecord, UsageTransactionLink


class UsageLedgerRepository(Protocol):
    """Protocol for repositories managing the credit usage ledger."""

    async def link_exists(self, transaction_id: UUID) -> bool:
        """Return True when ``transaction_id`` already funds or reduces a usage record."""

    async def list_period_usage(
        self,
        *,
        user_wallet_id: UUID,
        credit_id: UUID,
        period_start: date,
    ) -> Sequence[UsageRecord]:
        """Return usage records for the period across all slots.

        Ordering:
            slot_number ASC
        """

    async def create_usage(self, record: UsageRecord) -> UsageRecord:
        """Insert a new usage record and return it."""

    async def update_amount_used(self, *, usage_id: UUID, amount_used: Decimal) -> None:
        """Set ``amount_used`` on an existing usage record."""

    async def insert_link(self, link: UsageTransactionLink) -> bool:
        """Insert a transaction link unless one exists for the transaction.

        Returns:
            True when the link was inserted, False when the transaction was
            already linked (already processed).
        """

    async def list_links_for_usage(self, usage_id: UUID) -> Sequence[UsageTransactionLink]:
        """Return the links recorded against a usage record."""


__all__ = ["UsageLedgerRepository"]
