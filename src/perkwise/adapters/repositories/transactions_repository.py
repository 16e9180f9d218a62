# src/perkwise/adapters/repositories/transactions_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""User transactions repository (SQLAlchemy).

Purpose:
    Write reconciliation annotations onto ``credits.user_transactions`` and
    page through a user's unmatched history for rematching.

Layer:
    adapters/repositories

Design:
    * Transactions are created by the banking-feed sync; this repository
      only updates the annotation columns.
    * Driver failures surface as ``LedgerPersistenceError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import select, update

from perkwise.adapters.repositories.base_repository import BaseRepository
from perkwise.domain.entities.usage import Transaction
from perkwise.domain.exceptions.credits import LedgerPersistenceError
from perkwise.domain.interfaces.repositories.transactions_repository import (
    TransactionsRepository as TransactionsRepositoryPort,
)
from perkwise.infrastructure.database.models.credits import UserTransaction


class SqlAlchemyTransactionsRepository(
    BaseRepository[UserTransaction],
    TransactionsRepositoryPort,
):
    """SQLAlchemy-backed transactions repository."""

    _MODEL_NAME = "credits_user_transactions"
    _ERROR_TYPE = LedgerPersistenceError

    async def annotate_match(
        self,
        *,
        transaction_id: UUID,
        matched_credit_id: UUID,
        matched_rule_id: UUID,
        is_clawback: bool,
    ) -> None:
        """Write the match annotation onto an existing transaction row.

        Raises:
            LedgerPersistenceError: If the row does not exist or the update fails.
        """
        async with self._instrumented("annotate_match"):
            stmt = (
                update(UserTransaction)
                .where(UserTransaction.id == transaction_id)
                .values(
                    matched_credit_id=matched_credit_id,
                    matched_rule_id=matched_rule_id,
                    is_clawback=is_clawback,
                )
            )
            result: Any = await self._session.execute(stmt)
            if getattr(result, "rowcount", None) == 0:
                raise LedgerPersistenceError(
                    "Transaction not found for annotation.",
                    details={"transaction_id": str(transaction_id)},
                )

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
        async with self._instrumented("list_unmatched_for_user"):
            stmt = (
                select(UserTransaction)
                .where(
                    UserTransaction.user_id == user_id,
                    UserTransaction.matched_credit_id.is_(None),
                    UserTransaction.dismissed.is_(False),
                    UserTransaction.pending.is_(False),
                )
                .order_by(UserTransaction.date.asc(), UserTransaction.id.asc())
                .limit(limit)
                .offset(offset)
            )
            rows = await self.fetch_all(stmt)
        return [self._to_domain(row) for row in rows]

    @staticmethod
    def _to_domain(row: UserTransaction) -> Transaction:
        return Transaction(
            id=row.id,
            user_id=row.user_id,
            linked_account_id=row.linked_account_id,
            name=row.name,
            amount_cents=row.amount_cents,
            date=row.date,
            original_description=row.original_description,
            authorized_date=row.authorized_date,
            pending=row.pending,
            dismissed=row.dismissed,
            matched_credit_id=row.matched_credit_id,
            matched_rule_id=row.matched_rule_id,
            is_clawback=row.is_clawback,
        )


__all__ = ["SqlAlchemyTransactionsRepository"]
