# src/perkwise/adapters/repositories/usage_ledger_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit usage ledger repository (SQLAlchemy).

Purpose:
    Persist usage records (``credits.credit_usage``) and the links between
    transactions and the records they changed
    (``credits.credit_usage_transactions``).

Layer:
    adapters/repositories

Design:
    * ``insert_link`` is a single conditional write
      (``INSERT ... ON CONFLICT (transaction_id) DO NOTHING``). The UNIQUE
      constraint on ``transaction_id`` is what makes concurrent runs safe;
      ``link_exists`` is only a fast path.
    * Usage reads are ordered by slot ascending.
    * Driver failures surface as ``LedgerPersistenceError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from perkwise.adapters.repositories.base_repository import BaseRepository
from perkwise.domain.entities.usage import UsageRecord, UsageTransactionLink
from perkwise.domain.exceptions.credits import LedgerPersistenceError
from perkwise.domain.interfaces.repositories.usage_ledger_repository import (
    UsageLedgerRepository as UsageLedgerRepositoryPort,
)
from perkwise.infrastructure.database.models.credits import (
    CreditUsage,
    CreditUsageTransaction,
)


class SqlAlchemyUsageLedgerRepository(
    BaseRepository[CreditUsage],
    UsageLedgerRepositoryPort,
):
    """SQLAlchemy-backed usage ledger repository."""

    _MODEL_NAME = "credits_credit_usage"
    _ERROR_TYPE = LedgerPersistenceError

    # ------------------------------------------------------------------
    # LINKS
    # ------------------------------------------------------------------

    async def link_exists(self, transaction_id: UUID) -> bool:
        async with self._instrumented("link_exists"):
            stmt = (
                select(CreditUsageTransaction.id)
                .where(CreditUsageTransaction.transaction_id == transaction_id)
                .limit(1)
            )
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def insert_link(self, link: UsageTransactionLink) -> bool:
        """Insert a transaction link unless the transaction is already linked.

        Returns:
            True when inserted; False on a ``transaction_id`` conflict.
        """
        async with self._instrumented("insert_link"):
            stmt = (
                pg_insert(CreditUsageTransaction)
                .values(
                    id=uuid4(),
                    usage_id=link.usage_id,
                    transaction_id=link.transaction_id,
                    amount_cents=link.amount_cents,
                )
                .on_conflict_do_nothing(index_elements=["transaction_id"])
            )
            result: Any = await self._session.execute(stmt)
            return bool(getattr(result, "rowcount", 0))

    async def list_links_for_usage(self, usage_id: UUID) -> Sequence[UsageTransactionLink]:
        async with self._instrumented("list_links_for_usage"):
            stmt = (
                select(CreditUsageTransaction)
                .where(CreditUsageTransaction.usage_id == usage_id)
                .order_by(
                    CreditUsageTransaction.created_at.asc(),
                    CreditUsageTransaction.id.asc(),
                )
            )
            result = await self._session.execute(stmt)
            rows = list(result.scalars().all())
        return [
            UsageTransactionLink(
                usage_id=row.usage_id,
                transaction_id=row.transaction_id,
                amount_cents=row.amount_cents,
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # USAGE RECORDS
    # ------------------------------------------------------------------

    async def list_period_usage(
        self,
        *,
        user_wallet_id: UUID,
        credit_id: UUID,
        period_start: date,
    ) -> Sequence[UsageRecord]:
        """Return the period's usage records across all slots.

        Ordering:
            slot_number ASC
        """
        async with self._instrumented("list_period_usage"):
            stmt = (
                select(CreditUsage)
                .where(
                    CreditUsage.user_wallet_id == user_wallet_id,
                    CreditUsage.credit_id == credit_id,
                    CreditUsage.period_start == period_start,
                )
                .order_by(CreditUsage.slot_number.asc())
            )
            rows = await self.fetch_all(stmt)
        return [self._to_domain(row) for row in rows]

    async def create_usage(self, record: UsageRecord) -> UsageRecord:
        async with self._instrumented("create_usage"):
            await self._session.execute(insert(CreditUsage).values(self._to_row_dict(record)))
        return record

    async def update_amount_used(self, *, usage_id: UUID, amount_used: Decimal) -> None:
        async with self._instrumented("update_amount_used"):
            stmt = (
                update(CreditUsage)
                .where(CreditUsage.id == usage_id)
                .values(amount_used=amount_used)
            )
            result: Any = await self._session.execute(stmt)
            if getattr(result, "rowcount", None) == 0:
                raise LedgerPersistenceError(
                    "Usage record not found.",
                    details={"usage_id": str(usage_id)},
                )

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _to_domain(row: CreditUsage) -> UsageRecord:
        return UsageRecord(
            id=row.id,
            user_wallet_id=row.user_wallet_id,
            credit_id=row.credit_id,
            period_start=row.period_start,
            period_end=row.period_end,
            slot_number=row.slot_number,
            amount_used=Decimal(row.amount_used),
            auto_detected=row.auto_detected,
            is_clawback=row.is_clawback,
            used_at=row.used_at,
        )

    @staticmethod
    def _to_row_dict(record: UsageRecord) -> dict[str, Any]:
        return {
            "id": record.id,
            "user_wallet_id": record.user_wallet_id,
            "credit_id": record.credit_id,
            "period_start": record.period_start,
            "period_end": record.period_end,
            "slot_number": record.slot_number,
            "amount_used": record.amount_used,
            "auto_detected": record.auto_detected,
            "is_clawback": record.is_clawback,
            "used_at": record.used_at,
        }


__all__ = ["SqlAlchemyUsageLedgerRepository"]
