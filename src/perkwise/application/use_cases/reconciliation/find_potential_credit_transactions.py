# src/perkwise/application/use_cases/reconciliation/find_potential_credit_transactions.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Use case: List unmatched transactions that look like benefit credits.

Purpose:
    Help rule authors find statement credits no matching rule covers yet.
    Read-only; nothing is annotated or recorded.

Layer:
    application/use_cases/reconciliation
"""

from __future__ import annotations

import logging
from typing import Any, cast

from perkwise.application.schemas.dto.reconciliation import PotentialCreditTransactionsDTO
from perkwise.application.uow import UnitOfWork
from perkwise.domain.entities.usage import Transaction
from perkwise.domain.interfaces.repositories.reference_data_repository import (
    ReferenceDataRepository as ReferenceDataRepositoryPort,
)
from perkwise.domain.interfaces.repositories.transactions_repository import (
    TransactionsRepository as TransactionsRepositoryPort,
)
from perkwise.domain.services.potential_credits import (
    credit_brand_names,
    is_potential_credit_transaction,
)

logger = logging.getLogger(__name__)


class FindPotentialCreditTransactionsUseCase:
    """Find a user's unmatched credit transactions that resemble known benefits."""

    def __init__(self, *, uow: UnitOfWork, batch_size: int = 1000) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._uow = uow
        self._batch_size = batch_size

    async def execute(self, user_id: str) -> PotentialCreditTransactionsDTO:
        async with self._uow as tx:
            reference_repo = _get_reference_data_repo(tx)
            transactions_repo = _get_transactions_repo(tx)

            brand_names = credit_brand_names(await reference_repo.list_active_credits())

            found: list[Transaction] = []
            offset = 0
            while True:
                page = await transactions_repo.list_unmatched_for_user(
                    user_id,
                    limit=self._batch_size,
                    offset=offset,
                )
                found.extend(t for t in page if is_potential_credit_transaction(t, brand_names))
                if len(page) < self._batch_size:
                    break
                offset += self._batch_size

        logger.info(
            "credit_potential.done",
            extra={"extra": {"user_id": user_id, "found": len(found)}},
        )
        return PotentialCreditTransactionsDTO(brand_names=brand_names, transactions=tuple(found))


def _get_reference_data_repo(tx: Any) -> ReferenceDataRepositoryPort:
    if hasattr(tx, "reference_data_repo"):
        return cast(ReferenceDataRepositoryPort, tx.reference_data_repo)
    repo_any = tx.get_repository(ReferenceDataRepositoryPort)
    return cast(ReferenceDataRepositoryPort, repo_any)


def _get_transactions_repo(tx: Any) -> TransactionsRepositoryPort:
    if hasattr(tx, "transactions_repo"):
        return cast(TransactionsRepositoryPort, tx.transactions_repo)
    repo_any = tx.get_repository(TransactionsRepositoryPort)
    return cast(TransactionsRepositoryPort, repo_any)


__all__ = ["FindPotentialCreditTransactionsUseCase"]
