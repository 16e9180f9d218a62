# src/perkwise/application/use_cases/reconciliation/rematch_unmatched_transactions.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Use case: Re-run reconciliation over a user's unmatched history.

Purpose:
    Back the "rematch all" admin action: after rules change, every
    unmatched, non-dismissed, settled transaction of the user is reconciled
    again. Already-linked transactions are safe to revisit.

Layer:
    application/use_cases/reconciliation
"""

from __future__ import annotations

import logging
from typing import Any, cast

from perkwise.application.schemas.dto.reconciliation import RematchOutcomeDTO
from perkwise.application.uow import UnitOfWork
from perkwise.application.use_cases.reconciliation.reconcile_transactions import (
    ReconcileTransactionsUseCase,
)
from perkwise.domain.entities.usage import Transaction
from perkwise.domain.interfaces.repositories.transactions_repository import (
    TransactionsRepository as TransactionsRepositoryPort,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class RematchUnmatchedTransactionsUseCase:
    """Load a user's unmatched transactions page by page, then reconcile them.

    Args:
        uow: Unit of work shared with the reconciliation run.
        batch_size: Page size used while loading candidates.
        warn_on_ambiguous_rules: Forwarded to the reconciliation run.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        batch_size: int = DEFAULT_BATCH_SIZE,
        warn_on_ambiguous_rules: bool = True,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._uow = uow
        self._batch_size = batch_size
        self._reconcile = ReconcileTransactionsUseCase(
            uow=uow,
            warn_on_ambiguous_rules=warn_on_ambiguous_rules,
        )

    async def execute(self, user_id: str) -> RematchOutcomeDTO:
        """Reconcile every unmatched transaction of ``user_id``.

        Candidates are collected before any of them is reconciled, so
        annotations written during the run cannot shift the paging window.
        """
        candidates = await self._load_candidates(user_id)
        logger.info(
            "credit_rematch.candidates",
            extra={"extra": {"user_id": user_id, "total_candidates": len(candidates)}},
        )
        outcome = await self._reconcile.execute(user_id, candidates)
        return RematchOutcomeDTO(total_candidates=len(candidates), outcome=outcome)

    async def _load_candidates(self, user_id: str) -> list[Transaction]:
        candidates: list[Transaction] = []
        offset = 0
        async with self._uow as tx:
            repo = _get_transactions_repo(tx)
            while True:
                page = await repo.list_unmatched_for_user(
                    user_id,
                    limit=self._batch_size,
                    offset=offset,
                )
                candidates.extend(page)
                if len(page) < self._batch_size:
                    break
                offset += self._batch_size
        return candidates


def _get_transactions_repo(tx: Any) -> TransactionsRepositoryPort:
    if hasattr(tx, "transactions_repo"):
        return cast(TransactionsRepositoryPort, tx.transactions_repo)
    repo_any = tx.get_repository(TransactionsRepositoryPort)
    return cast(TransactionsRepositoryPort, repo_any)


__all__ = ["DEFAULT_BATCH_SIZE", "RematchUnmatchedTransactionsUseCase"]
