# src/perkwise/adapters/repositories/reference_data_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit reference data repository (SQLAlchemy).

Purpose:
    Read matching rules, open wallets, linked accounts and credit
    definitions from the ``credits`` schema and map them to domain entities.

Layer:
    adapters/repositories

Design:
    * Read-only; reference data is owned by admin tooling.
    * Credits are joined to their card so ``issuer_id`` is always populated.
    * Deterministic ordering by primary key for every list.
    * Driver failures surface as ``ReferenceDataError``.
    * A credit row that violates the credit invariants is skipped and logged;
      the other credits still load.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import Select, or_, select

from perkwise.adapters.repositories.base_repository import BaseRepository
from perkwise.domain.entities.credits import (
    CreditDefinition,
    LinkedAccount,
    MatchingRule,
    Wallet,
)
from perkwise.domain.exceptions.credits import (
    InvalidCreditConfigurationError,
    ReferenceDataError,
)
from perkwise.domain.interfaces.repositories.reference_data_repository import (
    ReferenceDataRepository as ReferenceDataRepositoryPort,
)
from perkwise.infrastructure.database.models.credits import (
    Card,
    CardCredit,
    CreditMatchingRule,
)
from perkwise.infrastructure.database.models.credits import (
    LinkedAccount as LinkedAccountRow,
)
from perkwise.infrastructure.database.models.credits import (
    UserWallet,
)
from perkwise.infrastructure.logging.logger import get_json_logger

_LOGGER = get_json_logger(__name__)


class SqlAlchemyReferenceDataRepository(
    BaseRepository[Any],
    ReferenceDataRepositoryPort,
):
    """SQLAlchemy-backed reference data reader."""

    _MODEL_NAME = "credits_reference_data"
    _ERROR_TYPE = ReferenceDataError

    async def list_matching_rules(self) -> Sequence[MatchingRule]:
        async with self._instrumented("list_matching_rules"):
            stmt = self.order_by_pk(select(CreditMatchingRule), CreditMatchingRule.id)
            rows = await self.fetch_all(stmt)
        return [self._rule_to_domain(row) for row in rows]

    async def list_open_wallets(self, user_id: str) -> Sequence[Wallet]:
        async with self._instrumented("list_open_wallets"):
            stmt = self.order_by_pk(
                select(UserWallet).where(
                    UserWallet.user_id == user_id,
                    UserWallet.closed_date.is_(None),
                ),
                UserWallet.id,
            )
            rows = await self.fetch_all(stmt)
        return [self._wallet_to_domain(row) for row in rows]

    async def list_linked_accounts(self, user_id: str) -> Sequence[LinkedAccount]:
        async with self._instrumented("list_linked_accounts"):
            stmt = self.order_by_pk(
                select(LinkedAccountRow).where(LinkedAccountRow.user_id == user_id),
                LinkedAccountRow.id,
            )
            rows = await self.fetch_all(stmt)
        return [
            LinkedAccount(id=row.id, user_id=row.user_id, wallet_id=row.wallet_id) for row in rows
        ]

    async def list_credits(
        self,
        *,
        card_ids: Collection[UUID],
        credit_ids: Collection[UUID],
    ) -> Sequence[CreditDefinition]:
        """Return active credits on ``card_ids`` plus the credits ``credit_ids``.

        Rule-referenced credits are returned even when their card is not in
        ``card_ids``; name/issuer resolution needs them.
        """
        if not card_ids and not credit_ids:
            return []

        filters = []
        if card_ids:
            filters.append(CardCredit.card_id.in_(list(card_ids)))
        if credit_ids:
            filters.append(CardCredit.id.in_(list(credit_ids)))

        async with self._instrumented("list_credits"):
            stmt = self._credits_stmt().where(CardCredit.is_active.is_(True), or_(*filters))
            result = await self._session.execute(stmt)
            rows = result.all()
        return self._credits_to_domain(rows)

    async def list_active_credits(self) -> Sequence[CreditDefinition]:
        async with self._instrumented("list_active_credits"):
            stmt = self._credits_stmt().where(CardCredit.is_active.is_(True))
            result = await self._session.execute(stmt)
            rows = result.all()
        return self._credits_to_domain(rows)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _credits_stmt(self) -> Select[Any]:
        stmt = select(CardCredit, Card.issuer_id).join(Card, Card.id == CardCredit.card_id)
        return self.order_by_pk(stmt, CardCredit.id)

    @staticmethod
    def _rule_to_domain(row: CreditMatchingRule) -> MatchingRule:
        return MatchingRule(
            id=row.id,
            credit_id=row.credit_id,
            pattern=row.pattern,
            match_amount_cents=row.match_amount_cents,
        )

    @staticmethod
    def _wallet_to_domain(row: UserWallet) -> Wallet:
        return Wallet(
            id=row.id,
            card_id=row.card_id,
            user_id=row.user_id,
            approval_date=row.approval_date,
            closed_date=row.closed_date,
        )

    @classmethod
    def _credits_to_domain(cls, rows: Sequence[Any]) -> list[CreditDefinition]:
        credits: list[CreditDefinition] = []
        for row, issuer_id in rows:
            try:
                credits.append(cls._credit_to_domain(row, issuer_id))
            except InvalidCreditConfigurationError as exc:
                _LOGGER.warning(
                    "credit_reference.invalid_credit_skipped",
                    extra={"extra": {"credit_id": str(row.id), "error": str(exc)}},
                )
        return credits

    @staticmethod
    def _credit_to_domain(row: CardCredit, issuer_id: UUID | None) -> CreditDefinition:
        """Map a credit row plus its card's issuer to a domain entity.

        Raises:
            InvalidCreditConfigurationError: If the stored row violates the
                credit invariants (e.g. an unknown reset cycle).
        """
        return CreditDefinition(
            id=row.id,
            card_id=row.card_id,
            name=row.name,
            reset_cycle=row.reset_cycle,  # type: ignore[arg-type]
            credit_count=row.credit_count,
            issuer_id=issuer_id,
            brand_name=row.brand_name,
            reset_day_of_month=row.reset_day_of_month,
            default_value_cents=row.default_value_cents,
            is_active=row.is_active,
        )


__all__ = ["SqlAlchemyReferenceDataRepository"]
