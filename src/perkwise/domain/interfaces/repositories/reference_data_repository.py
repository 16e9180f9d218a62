# src/perkwise/domain/interfaces/repositories/reference_data_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Reference data repository interface.

Purpose:
    Read-only access to the reference data reconciliation needs: matching
    rules, wallets, linked accounts and credit definitions.

Layer:
    domain/interfaces/repositories

Notes:
    Implementations must translate driver errors into
    :class:`~perkwise.domain.exceptions.credits.ReferenceDataError`.
    Reference data is owned by external admin tooling; this subsystem never
    writes it.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Protocol
from uuid import UUID

from perkwise.domain.entities.credits import (
    CreditDefinition,
    LinkedAccount,
    MatchingRule,
    Wallet,
)


class ReferenceDataRepository(Protocol):
    """Protocol for repositories exposing credit reference data."""

    async def list_matching_rules(self) -> Sequence[MatchingRule]:
        """Return every matching rule."""

    async def list_open_wallets(self, user_id: str) -> Sequence[Wallet]:
        """Return the user's wallets that have not been closed."""

    async def list_linked_accounts(self, user_id: str) -> Sequence[LinkedAccount]:
        """Return the user's linked bank accounts."""

    async def list_credits(
        self,
        *,
        card_ids: Collection[UUID],
        credit_ids: Collection[UUID],
    ) -> Sequence[CreditDefinition]:
        """Return active credits on ``card_ids`` plus the credits ``credit_ids``.

        Args:
            card_ids:
                Cards held in the user's wallets.
            credit_ids:
                Credits referenced by matching rules, which may sit on cards
                the user does not hold (needed for name/issuer resolution).

        Returns:
            Active credit definitions, each with its card's issuer populated.
        """

    async def list_active_credits(self) -> Sequence[CreditDefinition]:
        """Return every active credit definition."""


__all__ = ["ReferenceDataRepository"]
