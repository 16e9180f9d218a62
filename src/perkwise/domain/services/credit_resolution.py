# src/perkwise/domain/services/credit_resolution.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit resolution across card products.

Purpose:
    Map a matched rule onto the concrete credit definition carried by the
    card in the transaction's wallet. A rule is authored once against one
    credit (e.g. "Uber Credit") but applies to every card of the same issuer
    carrying a credit with the same name; it never crosses issuers.

Layer:
    domain/services

Notes:
    Lookup maps are built once per reconciliation batch and are read-only
    afterwards; nothing here is module-level state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from uuid import UUID

from perkwise.domain.entities.credits import CreditDefinition, MatchingRule, Wallet


@dataclass(frozen=True, slots=True)
class CreditCatalog:
    """Per-batch lookup of credit definitions.

    Attributes:
        by_id:
            Credit definitions keyed by id.
        by_card_id:
            Credit definitions grouped by owning card, in id order.
    """

    by_id: Mapping[UUID, CreditDefinition] = field(default_factory=dict)
    by_card_id: Mapping[UUID, tuple[CreditDefinition, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, credits: Iterable[CreditDefinition]) -> CreditCatalog:
        """Index active credit definitions by id and by card."""
        by_id: dict[UUID, CreditDefinition] = {}
        grouped: dict[UUID, list[CreditDefinition]] = {}
        for credit in sorted(credits, key=lambda c: str(c.id)):
            if not credit.is_active:
                continue
            by_id[credit.id] = credit
            grouped.setdefault(credit.card_id, []).append(credit)
        return cls(
            by_id=by_id,
            by_card_id={card_id: tuple(items) for card_id, items in grouped.items()},
        )


def resolve_credit(
    rule: MatchingRule,
    wallet: Wallet,
    catalog: CreditCatalog,
) -> CreditDefinition | None:
    """Resolve the concrete credit on ``wallet``'s card for ``rule``.

    Args:
        rule:
            Matched rule.
        wallet:
            Wallet owning the transaction.
        catalog:
            Per-batch credit lookup.

    Returns:
        The credit on the wallet's card whose name and issuer equal those of
        the rule's credit, or None when the card carries no such credit.
        When the rule's credit has no known issuer only that exact credit is
        accepted, and only if it sits on the wallet's card.
    """
    rule_credit = catalog.by_id.get(rule.credit_id)
    if rule_credit is None:
        return None

    if rule_credit.card_id == wallet.card_id:
        return rule_credit
    if rule_credit.issuer_id is None:
        return None

    for credit in catalog.by_card_id.get(wallet.card_id, ()):
        if credit.name == rule_credit.name and credit.issuer_id == rule_credit.issuer_id:
            return credit
    return None


__all__ = ["CreditCatalog", "resolve_credit"]
