# src/perkwise/application/use_cases/reconciliation/reconcile_transactions.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Use case: Reconcile a batch of transactions against credit rules.

Purpose:
    Match a user's persisted transactions to credit matching rules and
    record the resulting usage (or clawback) in the usage ledger.

Flow:
    1. Load reference data once per batch (rules, open wallets, linked
       accounts, credits). Any failure aborts the batch with zero counts.
    2. For each transaction, in input order:
        - skip pending transactions, unresolved wallets, unmatched text
          and rules with no concrete credit on the wallet's card;
        - compute the credit period;
        - annotate the transaction (own unit of work, committed first);
        - update the ledger and insert the transaction link (one unit of
          work; rolled back when the transaction is already linked).
    3. Per-transaction failures are collected as messages and the batch
       continues.

Idempotence:
    A transaction that already has a ledger link is counted and left
    untouched. The storage-level UNIQUE constraint on the link's
    transaction id is the backstop for concurrent runs; a conflicting
    insert is treated as already processed.

Layer:
    application/use_cases/reconciliation
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Mapping, Sequence
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, TypeVar, cast
from uuid import UUID, uuid4

from perkwise.application.schemas.dto.reconciliation import ReconciliationOutcomeDTO
from perkwise.application.uow import UnitOfWork, run_in_uow
from perkwise.domain.entities.credits import CreditDefinition, MatchingRule, Wallet
from perkwise.domain.entities.usage import Transaction, UsageRecord, UsageTransactionLink
from perkwise.domain.exceptions.credits import ReferenceDataError
from perkwise.domain.interfaces.repositories.reference_data_repository import (
    ReferenceDataRepository as ReferenceDataRepositoryPort,
)
from perkwise.domain.interfaces.repositories.transactions_repository import (
    TransactionsRepository as TransactionsRepositoryPort,
)
from perkwise.domain.interfaces.repositories.usage_ledger_repository import (
    UsageLedgerRepository as UsageLedgerRepositoryPort,
)
from perkwise.domain.services.clawback import plan_clawback
from perkwise.domain.services.credit_period import CreditPeriod, calculate_credit_period
from perkwise.domain.services.credit_resolution import CreditCatalog, resolve_credit
from perkwise.domain.services.pattern_matcher import find_matching_rules, order_rules
from perkwise.domain.services.slot_allocator import plan_credit_allocation
from perkwise.infrastructure.logging.logger import (
    get_json_logger,
    reset_run_context,
    set_run_context,
)
from perkwise.infrastructure.observability.metrics import (
    get_reconcile_ambiguous_rules_total,
    get_reconcile_batch_duration_seconds,
    get_reconcile_transactions_total,
)

logger = get_json_logger(__name__)

T = TypeVar("T")

_COUNTED_OUTCOMES = frozenset({"matched", "clawback", "already_processed"})


@dataclass(frozen=True, slots=True)
class _ReferenceData:
    """Read-only lookups shared by every transaction of one batch."""

    rules: tuple[MatchingRule, ...]
    wallets_by_id: Mapping[UUID, Wallet]
    wallet_id_by_account_id: Mapping[UUID, UUID]
    catalog: CreditCatalog


@dataclass(frozen=True, slots=True)
class _TransactionResult:
    outcome: str
    is_clawback: bool = False
    error: str | None = None

    @property
    def counted(self) -> bool:
        return self.outcome in _COUNTED_OUTCOMES


class ReconcileTransactionsUseCase:
    """Reconcile transactions for a single user.

    Args:
        uow: Unit of work; entered once for reference data and then twice per
            matched transaction (annotation, ledger update).
        warn_on_ambiguous_rules: Log a warning when several rules match one
            transaction. The metric is recorded regardless.

    Returns:
        ReconciliationOutcomeDTO with matched/clawback counts and error messages.
    """

    def __init__(self, *, uow: UnitOfWork, warn_on_ambiguous_rules: bool = True) -> None:
        self._uow = uow
        self._warn_on_ambiguous_rules = warn_on_ambiguous_rules

    async def execute(
        self,
        user_id: str,
        transactions: Sequence[Transaction],
    ) -> ReconciliationOutcomeDTO:
        """Reconcile ``transactions`` in input order.

        Never raises for per-transaction problems; see the module docstring.
        """
        tokens = set_run_context(run_id=uuid4().hex, user_id=user_id)
        try:
            return await self._reconcile(user_id, transactions)
        finally:
            reset_run_context(tokens)

    async def _reconcile(
        self,
        user_id: str,
        transactions: Sequence[Transaction],
    ) -> ReconciliationOutcomeDTO:
        start = time.perf_counter()
        logger.info(
            "credit_reconcile.start",
            extra={"extra": {"transactions": len(transactions)}},
        )

        if not transactions:
            return ReconciliationOutcomeDTO()

        try:
            reference = await self._load_reference_data(user_id)
        except ReferenceDataError as exc:
            logger.error("credit_reconcile.aborted", extra={"extra": {"error": str(exc)}})
            self._observe_batch("aborted", start)
            return ReconciliationOutcomeDTO(errors=(str(exc),))

        matched = 0
        clawbacks = 0
        errors: list[str] = []
        for transaction in transactions:
            result = await self._process(transaction, reference)
            self._count(result.outcome)
            if result.error is not None:
                errors.append(result.error)
            elif result.counted:
                if result.is_clawback:
                    clawbacks += 1
                else:
                    matched += 1

        logger.info(
            "credit_reconcile.done",
            extra={
                "extra": {
                    "transactions": len(transactions),
                    "matched": matched,
                    "clawbacks": clawbacks,
                    "errors": len(errors),
                }
            },
        )
        self._observe_batch("partial" if errors else "success", start)
        return ReconciliationOutcomeDTO(
            matched=matched,
            clawbacks=clawbacks,
            errors=tuple(errors),
        )

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    async def _load_reference_data(self, user_id: str) -> _ReferenceData:
        async with self._uow as tx:
            repo = _get_reference_data_repo(tx)
            rules = await _load("matching rules", repo.list_matching_rules())
            wallets = await _load("wallets", repo.list_open_wallets(user_id))
            accounts = await _load("linked accounts", repo.list_linked_accounts(user_id))
            credits = await _load(
                "credits",
                repo.list_credits(
                    card_ids={w.card_id for w in wallets},
                    credit_ids={r.credit_id for r in rules},
                ),
            )

        return _ReferenceData(
            rules=order_rules(rules),
            wallets_by_id={w.id: w for w in wallets},
            wallet_id_by_account_id={
                a.id: a.wallet_id for a in accounts if a.wallet_id is not None
            },
            catalog=CreditCatalog.build(credits),
        )

    # ------------------------------------------------------------------
    # Per-transaction state machine
    # ------------------------------------------------------------------

    async def _process(
        self,
        transaction: Transaction,
        reference: _ReferenceData,
    ) -> _TransactionResult:
        if transaction.pending:
            return _TransactionResult("skipped_pending")

        wallet = _resolve_wallet(transaction, reference)
        if wallet is None:
            return _TransactionResult("skipped_no_wallet")

        rules = find_matching_rules(transaction, reference.rules)
        if not rules:
            return _TransactionResult("skipped_no_rule")
        if len(rules) > 1:
            self._report_ambiguous(transaction, rules)
        rule = rules[0]

        credit = resolve_credit(rule, wallet, reference.catalog)
        if credit is None:
            return _TransactionResult("skipped_no_credit")

        is_clawback = transaction.is_refund
        try:
            period = calculate_credit_period(
                transaction.effective_date,
                credit.reset_cycle,
                approval_date=wallet.approval_date,
                reset_day_of_month=credit.reset_day_of_month,
            )
            await self._annotate(transaction, credit=credit, rule=rule, is_clawback=is_clawback)
            inserted = await self._record_usage(
                transaction,
                wallet=wallet,
                credit=credit,
                period=period,
                is_clawback=is_clawback,
            )
        except Exception as exc:  # noqa: BLE001
            message = f"Error processing transaction {transaction.id}: {exc}"
            logger.warning(
                "credit_reconcile.transaction_failed",
                exc_info=True,
                extra={
                    "extra": {
                        "transaction_id": str(transaction.id),
                        "credit_id": str(credit.id),
                        "error_type": type(exc).__name__,
                    }
                },
            )
            return _TransactionResult("error", is_clawback=is_clawback, error=message)

        if not inserted:
            return _TransactionResult("already_processed", is_clawback=is_clawback)
        return _TransactionResult(
            "clawback" if is_clawback else "matched",
            is_clawback=is_clawback,
        )

    async def _annotate(
        self,
        transaction: Transaction,
        *,
        credit: CreditDefinition,
        rule: MatchingRule,
        is_clawback: bool,
    ) -> None:
        async def _write(tx: UnitOfWork) -> None:
            await _get_transactions_repo(tx).annotate_match(
                transaction_id=transaction.id,
                matched_credit_id=credit.id,
                matched_rule_id=rule.id,
                is_clawback=is_clawback,
            )

        await run_in_uow(self._uow, _write)

    async def _record_usage(
        self,
        transaction: Transaction,
        *,
        wallet: Wallet,
        credit: CreditDefinition,
        period: CreditPeriod,
        is_clawback: bool,
    ) -> bool:
        """Apply the ledger update and link the transaction atomically.

        Returns:
            True when the ledger changed; False when the transaction was
            already linked (before or during this unit of work).
        """
        async with self._uow as tx:
            ledger = _get_usage_ledger_repo(tx)
            if await ledger.link_exists(transaction.id):
                await tx.rollback()
                return False

            existing = await ledger.list_period_usage(
                user_wallet_id=wallet.id,
                credit_id=credit.id,
                period_start=period.start,
            )
            if is_clawback:
                usage_id, link_amount_cents = await _apply_clawback(
                    ledger,
                    transaction,
                    wallet=wallet,
                    credit=credit,
                    period=period,
                    existing=existing,
                )
            else:
                usage_id, link_amount_cents = await _apply_allocation(
                    ledger,
                    transaction,
                    wallet=wallet,
                    credit=credit,
                    period=period,
                    existing=existing,
                )

            inserted = await ledger.insert_link(
                UsageTransactionLink(
                    usage_id=usage_id,
                    transaction_id=transaction.id,
                    amount_cents=link_amount_cents,
                )
            )
            if not inserted:
                # Another run linked this transaction first; discard our update.
                await tx.rollback()
                return False

            await tx.commit()
        return True

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def _report_ambiguous(self, transaction: Transaction, rules: Sequence[MatchingRule]) -> None:
        with suppress(Exception):
            get_reconcile_ambiguous_rules_total().inc()
        if self._warn_on_ambiguous_rules:
            logger.warning(
                "credit_reconcile.ambiguous_rules",
                extra={
                    "extra": {
                        "transaction_id": str(transaction.id),
                        "rule_ids": [str(r.id) for r in rules],
                        "selected_rule_id": str(rules[0].id),
                    }
                },
            )

    @staticmethod
    def _count(outcome: str) -> None:
        with suppress(Exception):
            get_reconcile_transactions_total().labels(outcome=outcome).inc()

    @staticmethod
    def _observe_batch(outcome: str, start: float) -> None:
        with suppress(Exception):
            get_reconcile_batch_duration_seconds().labels(outcome=outcome).observe(
                time.perf_counter() - start
            )


async def reconcile(
    uow: UnitOfWork,
    user_id: str,
    transactions: Sequence[Transaction],
    *,
    warn_on_ambiguous_rules: bool = True,
) -> ReconciliationOutcomeDTO:
    """Reconcile ``transactions`` for ``user_id`` (library entry point).

    Callers fetch and persist transactions first; this only updates existing
    rows and the usage ledger. Treat a non-empty ``errors`` as a warning.
    """
    use_case = ReconcileTransactionsUseCase(
        uow=uow,
        warn_on_ambiguous_rules=warn_on_ambiguous_rules,
    )
    return await use_case.execute(user_id, transactions)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


async def _load(what: str, call: Awaitable[T]) -> T:
    try:
        return await call
    except Exception as exc:  # noqa: BLE001
        raise ReferenceDataError(
            f"Failed to load {what}: {exc}",
            details={"what": what},
        ) from exc


def _resolve_wallet(transaction: Transaction, reference: _ReferenceData) -> Wallet | None:
    if transaction.linked_account_id is None:
        return None
    wallet_id = reference.wallet_id_by_account_id.get(transaction.linked_account_id)
    if wallet_id is None:
        return None
    return reference.wallets_by_id.get(wallet_id)


async def _apply_allocation(
    ledger: UsageLedgerRepositoryPort,
    transaction: Transaction,
    *,
    wallet: Wallet,
    credit: CreditDefinition,
    period: CreditPeriod,
    existing: Sequence[UsageRecord],
) -> tuple[UUID, int]:
    allocation = plan_credit_allocation(
        existing=existing,
        credit=credit,
        amount_cents=transaction.amount_cents,
    )
    if allocation.target is not None:
        await ledger.update_amount_used(
            usage_id=allocation.target.id,
            amount_used=allocation.amount_used,
        )
        return allocation.target.id, allocation.link_amount_cents

    created = await ledger.create_usage(
        UsageRecord(
            id=uuid4(),
            user_wallet_id=wallet.id,
            credit_id=credit.id,
            period_start=period.start,
            period_end=period.end,
            slot_number=allocation.slot_number,
            amount_used=allocation.amount_used,
            auto_detected=True,
            used_at=transaction.effective_date,
        )
    )
    return created.id, allocation.link_amount_cents


async def _apply_clawback(
    ledger: UsageLedgerRepositoryPort,
    transaction: Transaction,
    *,
    wallet: Wallet,
    credit: CreditDefinition,
    period: CreditPeriod,
    existing: Sequence[UsageRecord],
) -> tuple[UUID, int]:
    adjustment = plan_clawback(existing=existing, amount_cents=transaction.amount_cents)
    if adjustment.target is not None:
        await ledger.update_amount_used(
            usage_id=adjustment.target.id,
            amount_used=adjustment.amount_used,
        )
        return adjustment.target.id, adjustment.link_amount_cents

    # Nothing to reduce; a zero-amount placeholder anchors the clawback link.
    placeholder = await ledger.create_usage(
        UsageRecord(
            id=uuid4(),
            user_wallet_id=wallet.id,
            credit_id=credit.id,
            period_start=period.start,
            period_end=period.end,
            slot_number=1,
            amount_used=adjustment.amount_used,
            auto_detected=True,
            is_clawback=True,
            used_at=transaction.effective_date,
        )
    )
    return placeholder.id, adjustment.link_amount_cents


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


def _get_usage_ledger_repo(tx: Any) -> UsageLedgerRepositoryPort:
    if hasattr(tx, "usage_ledger_repo"):
        return cast(UsageLedgerRepositoryPort, tx.usage_ledger_repo)
    repo_any = tx.get_repository(UsageLedgerRepositoryPort)
    return cast(UsageLedgerRepositoryPort, repo_any)


__all__ = ["ReconcileTransactionsUseCase", "reconcile"]
