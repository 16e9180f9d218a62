# src/perkwise/tasks/cli.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Perkwise CLI: operational reconciliation commands.

Commands:
    reconcile rematch            Re-run reconciliation over a user's unmatched history.
    reconcile potential-credits  List unmatched transactions that look like benefit credits.

Environment:
    DATABASE_URL                        Async SQLAlchemy URL.
    RECONCILE_BATCH_SIZE                Page size for loading transactions.
    RECONCILE_WARN_ON_AMBIGUOUS_RULES   Warn when several rules match a transaction.
"""

from __future__ import annotations

import asyncio
import json

import typer

from perkwise.adapters.dependencies.credits_uow import get_credits_uow
from perkwise.application.use_cases.reconciliation.find_potential_credit_transactions import (
    FindPotentialCreditTransactionsUseCase,
)
from perkwise.application.use_cases.reconciliation.rematch_unmatched_transactions import (
    RematchUnmatchedTransactionsUseCase,
)
from perkwise.config.settings import get_settings
from perkwise.infrastructure.database.session import (
    dispose_engine,
    init_engine_and_sessionmaker,
)
from perkwise.infrastructure.logging.logger import configure_root_logging, get_json_logger

app = typer.Typer(add_completion=False, no_args_is_help=True)
reconcile_app = typer.Typer(no_args_is_help=True)
app.add_typer(reconcile_app, name="reconcile")

log = get_json_logger(__name__)


@app.callback()
def main() -> None:
    """Configure logging and the database engine before any command runs."""
    settings = get_settings()
    configure_root_logging(settings.log_level)
    init_engine_and_sessionmaker(settings)


@reconcile_app.command("rematch")
def rematch(
    user_id: str = typer.Option(..., help="User whose transactions are reconciled."),  # noqa: B008
) -> None:
    """Reconcile every unmatched, non-dismissed, settled transaction of a user.

    Per-transaction errors are reported as warnings; the exit code stays 0.
    """
    settings = get_settings()

    async def _run() -> None:
        try:
            use_case = RematchUnmatchedTransactionsUseCase(
                uow=get_credits_uow(),
                batch_size=settings.reconcile_batch_size,
                warn_on_ambiguous_rules=settings.reconcile_warn_on_ambiguous_rules,
            )
            result = await use_case.execute(user_id)
        finally:
            await dispose_engine()

        outcome = result.outcome
        if outcome.has_errors:
            log.warning(
                "rematch.completed_with_errors",
                extra={"extra": {"errors": list(outcome.errors)}},
            )
        typer.echo(
            json.dumps(
                {
                    "user_id": user_id,
                    "total_candidates": result.total_candidates,
                    "matched": outcome.matched,
                    "clawbacks": outcome.clawbacks,
                    "errors": list(outcome.errors),
                }
            )
        )

    asyncio.run(_run())


@reconcile_app.command("potential-credits")
def potential_credits(
    user_id: str = typer.Option(..., help="User whose transactions are scanned."),  # noqa: B008
) -> None:
    """Print unmatched credit transactions that resemble known benefits."""
    settings = get_settings()

    async def _run() -> None:
        try:
            use_case = FindPotentialCreditTransactionsUseCase(
                uow=get_credits_uow(),
                batch_size=settings.reconcile_batch_size,
            )
            result = await use_case.execute(user_id)
        finally:
            await dispose_engine()

        for txn in result.transactions:
            typer.echo(
                json.dumps(
                    {
                        "transaction_id": str(txn.id),
                        "date": txn.date.isoformat(),
                        "amount_cents": txn.amount_cents,
                        "description": txn.original_description or txn.name,
                    }
                )
            )
        log.info(
            "potential_credits.done",
            extra={"extra": {"user_id": user_id, "found": len(result.transactions)}},
        )

    asyncio.run(_run())


if __name__ == "__main__":
    app()
