# src/perkwise/adapters/repositories/base_repository.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""
BaseRepository: shared foundation for Perkwise repositories.

Purpose:
    Shared mechanics for all repositories:
      * Safe fetch helpers (optional, all).
      * Deterministic primary-key tie-break ordering.
      * Latency/error instrumentation with driver-error translation.

Layer: adapters / repositories

Notes:
    * No business logic, no domain decisions.
    * Repositories never commit; the unit of work owns transactions.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from perkwise.domain.exceptions.base import DomainError
from perkwise.infrastructure.observability.metrics import (
    get_db_errors_total,
    get_db_operation_duration_seconds,
)

TModel = TypeVar("TModel")


class BaseRepository(Generic[TModel]):  # noqa: UP046
    """Abstract base class for all repositories.

    Subclasses set ``_MODEL_NAME`` (metrics label) and ``_ERROR_TYPE`` (the
    domain error raised when the driver fails).
    """

    _MODEL_NAME: ClassVar[str] = "unknown"
    _ERROR_TYPE: ClassVar[type[DomainError]] = DomainError

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the target database.
        """
        self._session: AsyncSession = session
        self._metrics_hist = get_db_operation_duration_seconds()
        self._metrics_err = get_db_errors_total()

    # ------------------------------------------------------------------
    # Instrumentation
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _instrumented(self, operation: str) -> AsyncIterator[None]:
        """Time a DB operation and translate driver errors.

        Records ``db_operation_duration_seconds`` for every call and
        ``db_errors_total`` on failure. ``SQLAlchemyError`` is re-raised as
        ``_ERROR_TYPE``; any other exception propagates unchanged.

        Args:
            operation: Logical operation name used as a metrics label.
        """
        start = time.perf_counter()
        outcome = "success"
        try:
            yield
        except SQLAlchemyError as exc:
            outcome = "error"
            self._record_error(operation, exc)
            raise self._ERROR_TYPE(
                f"{operation} failed on {self._MODEL_NAME}: {type(exc).__name__}",
                details={"operation": operation, "model": self._MODEL_NAME},
            ) from exc
        except Exception as exc:
            outcome = "error"
            self._record_error(operation, exc)
            raise
        finally:
            with suppress(Exception):
                self._metrics_hist.labels(
                    operation=operation,
                    model=self._MODEL_NAME,
                    outcome=outcome,
                ).observe(time.perf_counter() - start)

    def _record_error(self, operation: str, exc: BaseException) -> None:
        with suppress(Exception):
            self._metrics_err.labels(
                operation=operation,
                model=self._MODEL_NAME,
                reason=type(exc).__name__,
            ).inc()

    # ------------------------------------------------------------------
    # Deterministic ordering utilities
    # ------------------------------------------------------------------

    @staticmethod
    def order_by_pk(
        stmt: Select[Any],
        pk_col: Any,
        *,
        ascending: bool = True,
    ) -> Select[Any]:
        """Apply ordering by primary key only.

        This is a pure tie-break ordering and should usually be composed with
        a more semantic primary sort key.
        """
        return stmt.order_by(pk_col.asc() if ascending else pk_col.desc())

    # ------------------------------------------------------------------
    # Fetch helpers
    # ------------------------------------------------------------------

    async def fetch_all(self, stmt: Select[Any]) -> list[TModel]:
        """Execute a statement and return all rows as a list."""
        res = await self._session.execute(stmt)
        return list(res.scalars().all())
