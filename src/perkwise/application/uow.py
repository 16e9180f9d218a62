# src/perkwise/application/uow.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Unit of Work (Application Layer).

Purpose:
    Define the transactional boundary reconciliation use cases run their
    reads and ledger writes in.

Scope contract:
    * One UnitOfWork instance serves a whole batch as a series of short,
      sequential scopes. Every ``async with`` opens a fresh storage
      transaction; leaving it without ``commit()`` discards its writes.
    * Scopes never nest. ``in_scope`` reports whether one is open, and
      entering an open instance raises ``RuntimeError``.
    * Repositories are only valid inside the scope that produced them.

Layer:
    application
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any, Protocol, TypeVar

TResult = TypeVar("TResult")


class UnitOfWork(Protocol):
    """Re-enterable, non-nesting transactional scope."""

    @property
    def in_scope(self) -> bool:
        """True between ``__aenter__`` and ``__aexit__``."""
        raise NotImplementedError

    async def __aenter__(self) -> UnitOfWork:
        """Open a new scope.

        Raises:
            RuntimeError: If a scope is already open on this instance.
        """
        raise NotImplementedError

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Close the scope; uncommitted writes are discarded."""
        raise NotImplementedError

    async def commit(self) -> None:
        raise NotImplementedError

    async def rollback(self) -> None:
        raise NotImplementedError

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return the repository for port ``repo_type``, bound to the open scope."""
        raise NotImplementedError


async def run_in_uow(  # noqa: UP047
    uow: UnitOfWork,
    fn: Callable[[UnitOfWork], Awaitable[TResult]],
) -> TResult:
    """Run ``fn`` in a new scope of ``uow``; commit on success, roll back on error.

    Raises:
        RuntimeError: If ``uow`` already has an open scope.
        Exception: Whatever ``fn`` raises, after rollback.
    """
    if uow.in_scope:
        raise RuntimeError("run_in_uow() needs a UnitOfWork with no open scope.")
    async with uow as tx:
        try:
            result = await fn(tx)
        except Exception:
            await tx.rollback()
            raise
        await tx.commit()
        return result
