# src/perkwise/adapters/uow/sqlalchemy_uow.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""SQLAlchemy-backed Unit of Work implementation.

Purpose:
    Implement the application-layer UnitOfWork protocol on top of an
    AsyncSession. Each ``async with`` scope opens a fresh session (one
    storage transaction) and closes it on exit, so one instance can serve
    the many short scopes of a reconciliation batch, one after another.

Layer:
    adapters/uow
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from perkwise.adapters.repositories.reference_data_repository import (
    SqlAlchemyReferenceDataRepository,
)
from perkwise.adapters.repositories.transactions_repository import (
    SqlAlchemyTransactionsRepository,
)
from perkwise.adapters.repositories.usage_ledger_repository import (
    SqlAlchemyUsageLedgerRepository,
)
from perkwise.application.uow import UnitOfWork
from perkwise.domain.exceptions.credits import LedgerPersistenceError
from perkwise.domain.interfaces.repositories.reference_data_repository import (
    ReferenceDataRepository,
)
from perkwise.domain.interfaces.repositories.transactions_repository import (
    TransactionsRepository,
)
from perkwise.domain.interfaces.repositories.usage_ledger_repository import (
    UsageLedgerRepository,
)

RepoFactory = Callable[[AsyncSession], Any]

_DEFAULT_FACTORIES: Mapping[type[Any], RepoFactory] = {
    ReferenceDataRepository: lambda s: SqlAlchemyReferenceDataRepository(session=s),
    TransactionsRepository: lambda s: SqlAlchemyTransactionsRepository(session=s),
    UsageLedgerRepository: lambda s: SqlAlchemyUsageLedgerRepository(session=s),
}


class SqlAlchemyUnitOfWork(UnitOfWork):
    """UnitOfWork over one AsyncSession per scope.

    Usage:

        async with uow as tx:
            ledger = tx.get_repository(UsageLedgerRepository)
            ...
            await tx.commit()

    Leaving a scope without committing discards its writes.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        repo_factories: Mapping[type[Any], RepoFactory] | None = None,
    ) -> None:
        """Initialize the UnitOfWork.

        Args:
            session_factory:
                Factory for the per-scope AsyncSession.
            repo_factories:
                Extra or overriding port -> factory wiring, merged over the
                defaults for the three reconciliation ports.
        """
        self._session_factory = session_factory
        self._repo_factories: dict[type[Any], RepoFactory] = {
            **_DEFAULT_FACTORIES,
            **(repo_factories or {}),
        }
        self._session: AsyncSession | None = None
        self._repos: dict[type[Any], Any] = {}
        self._finished = False

    @property
    def in_scope(self) -> bool:
        return self._session is not None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        """Open a new session for this scope.

        Raises:
            RuntimeError: If a scope is already open (nesting is unsupported).
        """
        if self._session is not None:
            raise RuntimeError("UnitOfWork scope already open; nested usage is not supported.")
        self._session = self._session_factory()
        self._repos = {}
        self._finished = False
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Roll back on error, then close the session. Exceptions propagate."""
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            if self._session is not None:
                await self._session.close()
            self._session = None
            self._repos = {}
        return None

    async def commit(self) -> None:
        """Commit the scope's transaction (no-op once committed or rolled back).

        Raises:
            RuntimeError: If no scope is open.
            LedgerPersistenceError: If the database rejects the commit.
        """
        session = self._require_session("commit")
        if self._finished:
            return
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            self._finished = True
            raise LedgerPersistenceError(
                f"commit failed: {type(exc).__name__}",
            ) from exc
        self._finished = True

    async def rollback(self) -> None:
        """Roll back the scope's transaction (no-op when nothing is pending)."""
        if self._session is None or self._finished:
            return
        self._finished = True
        await self._session.rollback()

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return the repository registered for ``repo_type``, bound to this scope.

        Raises:
            RuntimeError: If no scope is open.
            KeyError: If nothing is registered for ``repo_type``.
        """
        session = self._require_session("get_repository")
        repo = self._repos.get(repo_type)
        if repo is None:
            try:
                factory = self._repo_factories[repo_type]
            except KeyError as exc:
                raise KeyError(f"No repository factory registered for {repo_type!r}.") from exc
            repo = self._repos[repo_type] = factory(session)
        return repo

    def _require_session(self, action: str) -> AsyncSession:
        if self._session is None:
            raise RuntimeError(f"{action}() called outside of an open UnitOfWork scope.")
        return self._session
