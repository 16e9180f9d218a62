# tests/unit/adapters/uow/test_sqlalchemy_uow_credits.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from perkwise.adapters.repositories.reference_data_repository import (
    SqlAlchemyReferenceDataRepository,
)
from perkwise.adapters.repositories.transactions_repository import (
    SqlAlchemyTransactionsRepository,
)
from perkwise.adapters.repositories.usage_ledger_repository import (
    SqlAlchemyUsageLedgerRepository,
)
from perkwise.adapters.uow.sqlalchemy_uow import SqlAlchemyUnitOfWork
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


class _FakeAsyncSession:
    """Session stand-in exposing only commit, rollback and close."""

    def __init__(self, *, fail_commit: bool = False) -> None:
        self.committed = False
        self.rolled_back = False
        self.closed = False
        self._fail_commit = fail_commit

    async def commit(self) -> None:
        if self._fail_commit:
            raise OperationalError("COMMIT", {}, Exception("serialization failure"))
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def close(self) -> None:
        self.closed = True


class _SessionFactory:
    def __init__(self, **kwargs: bool) -> None:
        self.sessions: list[_FakeAsyncSession] = []
        self._kwargs = kwargs

    def __call__(self) -> _FakeAsyncSession:
        session = _FakeAsyncSession(**self._kwargs)
        self.sessions.append(session)
        return session


@pytest.mark.asyncio
async def test_uow_resolves_reconciliation_repositories() -> None:
    uow = SqlAlchemyUnitOfWork(session_factory=_SessionFactory())  # type: ignore[arg-type]

    async with uow as tx:
        reference = tx.get_repository(ReferenceDataRepository)
        assert isinstance(reference, SqlAlchemyReferenceDataRepository)
        assert isinstance(
            tx.get_repository(TransactionsRepository), SqlAlchemyTransactionsRepository
        )
        assert isinstance(
            tx.get_repository(UsageLedgerRepository), SqlAlchemyUsageLedgerRepository
        )
        assert tx.get_repository(ReferenceDataRepository) is reference


@pytest.mark.asyncio
async def test_each_scope_gets_a_fresh_session() -> None:
    factory = _SessionFactory()
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    async with uow as tx:
        first = tx.get_repository(UsageLedgerRepository)
        await tx.commit()
    async with uow as tx:
        second = tx.get_repository(UsageLedgerRepository)

    assert first is not second
    assert len(factory.sessions) == 2
    assert factory.sessions[0].committed and factory.sessions[0].closed
    assert not factory.sessions[1].committed and factory.sessions[1].closed


@pytest.mark.asyncio
async def test_error_inside_scope_rolls_back_and_propagates() -> None:
    factory = _SessionFactory()
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    with pytest.raises(ValueError):
        async with uow:
            raise ValueError("boom")

    assert factory.sessions[0].rolled_back
    assert factory.sessions[0].closed


@pytest.mark.asyncio
async def test_rollback_after_commit_is_a_no_op() -> None:
    factory = _SessionFactory()
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    async with uow as tx:
        await tx.commit()
        await tx.rollback()

    assert factory.sessions[0].committed
    assert not factory.sessions[0].rolled_back


@pytest.mark.asyncio
async def test_failed_commit_raises_ledger_persistence_error() -> None:
    factory = _SessionFactory(fail_commit=True)
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    with pytest.raises(LedgerPersistenceError, match="commit failed: OperationalError"):
        async with uow as tx:
            await tx.commit()


@pytest.mark.asyncio
async def test_nested_scope_is_rejected() -> None:
    uow = SqlAlchemyUnitOfWork(session_factory=_SessionFactory())  # type: ignore[arg-type]

    async with uow:
        with pytest.raises(RuntimeError):
            async with uow:
                pass


def test_repository_access_requires_open_scope() -> None:
    uow = SqlAlchemyUnitOfWork(session_factory=_SessionFactory())  # type: ignore[arg-type]

    with pytest.raises(RuntimeError):
        uow.get_repository(UsageLedgerRepository)


@pytest.mark.asyncio
async def test_unknown_port_raises_key_error() -> None:
    uow = SqlAlchemyUnitOfWork(session_factory=_SessionFactory())  # type: ignore[arg-type]

    async with uow as tx:
        with pytest.raises(KeyError):
            tx.get_repository(object)


@pytest.mark.asyncio
async def test_in_scope_tracks_the_open_scope() -> None:
    uow = SqlAlchemyUnitOfWork(session_factory=_SessionFactory())  # type: ignore[arg-type]

    assert not uow.in_scope
    async with uow as tx:
        assert tx.in_scope
    assert not uow.in_scope

    with pytest.raises(ValueError):
        async with uow:
            raise ValueError("boom")
    assert not uow.in_scope
