# src/perkwise/adapters/dependencies/credits_uow.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Credit reconciliation UnitOfWork wiring.

Layer:
    adapters/dependencies
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from perkwise.adapters.uow import SqlAlchemyUnitOfWork
from perkwise.infrastructure.database.session import get_sessionmaker


def get_credits_uow() -> SqlAlchemyUnitOfWork:
    """Return a new UnitOfWork bound to the global async_sessionmaker.

    One instance per use-case invocation; it may be entered repeatedly.
    """
    session_factory: async_sessionmaker[AsyncSession] = get_sessionmaker()
    return SqlAlchemyUnitOfWork(session_factory=session_factory)
