# src/perkwise/infrastructure/database/models/base.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Declarative Base and persistence mixins for Perkwise.

This module defines:
    - A project-wide SQLAlchemy Declarative Base with deterministic naming
      conventions (for stable Alembic diffs).
    - A UTC audit-timestamp mixin and a concise repr mixin (no domain logic).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

__all__ = [
    "CREDITS_SCHEMA",
    "Base",
    "ReprMixin",
    "TimestampMixin",
    "metadata",
    "now_utc",
]

#: Schema holding all credit-tracking tables.
CREDITS_SCHEMA = "credits"

#: Deterministic naming conventions for Alembic-friendly diffs.
#: Ref: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTIONS)


def now_utc() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative Base for all ORM models."""

    metadata = metadata


class TimestampMixin:
    """Mixin providing ``created_at`` and ``updated_at`` timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        onupdate=now_utc,
        server_default=func.now(),
    )


class ReprMixin:
    """Mixin providing a concise, field-based ``__repr__`` implementation."""

    def __repr__(self) -> str:
        """Return a short debug representation including loaded scalar columns."""
        cls = type(self)
        attrs = []
        for column in cls.__table__.columns:  # type: ignore[attr-defined]
            value = self.__dict__.get(column.key)
            if isinstance(value, (str, int, bool, uuid.UUID)):
                attrs.append(f"{column.key}={value!r}")
        return f"{cls.__name__}({', '.join(attrs)})"
