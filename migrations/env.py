# migrations/env.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Alembic Environment (migrations/env.py)

Purpose:
    Configure Alembic for the Perkwise ``credits`` schema with the same
    behavior for offline (SQL script) and online (async engine) runs.

Design:
    - Loads env vars from .env + .env.<ENVIRONMENT> without overriding
      exported vars.
    - Reads the database URL from DATABASE_URL or alembic.ini.
    - Refuses to run without ENVIRONMENT.
    - Uses the project Declarative Base for autogenerate (`target_metadata`).
    - Keeps the Alembic version table in public.alembic_version.
    - Logs only a masked connection URL.

Environment variables:
    ENVIRONMENT        Required (e.g. "test", "development").
    DATABASE_URL       Database URL (asyncpg driver).
    ECHO_SQL           If "1", enable SQL echo in online runs.
    ALEMBIC_SHOW_URL   If "1", log the masked URL.

Usage:
    ENVIRONMENT=development alembic upgrade head
"""

from __future__ import annotations

import asyncio
import logging
import logging.config
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse, urlunparse

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from perkwise.infrastructure.database.models import credits as _credits_models  # noqa: F401
from perkwise.infrastructure.database.models.base import metadata as BaseMetadata

config = context.config

if config.config_file_name is not None:
    logging.config.fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_VERSION_TABLE = "alembic_version"
_VERSION_TABLE_SCHEMA = "public"

target_metadata = BaseMetadata


def _load_env_files() -> None:
    """Load .env then .env.<ENVIRONMENT> from the repo root (no override)."""
    root = Path(__file__).resolve().parents[1]

    base = root / ".env"
    if base.exists():
        load_dotenv(base, override=False)

    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if env:
        env_file = root / f".env.{env}"
        if env_file.exists():
            load_dotenv(env_file, override=False)


_load_env_files()


def _mask_url(url: str) -> str:
    """Return ``url`` with the password replaced, for logging."""
    parts = urlparse(url)
    user = parts.username or ""
    host = parts.hostname or ""
    port = f":{parts.port}" if parts.port else ""
    auth = f"{user}:****@" if user else ""
    return urlunparse((parts.scheme, f"{auth}{host}{port}", parts.path or "", "", "", ""))


def _get_db_url() -> str:
    """Resolve the database URL (DATABASE_URL, then alembic.ini sqlalchemy.url)."""
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("Database URL not configured (DATABASE_URL/sqlalchemy.url).")
    return url


def _require_environment() -> str:
    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if not env:
        raise RuntimeError(
            "ENVIRONMENT is required for migrations (e.g., ENVIRONMENT=development)."
        )
    return env


def _prepare() -> str:
    env = _require_environment()
    url = _get_db_url()
    if os.getenv("ALEMBIC_SHOW_URL") == "1":
        logger.info("Migrating ENVIRONMENT=%s using %s", env, _mask_url(url))
    return url


def _configure_kwargs() -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "include_schemas": True,
        "version_table": _VERSION_TABLE,
        "version_table_schema": _VERSION_TABLE_SCHEMA,
    }


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL script output)."""
    context.configure(
        url=_prepare(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )
    with context.begin_transaction():
        context.run_migrations()


def _configure_and_run(connection: Connection) -> None:
    context.configure(connection=connection, **_configure_kwargs())
    with context.begin_transaction():
        context.run_migrations()


async def _run_migrations_async() -> None:
    connectable: AsyncEngine = create_async_engine(
        _prepare(),
        echo=os.getenv("ECHO_SQL") == "1",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(_configure_and_run)
    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations against a live database using an async engine."""
    asyncio.run(_run_migrations_async())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
