# src/perkwise/infrastructure/logging/logger.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Structured JSON logging utilities.

This module exposes an idempotent root configurator and a per-module logger
factory that produce JSON logs suitable for ingestion by log pipelines.

Features:
    * Stable keys: ``ts``, ``level``, ``logger``, ``message``.
    * Automatic enrichment with the reconciliation ``run_id`` and ``user_id``
      via contextvars, so every line of a batch can be correlated.
    * Structured extras through ``extra={"extra": {...}}``.

Typical usage:
    configure_root_logging()
    log = get_json_logger(__name__)
    log.info("credit_reconcile.done", extra={"extra": {"matched": 3}})
"""

from __future__ import annotations

import json
import logging
import os
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from typing import Any

__all__ = [
    "configure_root_logging",
    "get_json_logger",
    "get_run_id",
    "reset_run_context",
    "set_run_context",
]

# Per-batch correlation context (task-local via contextvars).
_RUN_ID_CTX: ContextVar[str | None] = ContextVar("perkwise_run_id", default=None)
_USER_ID_CTX: ContextVar[str | None] = ContextVar("perkwise_user_id", default=None)


RunContextTokens = tuple[Token[str | None] | None, Token[str | None] | None]


def set_run_context(*, run_id: str | None = None, user_id: str | None = None) -> RunContextTokens:
    """Set per-batch correlation identifiers on the current context.

    Args:
        run_id: Identifier of the reconciliation run, if any.
        user_id: User whose transactions are being reconciled, if any.

    Returns:
        Tokens to hand to :func:`reset_run_context` when the batch ends.

    Notes:
        Passing only one of the arguments updates that value and leaves the
        other unchanged.
    """
    run_token = _RUN_ID_CTX.set(run_id) if run_id is not None else None
    user_token = _USER_ID_CTX.set(user_id) if user_id is not None else None
    return run_token, user_token


def reset_run_context(tokens: RunContextTokens) -> None:
    """Restore the identifiers that were current before :func:`set_run_context`."""
    run_token, user_token = tokens
    if user_token is not None:
        _USER_ID_CTX.reset(user_token)
    if run_token is not None:
        _RUN_ID_CTX.reset(run_token)


def get_run_id() -> str | None:
    """Return the current reconciliation run id from contextvars, if any."""
    return _RUN_ID_CTX.get(None)


class _JsonFormatter(logging.Formatter):
    """JSON log formatter emitting stable keys and optional extras."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON object.

        Args:
            record: Logging record.

        Returns:
            JSON-encoded log line.
        """
        payload: dict[str, Any] = {
            "ts": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = getattr(record, "run_id", None) or _RUN_ID_CTX.get(None)
        if run_id:
            payload["run_id"] = run_id
        user_id = getattr(record, "user_id", None) or _USER_ID_CTX.get(None)
        if user_id:
            payload["user_id"] = user_id

        # Exceptions: guard against None in exc_info tuple.
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            if exc_type is not None:
                payload["exc_type"] = exc_type.__name__
            if exc_value is not None:
                payload["exc_message"] = str(exc_value)

        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_root_logging(level: str | int | None = None) -> None:
    """Initialize the root logger with a JSON stream handler (idempotent).

    Args:
        level: Logging level or level name. If ``None``, use env ``LOG_LEVEL`` or ``INFO``.
    """
    root = logging.getLogger()

    env_level = os.getenv("LOG_LEVEL")
    resolved: int | str = (
        level if level is not None else (env_level.upper() if env_level else "INFO")
    )
    root.setLevel(resolved)

    if root.handlers:
        # Already configured; avoid duplicate handlers.
        return

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    root.addHandler(handler)


def get_json_logger(name: str) -> logging.Logger:
    """Return a module-specific logger backed by the JSON root handler.

    This does *not* implicitly configure the root logger. Call
    :func:`configure_root_logging` once at startup.

    Args:
        name: Logger name, typically ``__name__`` of the caller.

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
