# tests/unit/infrastructure/test_json_logger.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT

from __future__ import annotations

import json
import logging

from perkwise.infrastructure.logging.logger import (
    _JsonFormatter,
    configure_root_logging,
    get_run_id,
    reset_run_context,
    set_run_context,
)


def _render(msg: str, *, exc_info=None, **attrs) -> dict:
    fmt = _JsonFormatter()
    record = logging.getLogger("test.perkwise").makeRecord(
        name="test.perkwise",
        level=logging.INFO,
        fn="test_json_logger",
        lno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return json.loads(fmt.format(record))


def test_stable_keys_and_extras() -> None:
    payload = _render("credit_reconcile.done", extra={"matched": 3, "clawbacks": 1})

    assert payload["message"] == "credit_reconcile.done"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.perkwise"
    assert "ts" in payload
    assert payload["matched"] == 3
    assert payload["clawbacks"] == 1


def test_run_context_is_attached() -> None:
    tokens = set_run_context(run_id="run-123", user_id="user-9")
    try:
        payload = _render("credit_reconcile.start")

        assert get_run_id() == "run-123"
        assert payload["run_id"] == "run-123"
        assert payload["user_id"] == "user-9"
    finally:
        reset_run_context(tokens)


def test_record_attributes_override_context() -> None:
    tokens = set_run_context(run_id="run-ctx")
    try:
        payload = _render("x", run_id="run-explicit")
    finally:
        reset_run_context(tokens)

    assert payload["run_id"] == "run-explicit"


def test_reset_restores_the_previous_run_context() -> None:
    outer = set_run_context(run_id="run-outer", user_id="user-outer")
    try:
        inner = set_run_context(run_id="run-inner", user_id="user-inner")
        assert get_run_id() == "run-inner"

        reset_run_context(inner)

        payload = _render("after")
        assert payload["run_id"] == "run-outer"
        assert payload["user_id"] == "user-outer"
    finally:
        reset_run_context(outer)

    payload = _render("cleared")
    assert get_run_id() is None
    assert "run_id" not in payload
    assert "user_id" not in payload


def test_reset_only_touches_values_that_were_set() -> None:
    outer = set_run_context(run_id="run-outer", user_id="user-outer")
    try:
        reset_run_context(set_run_context(run_id="run-inner"))

        payload = _render("after")
        assert payload["run_id"] == "run-outer"
        assert payload["user_id"] == "user-outer"
    finally:
        reset_run_context(outer)


def test_exception_details_are_rendered() -> None:
    try:
        raise ValueError("bad ledger row")
    except ValueError as exc:
        payload = _render("failed", exc_info=(type(exc), exc, exc.__traceback__))

    assert payload["exc_type"] == "ValueError"
    assert payload["exc_message"] == "bad ledger row"


def test_configure_root_logging_is_idempotent() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    root.handlers = []
    try:
        configure_root_logging("DEBUG")
        configure_root_logging("WARNING")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, _JsonFormatter)
        assert root.level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
