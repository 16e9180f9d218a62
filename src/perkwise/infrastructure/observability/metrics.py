# src/perkwise/infrastructure/observability/metrics.py
# Copyright (c) Perkwise.
# SPDX-License-Identifier: MIT
"""Prometheus metrics utilities (registry-aware, hot-reload safe).

Metrics are exposed through accessor functions that return a *singleton*
collector bound to the **current** ``prometheus_client.REGISTRY``:

    - Safe under tests that swap the default registry.
    - No duplicate-registration errors.
    - Cache automatically resets when the active registry changes.

All histograms use explicit buckets so ``_bucket/_count/_sum`` series appear
after the first ``observe(...)`` call.

Example:
    get_reconcile_transactions_total().labels(outcome="matched").inc()
    get_db_operation_duration_seconds().labels(
        operation="insert_link", model="credit_usage_transactions", outcome="success"
    ).observe(0.004)
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Final

import prometheus_client as prom
from prometheus_client import Counter, Histogram

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Common histogram buckets (seconds)
_BUCKETS: Final[tuple[float, ...]] = (
    0.005,
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
    2.500,
    5.000,
    10.000,
)

_BATCH_BUCKETS: Final[tuple[float, ...]] = (
    0.050,
    0.250,
    1.000,
    2.500,
    5.000,
    10.000,
    30.000,
    60.000,
    120.000,
)

# Cache keyed by metric name within the currently-active registry.
_registry_id: int | None = None
_hist_cache: dict[str, Histogram] = {}
_counter_cache: dict[str, Counter] = {}
_lock = threading.RLock()


# ---------------------------------------------------------------------------
# Registry-handling primitives


def _ensure_registry() -> None:
    """Reset caches if the active registry changed."""
    global _registry_id
    with _lock:
        rid = id(prom.REGISTRY)
        if _registry_id is None or _registry_id != rid:
            _hist_cache.clear()
            _counter_cache.clear()
            _registry_id = rid


def _lookup_existing(name: str, kind: type) -> object | None:
    """Return a previously-registered collector of ``kind`` from the active registry."""
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            col = mapping.get(name)
            if isinstance(col, kind):
                return col
    return None


# ---------------------------------------------------------------------------
# Get-or-create helpers


def _get_or_create_hist(
    name: str,
    help_text: str,
    *,
    buckets: tuple[float, ...] = _BUCKETS,
    labelnames: tuple[str, ...] = (),
) -> Histogram:
    """Get or create a registry-bound ``Histogram`` with stable identity.

    Args:
        name: Metric name (snake_case).
        help_text: Human-readable description.
        buckets: Histogram buckets in seconds.
        labelnames: Optional label names tuple.

    Returns:
        Histogram: Bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _hist_cache.get(name)
        if cached is not None:
            return cached

        existing = _lookup_existing(name, Histogram)
        if isinstance(existing, Histogram):
            _hist_cache[name] = existing
            return existing

        try:
            h = Histogram(name, help_text, labelnames, buckets=buckets, registry=prom.REGISTRY)
        except ValueError as exc:
            # Duplicated timeseries: another caller registered it first.
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, Histogram)
                if isinstance(again, Histogram):
                    _hist_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus histogram %s", name)
            raise
        _hist_cache[name] = h
        return h


def _get_or_create_counter(
    name: str,
    help_text: str,
    *,
    labelnames: tuple[str, ...] = (),
) -> Counter:
    """Get or create a registry-bound ``Counter`` with stable identity.

    Args:
        name: Metric name (snake_case).
        help_text: Human-readable description.
        labelnames: Optional label names tuple.

    Returns:
        Counter: Bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _counter_cache.get(name)
        if cached is not None:
            return cached

        existing = _lookup_existing(name, Counter)
        if isinstance(existing, Counter):
            _counter_cache[name] = existing
            return existing

        try:
            c = Counter(name, help_text, labelnames, registry=prom.REGISTRY)
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, Counter)
                if isinstance(again, Counter):
                    _counter_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus counter %s", name)
            raise
        _counter_cache[name] = c
        return c


# ---------------------------------------------------------------------------
# Reconciliation metrics


def get_reconcile_transactions_total() -> Counter:
    """Return counter for reconciled transactions.

    Labels:
        outcome: ``matched``, ``clawback``, ``already_processed``, ``error``
            or one of the ``skipped_*`` reasons.
    """
    return _get_or_create_counter(
        name="perkwise_reconcile_transactions_total",
        help_text="Transactions processed by credit reconciliation, by outcome.",
        labelnames=("outcome",),
    )


def get_reconcile_ambiguous_rules_total() -> Counter:
    """Return counter for transactions matched by more than one rule."""
    return _get_or_create_counter(
        name="perkwise_reconcile_ambiguous_rules_total",
        help_text="Transactions matched by more than one credit matching rule.",
    )


def get_reconcile_batch_duration_seconds() -> Histogram:
    """Return histogram for end-to-end reconciliation batch latency.

    Labels:
        outcome: ``success``, ``partial`` (per-transaction errors) or ``aborted``.
    """
    return _get_or_create_hist(
        name="perkwise_reconcile_batch_duration_seconds",
        help_text="Latency (seconds) of a credit reconciliation batch.",
        buckets=_BATCH_BUCKETS,
        labelnames=("outcome",),
    )


# ---------------------------------------------------------------------------
# Database metrics


def get_db_operation_duration_seconds() -> Histogram:
    """Return histogram for DB operation latency.

    Labels:
        operation: Logical operation name (e.g. ``insert_link``).
        model: Logical model/table name (e.g. ``credit_usage``).
        outcome: ``success`` or ``error``.
    """
    return _get_or_create_hist(
        name="db_operation_duration_seconds",
        help_text="Latency (seconds) of database operations.",
        labelnames=("operation", "model", "outcome"),
    )


def get_db_errors_total() -> Counter:
    """Return counter for DB operation errors.

    Labels:
        operation: Logical operation name.
        model: Logical model/table name.
        reason: Exception class name.
    """
    return _get_or_create_counter(
        name="db_errors_total",
        help_text="Database operation errors.",
        labelnames=("operation", "model", "reason"),
    )


__all__ = [
    "get_db_errors_total",
    "get_db_operation_duration_seconds",
    "get_reconcile_ambiguous_rules_total",
    "get_reconcile_batch_duration_seconds",
    "get_reconcile_transactions_total",
]
