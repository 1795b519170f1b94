# -*- coding: utf-8 -*-
"""
Prometheus Metrics - audit trail

Metrics:
    1. pyroledger_audit_entries_total (Counter, by action)
    2. pyroledger_audit_skipped_total (Counter, by reason)
    3. pyroledger_audit_queries_total (Counter)

Falls back to no-ops when prometheus_client is not installed.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

try:
    from prometheus_client import Counter
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.info("prometheus_client not installed; audit metrics disabled")


if PROMETHEUS_AVAILABLE:
    audit_entries_total = Counter(
        "pyroledger_audit_entries_total",
        "Total audit entries appended",
        labelnames=["action"],
    )

    audit_skipped_total = Counter(
        "pyroledger_audit_skipped_total",
        "Mutations not recorded (no-op updates, recording disabled)",
        labelnames=["reason"],
    )

    audit_queries_total = Counter(
        "pyroledger_audit_queries_total",
        "Total audit log queries",
    )

else:
    audit_entries_total = None  # type: ignore[assignment]
    audit_skipped_total = None  # type: ignore[assignment]
    audit_queries_total = None  # type: ignore[assignment]


def record_entry(action: str) -> None:
    """Record an appended audit entry."""
    if not PROMETHEUS_AVAILABLE:
        return
    audit_entries_total.labels(action=action).inc()


def record_skip(reason: str) -> None:
    """Record a mutation that produced no entry.

    Args:
        reason: "no_change" or "disabled".
    """
    if not PROMETHEUS_AVAILABLE:
        return
    audit_skipped_total.labels(reason=reason).inc()


def record_query() -> None:
    """Record an audit log read."""
    if not PROMETHEUS_AVAILABLE:
        return
    audit_queries_total.inc()


__all__ = [
    "PROMETHEUS_AVAILABLE",
    "audit_entries_total",
    "audit_skipped_total",
    "audit_queries_total",
    "record_entry",
    "record_skip",
    "record_query",
]
