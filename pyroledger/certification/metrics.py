# -*- coding: utf-8 -*-
"""
Prometheus Metrics - certificate issuance and verification

Metrics:
    1. pyroledger_certificates_issued_total (Counter)
    2. pyroledger_certificate_issue_rejections_total (Counter, by reason)
    3. pyroledger_certificate_verifications_total (Counter, by result)
    4. pyroledger_certificate_code_collisions_total (Counter)

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
    logger.info("prometheus_client not installed; certification metrics disabled")


if PROMETHEUS_AVAILABLE:
    certificates_issued_total = Counter(
        "pyroledger_certificates_issued_total",
        "Total certificates issued",
    )

    certificate_issue_rejections_total = Counter(
        "pyroledger_certificate_issue_rejections_total",
        "Certificate requests refused",
        labelnames=["reason"],
    )

    certificate_verifications_total = Counter(
        "pyroledger_certificate_verifications_total",
        "Public certificate lookups",
        labelnames=["result"],
    )

    certificate_code_collisions_total = Counter(
        "pyroledger_certificate_code_collisions_total",
        "Generated codes that were already taken",
    )

else:
    certificates_issued_total = None  # type: ignore[assignment]
    certificate_issue_rejections_total = None  # type: ignore[assignment]
    certificate_verifications_total = None  # type: ignore[assignment]
    certificate_code_collisions_total = None  # type: ignore[assignment]


def record_issued() -> None:
    """Record an issued certificate."""
    if not PROMETHEUS_AVAILABLE:
        return
    certificates_issued_total.inc()


def record_rejection(reason: str) -> None:
    """Record a refused certificate request.

    Args:
        reason: "not_found", "not_completed" or "no_ghg".
    """
    if not PROMETHEUS_AVAILABLE:
        return
    certificate_issue_rejections_total.labels(reason=reason).inc()


def record_verification(result: str) -> None:
    """Record a public lookup.

    Args:
        result: "first", "repeat", "not_found" or "hash_mismatch".
    """
    if not PROMETHEUS_AVAILABLE:
        return
    certificate_verifications_total.labels(result=result).inc()


def record_collision() -> None:
    """Record a code collision during generation or insert."""
    if not PROMETHEUS_AVAILABLE:
        return
    certificate_code_collisions_total.inc()


__all__ = [
    "PROMETHEUS_AVAILABLE",
    "certificates_issued_total",
    "certificate_issue_rejections_total",
    "certificate_verifications_total",
    "certificate_code_collisions_total",
    "record_issued",
    "record_rejection",
    "record_verification",
    "record_collision",
]
