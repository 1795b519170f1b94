# -*- coding: utf-8 -*-
"""
Prometheus Metrics - GHG accounting engine

Metrics:
    1. pyroledger_ghg_calculations_total (Counter)
    2. pyroledger_ghg_calculation_duration_seconds (Histogram)
    3. pyroledger_ghg_avoided_kg_total (Counter)

Falls back to no-ops when prometheus_client is not installed.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

try:
    from prometheus_client import Counter, Histogram
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.info("prometheus_client not installed; GHG metrics disabled")


if PROMETHEUS_AVAILABLE:
    ghg_calculations_total = Counter(
        "pyroledger_ghg_calculations_total",
        "Total GHG calculations performed",
        labelnames=["result"],
    )

    ghg_calculation_duration_seconds = Histogram(
        "pyroledger_ghg_calculation_duration_seconds",
        "GHG calculation duration in seconds",
        buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1),
    )

    ghg_avoided_kg_total = Counter(
        "pyroledger_ghg_avoided_kg_total",
        "Cumulative positive avoided emissions reported (kg CO2e)",
    )

else:
    ghg_calculations_total = None  # type: ignore[assignment]
    ghg_calculation_duration_seconds = None  # type: ignore[assignment]
    ghg_avoided_kg_total = None  # type: ignore[assignment]


def record_calculation(result: str, duration_seconds: float) -> None:
    """Record a GHG calculation.

    Args:
        result: "success" or "validation_error".
        duration_seconds: Calculation duration in seconds.
    """
    if not PROMETHEUS_AVAILABLE:
        return
    ghg_calculations_total.labels(result=result).inc()
    ghg_calculation_duration_seconds.observe(duration_seconds)


def record_avoided(avoided_kg: float) -> None:
    """Add avoided emissions to the running total (negative values ignored)."""
    if not PROMETHEUS_AVAILABLE or avoided_kg <= 0:
        return
    ghg_avoided_kg_total.inc(avoided_kg)


__all__ = [
    "PROMETHEUS_AVAILABLE",
    "ghg_calculations_total",
    "ghg_calculation_duration_seconds",
    "ghg_avoided_kg_total",
    "record_calculation",
    "record_avoided",
]
