# -*- coding: utf-8 -*-
"""
Canonical Fact Document - what a certificate's hash covers

The document is built from a completed batch and its stored GHG result:

    {"format": "pyroledger.certificate.v1",
     "batch":     {"code", "date"},
     "feedstock": {"type", "origin", "weight_kg", "contamination_pct"},
     "output":    {"oil_liters", "yield_percent"},
     "lab":       [{"lab_name", "sample_number", "sulfur_percent",
                    "water_content", "verdict"}, ...],
     "impact":    {"baseline_total", "project_total", "avoided"}}

Lab entries are ordered by (sample_number, lab_name) so insertion order
never changes the hash. The whole document goes through ``canonicalize``,
so anyone holding it can recompute the hash with ``fact_hash``.
"""

from __future__ import annotations

from typing import Any, Dict

from pyroledger.batches.models import Batch
from pyroledger.determinism import canonicalize, content_hash

FACT_FORMAT = "pyroledger.certificate.v1"


def build_fact_document(batch: Batch) -> Dict[str, Any]:
    """Build the canonical fact document of a batch with a GHG result.

    Args:
        batch: Batch carrying a stored GHGResult.

    Returns:
        Canonical, JSON-safe document.

    Raises:
        ValueError: If the batch has no GHG result.
    """
    if batch.ghg is None:
        raise ValueError(f"Batch {batch.batch_id} has no GHG result")

    labs = sorted(batch.lab_results, key=lambda r: (r.sample_number, r.lab_name))
    document = {
        "format": FACT_FORMAT,
        "batch": {"code": batch.code, "date": batch.date},
        "feedstock": {
            "type": batch.feedstock_type,
            "origin": batch.feedstock_origin,
            "weight_kg": batch.feedstock_weight_kg,
            "contamination_pct": batch.contamination_pct,
        },
        "output": {
            "oil_liters": batch.oil_output_l,
            "yield_percent": batch.yield_percent,
        },
        "lab": [
            {
                "lab_name": r.lab_name,
                "lab_certification": r.lab_certification,
                "sample_number": r.sample_number,
                "sulfur_percent": r.sulfur_percent,
                "water_content": r.water_content,
                "verdict": r.verdict,
            }
            for r in labs
        ],
        "impact": {
            "baseline_total": batch.ghg.baseline_total,
            "project_total": batch.ghg.project_total,
            "avoided": batch.ghg.avoided,
        },
    }
    return canonicalize(document)


def fact_hash(document: Dict[str, Any]) -> str:
    """SHA-256 hex digest of a fact document's canonical serialization."""
    return content_hash(document)


__all__ = ["FACT_FORMAT", "build_fact_document", "fact_hash"]
