# -*- coding: utf-8 -*-
"""
Batch Record Models

Pydantic v2 models for the mutable production records the ledger audits
and certifies.

Models:
    - Enums: BatchStatus
    - Records: LabResult, Batch
    - Requests: BatchCreate, BatchUpdate, LabResultCreate

Helpers:
    - generate_batch_code: ``{Year}/{Month}/{Reactor}/{Feedstock}/{Seq}``
"""

from __future__ import annotations

import uuid
from datetime import date as date_type, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pyroledger.determinism import DeterministicClock
from pyroledger.ghg.models import BatchInputs, GHGResult

# Year letter of the batch code; years outside the table map to "X"
YEAR_LETTERS: Dict[int, str] = {
    2024: "A",
    2025: "B",
    2026: "C",
    2027: "D",
    2028: "E",
}

FEEDSTOCK_CODES: Dict[str, str] = {
    "LDPE Agrícola": "LDPA",
    "HDPE Industrial": "HDPI",
    "LDPE Film": "LDPF",
    "PP Mixto": "PPM",
}

DEFAULT_REACTOR = "1"


def generate_batch_code(
    batch_date: date_type,
    feedstock_type: str,
    sequence: int,
    reactor: str = DEFAULT_REACTOR,
) -> str:
    """Build a batch code such as ``B/03/1/LDPA/02``.

    Args:
        batch_date: Production date.
        feedstock_type: Feedstock label (unknown labels map to "GEN").
        sequence: Consecutive number for the feedstock and month, from 1.
        reactor: Reactor identifier.

    Returns:
        Batch code string.
    """
    year_letter = YEAR_LETTERS.get(batch_date.year, "X")
    feed_code = FEEDSTOCK_CODES.get(feedstock_type, "GEN")
    return f"{year_letter}/{batch_date.month:02d}/{reactor}/{feed_code}/{sequence:02d}"


class BatchStatus(str, Enum):
    """Lifecycle status of a batch."""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    INCOMPLETE = "INCOMPLETE"
    TEST = "TEST"


class LabResultCreate(BaseModel):
    """Fields accepted when attaching a lab result to a batch."""

    lab_name: str = Field(..., min_length=1)
    lab_certification: Optional[str] = None
    sample_number: str = Field(..., min_length=1)
    lot_number: Optional[str] = None
    report_date: datetime
    appearance: Optional[str] = None
    color: Optional[str] = None
    viscosity_40c: Optional[float] = None
    water_content: Optional[float] = None
    sulfur_percent: Optional[float] = None
    verdict: Optional[str] = None
    analyst_name: Optional[str] = None

    model_config = {"extra": "forbid"}


class LabResult(LabResultCreate):
    """Laboratory analysis of an oil sample from a batch."""

    lab_result_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    model_config = {"frozen": True, "extra": "forbid"}


class Batch(BaseModel):
    """A production batch and its stored GHG result.

    Records are replaced, never mutated in place: the lifecycle builds a new
    snapshot with ``model_copy`` so the old one can be diffed.
    """

    batch_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    code: str
    date: date_type
    status: BatchStatus = BatchStatus.ACTIVE

    feedstock_type: str
    feedstock_origin: str
    feedstock_weight_kg: float = Field(..., gt=0)
    feedstock_condition: Optional[str] = None
    contamination_pct: Optional[float] = Field(None, ge=0, le=100)

    oil_output_l: Optional[float] = Field(None, ge=0)
    oil_weight_kg: Optional[float] = Field(None, ge=0)
    residue_weight_kg: Optional[float] = Field(None, ge=0)
    yield_percent: Optional[float] = Field(None, ge=0, le=100)
    diesel_consumed_l: Optional[float] = Field(None, ge=0)
    duration_minutes: Optional[float] = Field(None, ge=0)
    max_reactor_temp_c: Optional[float] = None
    stop_reason: Optional[str] = None
    notes: Optional[str] = None
    operators: List[str] = Field(default_factory=list)

    ghg: Optional[GHGResult] = None
    lab_results: List[LabResult] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=DeterministicClock.utcnow)
    updated_at: datetime = Field(default_factory=DeterministicClock.utcnow)

    model_config = {"frozen": True, "extra": "forbid"}

    def ghg_inputs(self) -> BatchInputs:
        """Physical parameters fed to the GHG calculator.

        Duration is recorded in minutes and converted to hours.
        """
        return BatchInputs(
            feedstock_mass_kg=self.feedstock_weight_kg,
            contamination_pct=self.contamination_pct,
            oil_output_l=self.oil_output_l or 0,
            diesel_consumed_l=self.diesel_consumed_l,
            duration_hours=(
                self.duration_minutes / 60 if self.duration_minutes is not None else None
            ),
        )

    def audit_snapshot(self) -> Dict[str, Any]:
        """Fields the audit trail records; lab results are audited on their own."""
        return self.model_dump(exclude={"lab_results"})


class BatchCreate(BaseModel):
    """Fields accepted when registering a batch."""

    feedstock_type: str = Field(..., min_length=1)
    feedstock_origin: str = Field(..., min_length=1)
    feedstock_weight_kg: float = Field(..., gt=0)
    feedstock_condition: Optional[str] = None
    contamination_pct: Optional[float] = Field(None, ge=0, le=100)
    operators: List[str] = Field(..., min_length=1)
    notes: Optional[str] = None
    date: Optional[date_type] = None

    model_config = {"extra": "forbid"}


class BatchUpdate(BaseModel):
    """Fields accepted when updating a batch. Omitted fields are unchanged."""

    status: Optional[BatchStatus] = None
    oil_output_l: Optional[float] = Field(None, ge=0)
    oil_weight_kg: Optional[float] = Field(None, ge=0)
    residue_weight_kg: Optional[float] = Field(None, ge=0)
    yield_percent: Optional[float] = Field(None, ge=0, le=100)
    max_reactor_temp_c: Optional[float] = None
    diesel_consumed_l: Optional[float] = Field(None, ge=0)
    duration_minutes: Optional[float] = Field(None, ge=0)
    stop_reason: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"extra": "forbid"}


__all__ = [
    "YEAR_LETTERS",
    "FEEDSTOCK_CODES",
    "generate_batch_code",
    "BatchStatus",
    "LabResultCreate",
    "LabResult",
    "Batch",
    "BatchCreate",
    "BatchUpdate",
]
