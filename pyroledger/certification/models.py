# -*- coding: utf-8 -*-
"""
Certification Data Models

Models:
    - Certificate: stored, tamper-evident certificate record
    - IssuedCertificate: what the issuer returns to the caller
    - PublicVerification: the projection shown to an anonymous verifier

A Certificate is immutable except for the single ``verified_at``
transition, which the store performs atomically.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Certificate(BaseModel):
    """A stored certificate and the fact snapshot its hash covers."""

    certificate_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Internal certificate ID",
    )
    batch_id: str = Field(..., description="Certified batch")
    code: str = Field(..., description="Unique public verification code")
    content_hash: str = Field(..., description="SHA-256 of the fact document")
    verification_url: str = Field(..., description="Public verification link")
    issued_at: datetime = Field(..., description="Issuance time (UTC)")
    verified_at: Optional[datetime] = Field(
        None, description="First public verification (UTC), write-once",
    )
    co2_avoided_kg: Decimal = Field(..., description="Avoided emissions, kg CO2e")
    plastic_diverted_kg: Decimal = Field(..., description="Feedstock diverted, kg")
    facts: Dict[str, Any] = Field(..., description="Canonical fact document")

    model_config = {"frozen": True, "extra": "forbid"}


class IssuedCertificate(BaseModel):
    """Result of issuing a certificate."""

    certificate_id: str
    batch_id: str
    code: str
    content_hash: str
    issued_at: datetime
    co2_avoided_kg: Decimal
    plastic_diverted_kg: Decimal
    verification_url: str

    model_config = {"frozen": True}

    @classmethod
    def from_certificate(cls, cert: Certificate) -> IssuedCertificate:
        return cls(**cert.model_dump(exclude={"facts", "verified_at"}))


class LabVerdict(BaseModel):
    """Public view of one lab result."""

    lab_name: str
    lab_certification: Optional[str] = None
    sample_number: str
    sulfur_percent: Optional[Decimal] = None
    water_content: Optional[Decimal] = None
    verdict: Optional[str] = None


class PublicVerification(BaseModel):
    """What anyone holding a code may see.

    Built only from the certificate's fact snapshot: no internal IDs, actor
    data or batch fields outside the fact document.
    """

    code: str
    content_hash: str
    hash_valid: bool = Field(
        ..., description="Stored facts still hash to content_hash",
    )
    issued_at: datetime
    verified_at: Optional[datetime] = None
    verification_url: str

    batch: Dict[str, Any] = Field(..., description="Batch code and date")
    feedstock: Dict[str, Any] = Field(..., description="Feedstock summary")
    output: Dict[str, Any] = Field(..., description="Oil output and yield")
    impact: Dict[str, Any] = Field(..., description="GHG totals, kg CO2e")
    lab: List[LabVerdict] = Field(default_factory=list)

    model_config = {"frozen": True}


__all__ = [
    "Certificate",
    "IssuedCertificate",
    "LabVerdict",
    "PublicVerification",
]
