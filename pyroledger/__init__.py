# -*- coding: utf-8 -*-
"""
PyroLedger - lifecycle GHG accounting, audit trail and certification for
plastic pyrolysis batches.

Subpackages:
    - ghg: open-burning baseline vs pyrolysis project emissions
    - audit: append-only field-level change history
    - certification: tamper-evident certificates and public verification
    - batches: batch records and their lifecycle
    - db: SQLAlchemy-backed stores
    - api: FastAPI router

Example:
    >>> from pyroledger import GHGCalculator
    >>> GHGCalculator().calculate({"feedstockMass": 450, "oilOutput": 360}).avoided > 0
    True
"""

__version__ = "0.1.0"

from pyroledger.exceptions import (
    CodeGenerationError,
    ConcurrencyError,
    DuplicateCodeError,
    NotFoundError,
    PreconditionError,
    PyroLedgerError,
    ValidationError,
)
from pyroledger.ghg import BatchInputs, GHGCalculator, GHGResult
from pyroledger.audit import Actor, AuditAction, AuditTrail, RecordDiffer
from pyroledger.certification import CertificateIssuer, CertificateVerifier

__all__ = [
    "__version__",
    "PyroLedgerError",
    "ValidationError",
    "PreconditionError",
    "NotFoundError",
    "ConcurrencyError",
    "DuplicateCodeError",
    "CodeGenerationError",
    "BatchInputs",
    "GHGCalculator",
    "GHGResult",
    "Actor",
    "AuditAction",
    "AuditTrail",
    "RecordDiffer",
    "CertificateIssuer",
    "CertificateVerifier",
]
