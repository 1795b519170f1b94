# -*- coding: utf-8 -*-
"""
Batch Records
=============

Production batches, their lab results and the lifecycle that audits every
mutation and computes GHG figures on completion.
"""

from pyroledger.batches.models import (
    Batch,
    BatchCreate,
    BatchStatus,
    BatchUpdate,
    LabResult,
    LabResultCreate,
    generate_batch_code,
)
from pyroledger.batches.store import BatchStore, InMemoryBatchStore
from pyroledger.batches.lifecycle import BatchLifecycle

__all__ = [
    "Batch",
    "BatchCreate",
    "BatchStatus",
    "BatchUpdate",
    "LabResult",
    "LabResultCreate",
    "generate_batch_code",
    "BatchStore",
    "InMemoryBatchStore",
    "BatchLifecycle",
]
