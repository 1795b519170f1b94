# -*- coding: utf-8 -*-
"""
Batch Stores

Keyed store for batch records, read by the certificate issuer and written by
the batch lifecycle.

Implementations:
    - InMemoryBatchStore: thread-safe, process-local
    - pyroledger.db.stores.SqlBatchStore: SQLAlchemy-backed
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Protocol, runtime_checkable

from pyroledger.batches.models import Batch
from pyroledger.exceptions import ConcurrencyError, NotFoundError

logger = logging.getLogger(__name__)


@runtime_checkable
class BatchStore(Protocol):
    """Keyed batch record store."""

    def get(self, batch_id: str) -> Optional[Batch]:
        """Return the batch, or None."""
        ...

    def add(self, batch: Batch) -> None:
        """Insert a new batch. Batch IDs are unique."""
        ...

    def replace(self, batch: Batch) -> None:
        """Overwrite an existing batch with a new snapshot."""
        ...

    def list_batches(self) -> List[Batch]:
        """All batches, newest production date first."""
        ...

    def count_code_prefix(self, prefix: str) -> int:
        """Number of batches whose code starts with ``prefix``."""
        ...


class InMemoryBatchStore:
    """Process-local batch store."""

    def __init__(self) -> None:
        self._batches: Dict[str, Batch] = {}
        self._lock = threading.Lock()

    def get(self, batch_id: str) -> Optional[Batch]:
        with self._lock:
            return self._batches.get(batch_id)

    def add(self, batch: Batch) -> None:
        with self._lock:
            if batch.batch_id in self._batches:
                raise ConcurrencyError(
                    f"Batch {batch.batch_id} already exists",
                    context={"batch_id": batch.batch_id},
                )
            self._batches[batch.batch_id] = batch

    def replace(self, batch: Batch) -> None:
        with self._lock:
            if batch.batch_id not in self._batches:
                raise NotFoundError(
                    f"Batch {batch.batch_id} not found",
                    entity_type="Batch", entity_id=batch.batch_id,
                )
            self._batches[batch.batch_id] = batch

    def list_batches(self) -> List[Batch]:
        with self._lock:
            batches = list(self._batches.values())
        return sorted(batches, key=lambda b: (b.date, b.code), reverse=True)

    def count_code_prefix(self, prefix: str) -> int:
        with self._lock:
            return sum(1 for b in self._batches.values() if b.code.startswith(prefix))


__all__ = ["BatchStore", "InMemoryBatchStore"]
