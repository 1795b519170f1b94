# -*- coding: utf-8 -*-
"""
Audit Log Stores

The audit trail writes through the ``AuditLogStore`` protocol: an
append-only keyed log with filtered, paginated reads. There is
no update or delete operation.

Implementations:
    - InMemoryAuditLogStore: thread-safe, process-local
    - pyroledger.db.stores.SqlAuditLogStore: SQLAlchemy-backed
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Protocol, Tuple, runtime_checkable

from pyroledger.audit.models import AuditEntry, AuditQuery
from pyroledger.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)


@runtime_checkable
class AuditLogStore(Protocol):
    """Append-only audit log."""

    def append(self, entry: AuditEntry) -> None:
        """Persist a new entry. Entry IDs are unique."""
        ...

    def query(self, query: AuditQuery, limit: int) -> Tuple[List[AuditEntry], int]:
        """Return (page newest first, total matches) for the filters."""
        ...


class InMemoryAuditLogStore:
    """Process-local append-only audit log.

    Attributes:
        _entries: Entries in arrival order.
        _ids: Entry IDs already stored.
    """

    def __init__(self) -> None:
        self._entries: List[AuditEntry] = []
        self._ids: Dict[str, int] = {}
        self._lock = threading.Lock()

    def append(self, entry: AuditEntry) -> None:
        with self._lock:
            if entry.entry_id in self._ids:
                raise ConcurrencyError(
                    f"Audit entry {entry.entry_id} already exists",
                    context={"entry_id": entry.entry_id},
                )
            self._ids[entry.entry_id] = len(self._entries)
            self._entries.append(entry)

    def query(self, query: AuditQuery, limit: int) -> Tuple[List[AuditEntry], int]:
        with self._lock:
            matched = [e for e in self._entries if query.matches(e)]
        # Stable sort keeps arrival order among equal timestamps
        matched = sorted(
            reversed(matched), key=lambda e: e.timestamp, reverse=True,
        )
        page = matched[query.offset:query.offset + limit]
        return page, len(matched)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["AuditLogStore", "InMemoryAuditLogStore"]
