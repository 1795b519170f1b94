# -*- coding: utf-8 -*-
"""
Audit & Change History
======================

Append-only, field-level change history for mutable records.

Key Components:
    - config: AuditConfig with PYROLEDGER_AUDIT_ env prefix
    - models: Actor, ChangeSet, AuditEntry, AuditQuery, AuditPage
    - differ: RecordDiffer (minimal change-sets over canonical values)
    - store: AuditLogStore protocol, InMemoryAuditLogStore
    - trail: AuditTrail entry point
    - metrics: Prometheus metrics

Example:
    >>> from pyroledger.audit import Actor, AuditTrail, InMemoryAuditLogStore
    >>> trail = AuditTrail(InMemoryAuditLogStore())
    >>> entry = trail.record(
    ...     Actor(actor_id="u-1", actor_label="ops@example.com"),
    ...     "CREATE", "Batch", "b-1", related_batch_id="b-1",
    ...     changes={"code": "B/03/1/LDPA/01"},
    ... )
    >>> trail.verify_entry(entry)
    True
"""

from pyroledger.audit.config import AuditConfig, get_config, reset_config, set_config
from pyroledger.audit.models import (
    Actor,
    AuditAction,
    AuditEntry,
    AuditPage,
    AuditQuery,
    ChangeSet,
    FieldChange,
)
from pyroledger.audit.differ import ENTITY_FIELDS, RecordDiffer
from pyroledger.audit.store import AuditLogStore, InMemoryAuditLogStore
from pyroledger.audit.trail import AuditTrail

__all__ = [
    "AuditConfig",
    "get_config",
    "set_config",
    "reset_config",
    "Actor",
    "AuditAction",
    "AuditEntry",
    "AuditPage",
    "AuditQuery",
    "ChangeSet",
    "FieldChange",
    "ENTITY_FIELDS",
    "RecordDiffer",
    "AuditLogStore",
    "InMemoryAuditLogStore",
    "AuditTrail",
]
