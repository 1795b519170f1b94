# -*- coding: utf-8 -*-
"""
Audit Trail Data Models

Models:
    - Enums: AuditAction
    - Actors: Actor
    - Diffs: FieldChange, ChangeSet
    - Log: AuditEntry
    - Queries: AuditQuery, AuditPage

AuditEntry is frozen and carries a SHA-256 ``entry_hash`` over its
canonical content, so an edited entry can be detected.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from pyroledger.determinism import DeterministicClock, canonicalize, content_hash


class AuditAction(str, Enum):
    """Kinds of mutation recorded in the audit log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Actor(BaseModel):
    """Who made a change."""

    actor_id: str = Field(..., min_length=1, description="Stable user identifier")
    actor_label: str = Field(
        ..., description="Display label recorded with the change (e.g. email)",
    )

    model_config = {"frozen": True, "extra": "forbid"}


class FieldChange(BaseModel):
    """Old and new value of one attribute."""

    old: Any = None
    new: Any = None

    model_config = {"frozen": True}


class ChangeSet(BaseModel):
    """Field-level diff between two snapshots of the same entity.

    Produced once per mutation and consumed by the audit trail.
    """

    changes: Dict[str, FieldChange] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ChangeSet:
        """Build from ``{field: {"old": ..., "new": ...}}``."""
        changes = {}
        for name, change in data.items():
            if isinstance(change, FieldChange):
                changes[name] = change
            else:
                changes[name] = FieldChange(old=change.get("old"), new=change.get("new"))
        return cls(changes=changes)

    def to_payload(self) -> Dict[str, Any]:
        """Canonical JSON-safe payload stored on the audit entry."""
        return {
            name: {"old": canonicalize(c.old), "new": canonicalize(c.new)}
            for name, c in sorted(self.changes.items())
        }

    @property
    def field_names(self) -> List[str]:
        return sorted(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def __contains__(self, name: object) -> bool:
        return name in self.changes

    def __getitem__(self, name: str) -> FieldChange:
        return self.changes[name]


class AuditEntry(BaseModel):
    """A single append-only audit log entry."""

    entry_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique audit entry ID",
    )
    actor_id: str = Field(..., description="User who made the change")
    actor_label: str = Field(..., description="Display label of the user")
    action: AuditAction = Field(..., description="CREATE, UPDATE or DELETE")
    entity_type: str = Field(..., description="Kind of entity changed")
    entity_id: str = Field(..., description="ID of the entity changed")
    related_batch_id: Optional[str] = Field(
        None, description="Batch the entity belongs to, if any",
    )
    changes: Optional[Dict[str, Any]] = Field(
        None,
        description="Change-set for UPDATE, full snapshot for CREATE/DELETE",
    )
    reason: Optional[str] = Field(None, description="Free-text reason")
    ip_address: Optional[str] = Field(None, description="Client address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    timestamp: datetime = Field(
        default_factory=DeterministicClock.utcnow,
        description="When the change was recorded",
    )
    entry_hash: str = Field(default="", description="SHA-256 of entry content")

    model_config = {"frozen": True, "extra": "forbid"}

    def compute_hash(self) -> str:
        """Calculate SHA-256 hash of the entry content (excluding the hash)."""
        return content_hash(self.model_dump(exclude={"entry_hash"}))

    def sealed(self) -> AuditEntry:
        """Return a copy with ``entry_hash`` filled in."""
        return self.model_copy(update={"entry_hash": self.compute_hash()})


class AuditQuery(BaseModel):
    """Filters for reading the audit log. Omitted filters do not restrict."""

    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None
    related_batch_id: Optional[str] = None
    action: Optional[AuditAction] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: int = Field(0, ge=0)

    model_config = {"frozen": True, "extra": "forbid"}

    def matches(self, entry: AuditEntry) -> bool:
        """Return True when the entry satisfies every given filter."""
        return (
            (self.entity_type is None or entry.entity_type == self.entity_type)
            and (self.entity_id is None or entry.entity_id == self.entity_id)
            and (self.actor_id is None or entry.actor_id == self.actor_id)
            and (
                self.related_batch_id is None
                or entry.related_batch_id == self.related_batch_id
            )
            and (self.action is None or entry.action == self.action)
        )


class AuditPage(BaseModel):
    """One page of audit entries, newest first."""

    entries: List[AuditEntry] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0


__all__ = [
    "AuditAction",
    "Actor",
    "FieldChange",
    "ChangeSet",
    "AuditEntry",
    "AuditQuery",
    "AuditPage",
]
