# -*- coding: utf-8 -*-
"""
Audit Trail - append-only, field-level change history for mutable records

Every accepted mutation produces at most one AuditEntry:
    - CREATE and DELETE always produce an entry whose payload is the full
      created or deleted snapshot.
    - UPDATE produces an entry only when its change-set is non-empty. A
      no-op update is not an event and is skipped silently.

Payloads are canonicalized before storage (stable key order, fixed date
representation) and each entry is sealed with a SHA-256 ``entry_hash``.
Entries are never edited or removed; reads are filtered and paginated.

Example:
    >>> from pyroledger.audit import AuditTrail, Actor, InMemoryAuditLogStore
    >>> trail = AuditTrail(InMemoryAuditLogStore())
    >>> actor = Actor(actor_id="u-1", actor_label="ops@example.com")
    >>> trail.record_update(
    ...     actor, "Batch", "b-1",
    ...     old={"oil_output_l": 300}, new={"oil_output_l": 300.0},
    ... ) is None
    True
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pyroledger.audit.config import AuditConfig, get_config
from pyroledger.audit.differ import RecordDiffer
from pyroledger.audit.metrics import record_entry, record_query, record_skip
from pyroledger.audit.models import (
    Actor,
    AuditAction,
    AuditEntry,
    AuditPage,
    AuditQuery,
    ChangeSet,
)
from pyroledger.audit.store import AuditLogStore
from pyroledger.determinism import canonicalize
from pyroledger.exceptions import ValidationError

logger = logging.getLogger(__name__)

ChangesArg = Union[ChangeSet, Mapping[str, Any], Any, None]


class AuditTrail:
    """Records and reads audit entries through an injected log store.

    Attributes:
        store: Append-only AuditLogStore.
        differ: RecordDiffer used by ``record_update``.
        config: AuditConfig instance.
    """

    def __init__(
        self,
        store: AuditLogStore,
        differ: Optional[RecordDiffer] = None,
        config: Optional[AuditConfig] = None,
    ) -> None:
        """Initialize AuditTrail.

        Args:
            store: Append-only log store.
            differ: Optional differ. Built from config if None.
            config: Optional config. Uses global config if None.
        """
        self.config = config or get_config()
        self.store = store
        self.differ = differ or RecordDiffer(ignored_fields=self.config.ignored_fields)

    def record(
        self,
        actor: Actor,
        action: Union[AuditAction, str],
        entity_type: str,
        entity_id: str,
        related_batch_id: Optional[str] = None,
        changes: ChangesArg = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        """Append one audit entry.

        Args:
            actor: Who made the change.
            action: CREATE, UPDATE or DELETE.
            entity_type: Kind of entity changed (e.g. "Batch").
            entity_id: ID of the entity changed.
            related_batch_id: Batch the entity belongs to, if any.
            changes: For UPDATE, a ChangeSet (or ``{field: {old, new}}``
                mapping) from the differ. For CREATE/DELETE, the full
                snapshot (mapping, pydantic model or dataclass).
            reason: Optional free-text reason.
            ip_address: Optional client address.
            user_agent: Optional client user agent.

        Returns:
            The stored AuditEntry, or None when nothing was recorded (empty
            UPDATE change-set, or recording disabled).

        Raises:
            ValidationError: On an unknown action or missing entity identity.
        """
        audit_action = self._parse_action(action)
        if not entity_type or not entity_id:
            raise ValidationError(
                "entity_type and entity_id are required",
                invalid_fields={
                    k: "missing" for k, v in
                    (("entity_type", entity_type), ("entity_id", entity_id)) if not v
                },
            )

        if not self.config.enabled:
            record_skip("disabled")
            return None

        if audit_action is AuditAction.UPDATE:
            change_set = self._as_change_set(changes)
            if not change_set:
                record_skip("no_change")
                logger.debug(
                    "Skipped no-op UPDATE audit for %s %s", entity_type, entity_id,
                )
                return None
            payload = change_set.to_payload()
        else:
            payload = self._snapshot_payload(changes)

        entry = AuditEntry(
            actor_id=actor.actor_id,
            actor_label=actor.actor_label,
            action=audit_action,
            entity_type=entity_type,
            entity_id=entity_id,
            related_batch_id=related_batch_id,
            changes=payload,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent,
        ).sealed()

        self.store.append(entry)
        record_entry(audit_action.value)
        logger.debug(
            "Audit %s %s %s by %s -> %s",
            audit_action.value, entity_type, entity_id,
            actor.actor_id, entry.entry_id,
        )
        return entry

    def record_update(
        self,
        actor: Actor,
        entity_type: str,
        entity_id: str,
        old: Any,
        new: Any,
        related_batch_id: Optional[str] = None,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        """Diff two snapshots and record the UPDATE if anything changed."""
        change_set = self.differ.diff(old, new, entity_type=entity_type)
        return self.record(
            actor,
            AuditAction.UPDATE,
            entity_type,
            entity_id,
            related_batch_id=related_batch_id,
            changes=change_set,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def query(self, query: Optional[AuditQuery] = None) -> AuditPage:
        """Read entries matching the filters, newest first.

        Args:
            query: Filters and pagination. Everything when None.

        Returns:
            AuditPage with the page and the total number of matches.
        """
        query = query or AuditQuery()
        limit = min(
            query.limit or self.config.default_page_size,
            self.config.max_page_size,
        )
        entries, total = self.store.query(query, limit)
        record_query()
        return AuditPage(entries=entries, total=total, limit=limit, offset=query.offset)

    def for_batch(self, batch_id: str, limit: Optional[int] = None) -> AuditPage:
        """History of every entity related to one batch, newest first."""
        return self.query(AuditQuery(
            related_batch_id=batch_id,
            limit=limit or self.config.batch_history_limit,
        ))

    @staticmethod
    def verify_entry(entry: AuditEntry) -> bool:
        """Return True if the entry's content still matches its hash."""
        return bool(entry.entry_hash) and entry.entry_hash == entry.compute_hash()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_action(action: Union[AuditAction, str]) -> AuditAction:
        try:
            return AuditAction(action)
        except ValueError as e:
            raise ValidationError(
                f"Unknown audit action {action!r}",
                invalid_fields={"action": "must be CREATE, UPDATE or DELETE"},
            ) from e

    @staticmethod
    def _as_change_set(changes: ChangesArg) -> Optional[ChangeSet]:
        if changes is None or isinstance(changes, ChangeSet):
            return changes
        if isinstance(changes, Mapping):
            return ChangeSet.from_mapping(changes)
        raise ValidationError(
            "UPDATE changes must be a ChangeSet or a {field: {old, new}} mapping",
            invalid_fields={"changes": type(changes).__name__},
        )

    @staticmethod
    def _snapshot_payload(snapshot: Any) -> Optional[dict]:
        if snapshot is None:
            return None
        if isinstance(snapshot, ChangeSet):
            return snapshot.to_payload()
        payload = canonicalize(snapshot)
        if not isinstance(payload, dict):
            raise ValidationError(
                "CREATE/DELETE snapshot must be a record",
                invalid_fields={"changes": type(snapshot).__name__},
            )
        return payload


__all__ = ["AuditTrail"]
