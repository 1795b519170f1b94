# -*- coding: utf-8 -*-
"""
Record Differ - minimal field-level change-sets between two snapshots

Values are compared in canonical form (see ``pyroledger.determinism``), so
representation differences such as ``450`` vs ``450.0``, a naive vs an
aware datetime for the same instant, or dict key order never show up as a
change.

Entity kinds with a declared field list in ``ENTITY_FIELDS`` are compared on
exactly those fields. Other kinds are compared on the union of both
snapshots' keys. Volatile fields (``updated_at`` by default) are never
compared.

Example:
    >>> differ = RecordDiffer()
    >>> cs = differ.diff({"oil_output_l": 300}, {"oil_output_l": 360.0})
    >>> cs["oil_output_l"].new
    360.0
    >>> differ.diff({"a": 1}, {"a": 1.0}) is None
    True
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel

from pyroledger.audit.models import ChangeSet, FieldChange
from pyroledger.determinism import canonical_json

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Declared fields per entity kind
# ---------------------------------------------------------------------------

ENTITY_FIELDS: Dict[str, Tuple[str, ...]] = {
    "Batch": (
        "code", "date", "status", "feedstock_type", "feedstock_origin",
        "feedstock_weight_kg", "feedstock_condition", "contamination_pct",
        "oil_output_l", "oil_weight_kg", "residue_weight_kg", "yield_percent",
        "diesel_consumed_l", "duration_minutes", "max_reactor_temp_c",
        "stop_reason", "notes", "operators", "ghg",
    ),
    "LabResult": (
        "lab_name", "lab_certification", "sample_number", "lot_number",
        "report_date", "appearance", "color", "viscosity_40c",
        "water_content", "sulfur_percent", "verdict", "analyst_name",
    ),
    "Equipment": (
        "name", "equipment_type", "status", "manufacturer", "model",
        "serial_number", "location", "calibration_date",
        "calibration_expiry", "specs", "parent_equipment_id", "notes",
    ),
    "ProductFraction": (
        "name", "fraction_type", "volume_l", "weight_kg", "destination",
        "equipment_id", "notes",
    ),
    "Certificate": (
        "code", "content_hash", "verification_url", "issued_at",
        "verified_at", "co2_avoided_kg", "plastic_diverted_kg",
    ),
    "ProcessEvent": ("timestamp", "event_type", "detail", "notes"),
    "Photo": ("url", "photo_type", "caption", "taken_at"),
    "SensorReading": (
        "timestamp", "reactor_temp", "control_temp", "steel_temp",
        "chain_temp", "compressor_psi", "regulator_psi", "damper_position",
        "notes",
    ),
}

DEFAULT_IGNORED_FIELDS: FrozenSet[str] = frozenset({"updated_at", "updatedAt"})


def _as_mapping(record: Any) -> Mapping[str, Any]:
    if record is None:
        return {}
    if isinstance(record, BaseModel):
        return record.model_dump()
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    if isinstance(record, Mapping):
        return record
    raise TypeError(f"Cannot diff record of type {type(record).__name__}")


class RecordDiffer:
    """Computes ChangeSets between two snapshots of the same entity.

    Attributes:
        ignored_fields: Fields never compared.
        entity_fields: Declared field list per entity kind.
    """

    def __init__(
        self,
        ignored_fields: Optional[Iterable[str]] = None,
        entity_fields: Optional[Mapping[str, Tuple[str, ...]]] = None,
    ) -> None:
        self.ignored_fields: FrozenSet[str] = (
            frozenset(ignored_fields) if ignored_fields is not None
            else DEFAULT_IGNORED_FIELDS
        )
        self.entity_fields: Mapping[str, Tuple[str, ...]] = (
            entity_fields if entity_fields is not None else ENTITY_FIELDS
        )

    def diff(
        self,
        old: Any,
        new: Any,
        entity_type: Optional[str] = None,
    ) -> Optional[ChangeSet]:
        """Return the fields whose canonical values differ.

        Args:
            old: Snapshot before the mutation (mapping, pydantic model or
                dataclass).
            new: Snapshot after the mutation.
            entity_type: Entity kind; selects a declared field list when one
                is registered.

        Returns:
            ChangeSet with at least one entry, or None when nothing changed.
        """
        old_map = _as_mapping(old)
        new_map = _as_mapping(new)

        changes: Dict[str, FieldChange] = {}
        for name in self._fields_to_compare(old_map, new_map, entity_type):
            old_value = old_map.get(name)
            new_value = new_map.get(name)
            if canonical_json(old_value) != canonical_json(new_value):
                changes[name] = FieldChange(old=old_value, new=new_value)

        if not changes:
            return None
        logger.debug(
            "Diffed %s: %d changed field(s): %s",
            entity_type or "record", len(changes), ", ".join(sorted(changes)),
        )
        return ChangeSet(changes=changes)

    def _fields_to_compare(
        self,
        old_map: Mapping[str, Any],
        new_map: Mapping[str, Any],
        entity_type: Optional[str],
    ) -> Tuple[str, ...]:
        declared = self.entity_fields.get(entity_type) if entity_type else None
        if declared is not None:
            names = declared
        else:
            names = tuple(sorted(set(old_map) | set(new_map)))
        return tuple(n for n in names if n not in self.ignored_fields)


__all__ = ["ENTITY_FIELDS", "DEFAULT_IGNORED_FIELDS", "RecordDiffer"]
