# -*- coding: utf-8 -*-
"""
Batch Lifecycle - create, update and complete batches with audit history

Wires the batch store to the audit trail and the GHG calculator:

    create   -> store.add      -> audit CREATE (full snapshot)
    update   -> store.replace  -> audit UPDATE (diff, skipped when no-op)
    complete -> GHGCalculator  -> result stored on the batch
    lab      -> store.replace  -> audit CREATE of the LabResult

The GHG result is recomputed whenever a batch is COMPLETED and one of its
physical inputs changed, so a stored result never describes stale inputs.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from pyroledger.audit.models import Actor, AuditAction
from pyroledger.audit.trail import AuditTrail
from pyroledger.batches.models import (
    Batch,
    BatchCreate,
    BatchStatus,
    BatchUpdate,
    LabResult,
    LabResultCreate,
    generate_batch_code,
)
from pyroledger.batches.store import BatchStore
from pyroledger.determinism import DeterministicClock
from pyroledger.exceptions import NotFoundError, ValidationError
from pyroledger.ghg.calculator import GHGCalculator

logger = logging.getLogger(__name__)

#: Batch fields that feed the GHG calculation
GHG_INPUT_FIELDS = frozenset({
    "feedstock_weight_kg",
    "contamination_pct",
    "oil_output_l",
    "diesel_consumed_l",
    "duration_minutes",
})


def _validate(model: type, data: Any) -> Any:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        invalid = {
            ".".join(str(p) for p in err["loc"]) or "__root__": err["msg"]
            for err in e.errors()
        }
        raise ValidationError(
            f"Invalid {model.__name__}: {len(invalid)} field(s) rejected",
            invalid_fields=invalid,
        ) from e


class BatchLifecycle:
    """Mutations of batch records, each recorded in the audit trail.

    Attributes:
        store: BatchStore holding the records.
        trail: AuditTrail receiving one entry per accepted mutation.
        calculator: GHGCalculator run on completion.
    """

    def __init__(
        self,
        store: BatchStore,
        trail: AuditTrail,
        calculator: Optional[GHGCalculator] = None,
    ) -> None:
        self.store = store
        self.trail = trail
        self.calculator = calculator or GHGCalculator()

    def get(self, batch_id: str) -> Batch:
        """Return a batch or raise NotFoundError."""
        batch = self.store.get(batch_id)
        if batch is None:
            raise NotFoundError(
                f"Batch {batch_id} not found",
                entity_type="Batch", entity_id=batch_id,
            )
        return batch

    def list_batches(self) -> List[Batch]:
        return self.store.list_batches()

    def create(
        self,
        actor: Actor,
        data: Union[BatchCreate, Mapping[str, Any]],
        reason: Optional[str] = None,
    ) -> Batch:
        """Register a new ACTIVE batch with a generated code.

        Args:
            actor: Who registers the batch.
            data: BatchCreate or equivalent mapping.
            reason: Optional reason recorded in the audit entry.

        Returns:
            The stored Batch.
        """
        request = _validate(BatchCreate, data)
        batch_date = request.date or DeterministicClock.utcnow().date()

        prefix = generate_batch_code(batch_date, request.feedstock_type, 0).rsplit("/", 1)[0]
        sequence = self.store.count_code_prefix(prefix + "/") + 1
        batch = Batch(
            code=generate_batch_code(batch_date, request.feedstock_type, sequence),
            date=batch_date,
            status=BatchStatus.ACTIVE,
            **request.model_dump(exclude={"date"}),
        )
        self.store.add(batch)

        self.trail.record(
            actor,
            AuditAction.CREATE,
            "Batch",
            batch.batch_id,
            related_batch_id=batch.batch_id,
            changes=batch.audit_snapshot(),
            reason=reason,
        )
        logger.info("Batch %s created (%s)", batch.code, batch.batch_id)
        return batch

    def update(
        self,
        actor: Actor,
        batch_id: str,
        data: Union[BatchUpdate, Mapping[str, Any]],
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Batch:
        """Apply a partial update, recomputing GHG when the batch is complete.

        Args:
            actor: Who makes the change.
            batch_id: Batch to update.
            data: BatchUpdate or mapping; only provided fields change.
            reason: Optional reason recorded in the audit entry.
            ip_address: Optional client address for the audit entry.
            user_agent: Optional client user agent for the audit entry.

        Returns:
            The stored Batch after the update.

        Raises:
            NotFoundError: If the batch does not exist.
            ValidationError: If the update or the GHG inputs are invalid.
        """
        request = _validate(BatchUpdate, data)
        old = self.get(batch_id)
        changes = request.model_dump(exclude_unset=True)

        new = _validate(Batch, {
            **old.model_dump(),
            **changes,
            "updated_at": DeterministicClock.utcnow(),
        })

        if new.status is BatchStatus.COMPLETED and (
            old.status is not BatchStatus.COMPLETED
            or old.ghg is None
            or GHG_INPUT_FIELDS.intersection(changes)
        ):
            ghg = self.calculator.calculate(new.ghg_inputs())
            new = new.model_copy(update={"ghg": ghg})
            logger.info(
                "Batch %s GHG computed: avoided=%s kg CO2e",
                new.code, ghg.avoided,
            )

        self.store.replace(new)
        self.trail.record_update(
            actor,
            "Batch",
            batch_id,
            old.audit_snapshot(),
            new.audit_snapshot(),
            related_batch_id=batch_id,
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return new

    def add_lab_result(
        self,
        actor: Actor,
        batch_id: str,
        data: Union[LabResultCreate, Mapping[str, Any]],
    ) -> LabResult:
        """Attach a lab result to a batch.

        Raises:
            NotFoundError: If the batch does not exist.
        """
        request = _validate(LabResultCreate, data)
        batch = self.get(batch_id)
        lab = LabResult(**request.model_dump())

        updated = batch.model_copy(update={
            "lab_results": [*batch.lab_results, lab],
            "updated_at": DeterministicClock.utcnow(),
        })
        self.store.replace(updated)

        self.trail.record(
            actor,
            AuditAction.CREATE,
            "LabResult",
            lab.lab_result_id,
            related_batch_id=batch_id,
            changes=lab,
        )
        logger.info(
            "Lab result %s (%s) added to batch %s",
            lab.sample_number, lab.lab_name, batch.code,
        )
        return lab


__all__ = ["GHG_INPUT_FIELDS", "BatchLifecycle"]
