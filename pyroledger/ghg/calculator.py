# -*- coding: utf-8 -*-
"""
GHG Calculator - lifecycle avoided-emissions calculation for one batch

Orchestrates the carbon model over a batch's inputs to produce the
baseline, project and avoided figures.

Zero-Hallucination Guarantees:
    - All arithmetic uses ``Decimal`` rounded to 8 decimal places
    - Same inputs and factors always produce identical outputs
    - SHA-256 provenance hash over inputs, factors and outputs
    - No side effects: callers persist the result

Example:
    >>> from pyroledger.ghg.calculator import GHGCalculator
    >>> calc = GHGCalculator()
    >>> result = calc.calculate({
    ...     "feedstock_mass_kg": 450,
    ...     "contamination_pct": 15,
    ...     "oil_output_l": 360,
    ...     "diesel_consumed_l": 40,
    ...     "duration_hours": 6,
    ... })
    >>> result.avoided > 0
    True
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from pyroledger.determinism import canonicalize, content_hash, quantize
from pyroledger.exceptions import ValidationError
from pyroledger.ghg import carbon_model
from pyroledger.ghg.config import GHGConfig, get_config
from pyroledger.ghg.metrics import record_avoided, record_calculation
from pyroledger.ghg.models import BatchInputs, GHGResult

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class GHGCalculator:
    """Computes a GHGResult from BatchInputs.

    The calculator holds only its (immutable) factor set, so a single
    instance is safe to share between threads and batches.

    Attributes:
        config: GHGConfig emission factor set.
    """

    def __init__(self, config: Optional[GHGConfig] = None) -> None:
        """Initialize GHGCalculator.

        Args:
            config: Optional factor set. Uses global config if None.
        """
        self.config = config or get_config()

    def calculate(self, inputs: Union[BatchInputs, Mapping[str, Any]]) -> GHGResult:
        """Calculate lifecycle GHG figures for a batch.

        Args:
            inputs: BatchInputs, or a mapping with snake_case field names or
                the camelCase boundary names (feedstockMass,
                contaminationFraction, oilOutput, dieselConsumed,
                durationHours).

        Returns:
            GHGResult with exact totals.

        Raises:
            ValidationError: If any physical input is missing, negative or
                out of range.
        """
        start = time.monotonic()
        try:
            batch_inputs = self._coerce(inputs)
            result = self._compute(batch_inputs)
        except ValidationError as e:
            record_calculation("validation_error", time.monotonic() - start)
            logger.info("GHG calculation rejected: %s", e.message)
            raise

        record_calculation("success", time.monotonic() - start)
        record_avoided(float(result.avoided))
        logger.debug(
            "GHG calculated: baseline=%s project=%s avoided=%s hash=%s",
            result.baseline_total, result.project_total,
            result.avoided, result.provenance_hash[:16],
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce(inputs: Union[BatchInputs, Mapping[str, Any]]) -> BatchInputs:
        if isinstance(inputs, BatchInputs):
            return inputs
        if not isinstance(inputs, Mapping):
            raise ValidationError(
                f"Batch inputs must be a mapping, got {type(inputs).__name__}",
            )
        try:
            return BatchInputs.model_validate(dict(inputs))
        except PydanticValidationError as e:
            invalid = {
                ".".join(str(p) for p in err["loc"]) or "__root__": err["msg"]
                for err in e.errors()
            }
            raise ValidationError(
                "Invalid batch inputs: " + ", ".join(sorted(invalid)),
                invalid_fields=invalid,
            ) from e

    def _compute(self, inputs: BatchInputs) -> GHGResult:
        cfg = self.config
        contamination = (
            inputs.contamination_pct
            if inputs.contamination_pct is not None
            else cfg.default_contamination_pct
        )

        clean_kg = carbon_model.clean_feedstock_mass(inputs.feedstock_mass_kg, contamination)
        carbon_kg = carbon_model.effective_carbon_mass(
            inputs.feedstock_mass_kg, contamination, cfg,
        )

        baseline = carbon_model.baseline_emissions(carbon_kg, cfg)
        process = carbon_model.process_emissions(
            inputs.diesel_consumed_l, inputs.duration_hours, cfg,
        )
        oil = carbon_model.oil_combustion_emissions(inputs.oil_output_l, cfg)
        char = carbon_model.char_sequestration_credit(carbon_kg, cfg)

        project_total = process.total + oil - char
        avoided = baseline.total - project_total

        reduction = (
            quantize(avoided / baseline.total * _HUNDRED)
            if baseline.total > 0 else _ZERO
        )
        per_kg = quantize(avoided / clean_kg) if clean_kg > 0 else _ZERO

        outputs = {
            "process_emissions": process.total,
            "oil_combustion_emissions": oil,
            "char_sequestration_credit": char,
            "project_total": project_total,
            "baseline_total": baseline.total,
            "avoided": avoided,
        }
        provenance_hash = content_hash({
            "inputs": inputs.model_dump(),
            "effective_contamination_pct": contamination,
            "factors": cfg.factor_summary(),
            "outputs": canonicalize(outputs),
        })

        return GHGResult(
            **outputs,
            baseline_co2=baseline.co2,
            baseline_ch4_co2e=baseline.ch4_co2e,
            baseline_n2o_co2e=baseline.n2o_co2e,
            diesel_emissions=process.diesel,
            electricity_emissions=process.electricity,
            process_emissions_estimated=process.estimated,
            feedstock_mass_kg=inputs.feedstock_mass_kg,
            clean_feedstock_kg=clean_kg,
            effective_carbon_kg=carbon_kg,
            reduction_percent=reduction,
            avoided_per_kg_feedstock=per_kg,
            methodology_version=cfg.methodology_version,
            provenance_hash=provenance_hash,
        )


__all__ = ["GHGCalculator"]
