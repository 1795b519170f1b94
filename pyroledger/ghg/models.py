# -*- coding: utf-8 -*-
"""
GHG Accounting Data Models

Pydantic v2 models for the lifecycle GHG accounting engine.

Models:
    - BatchInputs: validated physical parameters of one batch
    - GHGResult: baseline / project / avoided figures in kg CO2e

Both models are frozen: a result is recomputed whenever inputs change,
never mutated in place.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from pyroledger.determinism import to_decimal
from pyroledger.exceptions import ValidationError

# Boundary names used by API callers, mapped onto model fields
_INPUT_ALIASES = {
    "feedstockMass": "feedstock_mass_kg",
    "feedstock_mass": "feedstock_mass_kg",
    "contaminationFraction": "contamination_pct",
    "contamination_fraction": "contamination_pct",
    "oilOutput": "oil_output_l",
    "oil_output": "oil_output_l",
    "dieselConsumed": "diesel_consumed_l",
    "diesel_consumed": "diesel_consumed_l",
    "durationHours": "duration_hours",
}

_NON_NEGATIVE = ("oil_output_l", "diesel_consumed_l", "duration_hours")


class BatchInputs(BaseModel):
    """Physical parameters of a batch, validated before any calculation.

    Masses in kg, volumes in liters, contamination in percent. A missing
    contamination value stays ``None`` here; the calculator applies the
    configured default.
    """

    feedstock_mass_kg: Decimal = Field(..., description="Feedstock mass (kg), > 0")
    contamination_pct: Optional[Decimal] = Field(
        None, description="Contamination share of the feedstock (percent, 0-100)",
    )
    oil_output_l: Decimal = Field(
        Decimal("0"), description="Oil produced (liters), >= 0",
    )
    diesel_consumed_l: Optional[Decimal] = Field(
        None, description="Diesel burned to run the process (liters), >= 0",
    )
    duration_hours: Optional[Decimal] = Field(
        None, description="Process duration (hours), >= 0",
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        values: Dict[str, Any] = {}
        for key, value in data.items():
            values[_INPUT_ALIASES.get(key, key)] = value

        invalid: Dict[str, str] = {}

        if values.get("feedstock_mass_kg") is None:
            raise ValidationError(
                "feedstock_mass_kg is required",
                invalid_fields={"feedstock_mass_kg": "missing"},
            )
        for name in ("feedstock_mass_kg", "contamination_pct") + _NON_NEGATIVE:
            if values.get(name) is not None:
                values[name] = to_decimal(values[name], name)

        if values["feedstock_mass_kg"] <= 0:
            invalid["feedstock_mass_kg"] = "must be > 0"
        contamination = values.get("contamination_pct")
        if contamination is not None and not Decimal("0") <= contamination <= Decimal("100"):
            invalid["contamination_pct"] = "must be within [0, 100]"
        for name in _NON_NEGATIVE:
            if values.get(name) is not None and values[name] < 0:
                invalid[name] = "must be >= 0"

        if invalid:
            raise ValidationError(
                "Invalid batch inputs: " + ", ".join(
                    f"{k} {v}" for k, v in sorted(invalid.items())
                ),
                invalid_fields=invalid,
            )
        if values.get("oil_output_l") is None:
            values["oil_output_l"] = Decimal("0")
        return values


class GHGResult(BaseModel):
    """Lifecycle GHG figures for one batch, all in kg CO2e.

    ``project_total == process_emissions + oil_combustion_emissions -
    char_sequestration_credit`` and ``avoided == baseline_total -
    project_total`` hold exactly. ``avoided`` is negative when the process
    is worse than open burning.
    """

    # Core figures
    process_emissions: Decimal
    oil_combustion_emissions: Decimal
    char_sequestration_credit: Decimal
    project_total: Decimal
    baseline_total: Decimal
    avoided: Decimal

    # Baseline breakdown
    baseline_co2: Decimal
    baseline_ch4_co2e: Decimal
    baseline_n2o_co2e: Decimal

    # Process breakdown
    diesel_emissions: Decimal
    electricity_emissions: Decimal
    process_emissions_estimated: bool = False

    # Reference quantities
    feedstock_mass_kg: Decimal
    clean_feedstock_kg: Decimal
    effective_carbon_kg: Decimal
    reduction_percent: Decimal
    avoided_per_kg_feedstock: Decimal

    methodology_version: str
    provenance_hash: str = ""

    model_config = {"frozen": True, "extra": "forbid"}

    def summary(self) -> Dict[str, str]:
        """Human-readable one-line figures, one decimal place."""
        return {
            "baseline": f"{self.baseline_total:.1f} kg CO2e",
            "project": f"{self.project_total:.1f} kg CO2e",
            "avoided": f"{self.avoided:.1f} kg CO2e",
            "reduction": f"{self.reduction_percent:.0f}%",
            "per_kg": f"{self.avoided_per_kg_feedstock:.2f} kg CO2e/kg",
        }


__all__ = ["BatchInputs", "GHGResult"]
