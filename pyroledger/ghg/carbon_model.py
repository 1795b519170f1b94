# -*- coding: utf-8 -*-
"""
Carbon Model - pure functions of the lifecycle accounting methodology

Baseline scenario (counterfactual, uncontrolled open burning):
    C_eff    = M_feed * (1 - contamination / 100) * f_C
    Baseline = C_eff * EF_open
    EF_open  = EF_CO2 + EF_CH4 * GWP_CH4 + EF_N2O * GWP_N2O   (per kg C)

Project scenario (pyrolysis, full cycle to combustion of the product):
    Process  = V_diesel * EF_diesel
             | T * burn_rate * EF_diesel          (diesel not measured)
             | 0                                  (neither measured)
             + P_kW * T * EF_grid                 (only when P_kW > 0 and T known)
    Oil      = V_oil * EF_oil
    Char     = min(C_eff * f_char * 44/12, Baseline)
    Project  = Process + Oil - Char

Every returned quantity is rounded to 8 decimal places, so totals formed
from them are exact.
"""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple, Optional

from pyroledger.determinism import quantize
from pyroledger.exceptions import ValidationError
from pyroledger.ghg.config import GHGConfig

#: Molecular weight ratio CO2 / C
C_TO_CO2 = Decimal("44") / Decimal("12")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class BaselineEmissions(NamedTuple):
    co2: Decimal
    ch4_co2e: Decimal
    n2o_co2e: Decimal
    total: Decimal


class ProcessEmissions(NamedTuple):
    diesel: Decimal
    electricity: Decimal
    total: Decimal
    estimated: bool


def _require_non_negative(value: Decimal, name: str) -> None:
    if value < 0:
        raise ValidationError(
            f"{name} must be >= 0, got {value}",
            invalid_fields={name: "must be >= 0"},
        )


def clean_feedstock_mass(feedstock_mass_kg: Decimal, contamination_pct: Decimal) -> Decimal:
    """Mass of polymer left once contamination is removed."""
    if feedstock_mass_kg <= 0:
        raise ValidationError(
            f"feedstock_mass_kg must be > 0, got {feedstock_mass_kg}",
            invalid_fields={"feedstock_mass_kg": "must be > 0"},
        )
    if not _ZERO <= contamination_pct <= _HUNDRED:
        raise ValidationError(
            f"contamination_pct must be within [0, 100], got {contamination_pct}",
            invalid_fields={"contamination_pct": "must be within [0, 100]"},
        )
    return quantize(feedstock_mass_kg * (1 - contamination_pct / _HUNDRED))


def effective_carbon_mass(
    feedstock_mass_kg: Decimal,
    contamination_pct: Decimal,
    config: GHGConfig,
) -> Decimal:
    """Carbon mass in the clean polymer fraction of the feedstock."""
    clean = clean_feedstock_mass(feedstock_mass_kg, contamination_pct)
    return quantize(clean * config.polymer_carbon_fraction)


def baseline_emissions(effective_carbon_kg: Decimal, config: GHGConfig) -> BaselineEmissions:
    """Emissions had the carbon been burned in the open."""
    _require_non_negative(effective_carbon_kg, "effective_carbon_kg")
    co2 = quantize(effective_carbon_kg * config.open_burning_co2_factor)
    ch4 = quantize(effective_carbon_kg * config.open_burning_ch4_factor * config.gwp_ch4)
    n2o = quantize(effective_carbon_kg * config.open_burning_n2o_factor * config.gwp_n2o)
    return BaselineEmissions(co2=co2, ch4_co2e=ch4, n2o_co2e=n2o, total=co2 + ch4 + n2o)


def process_emissions(
    diesel_consumed_l: Optional[Decimal],
    duration_hours: Optional[Decimal],
    config: GHGConfig,
) -> ProcessEmissions:
    """Emissions from the fuel and power used to run the conversion.

    Measured diesel wins; otherwise duration drives the burn-rate proxy;
    with neither, diesel emissions are zero.
    """
    estimated = False
    if diesel_consumed_l is not None:
        _require_non_negative(diesel_consumed_l, "diesel_consumed_l")
        diesel = quantize(diesel_consumed_l * config.diesel_combustion_factor)
    elif duration_hours is not None:
        _require_non_negative(duration_hours, "duration_hours")
        diesel = quantize(
            duration_hours
            * config.diesel_burn_rate_l_per_hour
            * config.diesel_combustion_factor
        )
        estimated = True
    else:
        diesel = _ZERO

    electricity = _ZERO
    if duration_hours is not None and config.plant_power_kw > 0:
        _require_non_negative(duration_hours, "duration_hours")
        electricity = quantize(
            config.plant_power_kw * duration_hours * config.grid_emission_factor
        )

    return ProcessEmissions(
        diesel=diesel,
        electricity=electricity,
        total=diesel + electricity,
        estimated=estimated,
    )


def oil_combustion_emissions(oil_output_l: Decimal, config: GHGConfig) -> Decimal:
    """Emissions when the produced oil is eventually burned as fuel."""
    _require_non_negative(oil_output_l, "oil_output_l")
    return quantize(oil_output_l * config.oil_combustion_factor)


def char_sequestration_credit(effective_carbon_kg: Decimal, config: GHGConfig) -> Decimal:
    """CO2e locked in the solid residue, capped at the full counterfactual."""
    _require_non_negative(effective_carbon_kg, "effective_carbon_kg")
    credit = quantize(
        effective_carbon_kg * config.char_sequestration_fraction * C_TO_CO2
    )
    cap = baseline_emissions(effective_carbon_kg, config).total
    return min(credit, cap)


__all__ = [
    "C_TO_CO2",
    "BaselineEmissions",
    "ProcessEmissions",
    "clean_feedstock_mass",
    "effective_carbon_mass",
    "baseline_emissions",
    "process_emissions",
    "oil_combustion_emissions",
    "char_sequestration_credit",
]
