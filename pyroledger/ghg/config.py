# -*- coding: utf-8 -*-
"""
GHG Accounting Configuration - Emission factors for lifecycle accounting

Centralized configuration for the pyrolysis GHG accounting engine covering:
- Feedstock chemistry (polymer carbon fraction, default contamination)
- Open-burning baseline factors per kg of carbon and GWP values
- Process fuel factors (diesel combustion, duration-based burn proxy)
- Optional grid electricity term
- Downstream oil combustion factor
- Char sequestration fraction

The default magnitudes follow IPCC 2006 Vol 5 Table 5.3 (open burning),
IPCC 2006 Vol 2 (diesel combustion) and IPCC AR5 GWPs, re-expressed per kg
of carbon. They encode an external methodology subject to revision, so every
one of them can be overridden via environment variables with the
``PYROLEDGER_GHG_`` prefix (e.g. ``PYROLEDGER_GHG_OPEN_BURNING_CO2_FACTOR``).

Example:
    >>> from pyroledger.ghg.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.open_burning_factor, cfg.methodology_version)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Optional

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PYROLEDGER_GHG_"


@dataclass(frozen=True)
class GHGConfig:
    """Emission factor set for the GHG accounting engine.

    Attributes:
        polymer_carbon_fraction: Carbon share of the polymer by mass
            ((C2H4)n is 85.7% carbon).
        default_contamination_pct: Contamination assumed when a batch does
            not report one.
        open_burning_co2_factor: kg CO2 released per kg carbon burned in the
            open.
        open_burning_ch4_factor: kg CH4 released per kg carbon burned in the
            open.
        open_burning_n2o_factor: kg N2O released per kg carbon burned in the
            open.
        gwp_ch4: Global warming potential of CH4.
        gwp_n2o: Global warming potential of N2O.
        diesel_combustion_factor: kg CO2e per liter of diesel burned.
        diesel_burn_rate_l_per_hour: Liters of diesel per process hour, used
            when consumption was not measured.
        oil_combustion_factor: kg CO2e per liter of pyrolysis oil eventually
            burned as fuel.
        char_sequestration_fraction: Share of effective carbon retained in
            the solid residue.
        plant_power_kw: Plant electrical draw; 0 disables the electricity
            term.
        grid_emission_factor: kg CO2e per kWh of grid electricity.
        methodology_version: Label recorded on every result.
    """

    # -- Feedstock chemistry -------------------------------------------------
    polymer_carbon_fraction: Decimal = Decimal("0.857")
    default_contamination_pct: Decimal = Decimal("15")

    # -- Baseline: open burning ----------------------------------------------
    open_burning_co2_factor: Decimal = Decimal("3.594")
    open_burning_ch4_factor: Decimal = Decimal("0.00758")
    open_burning_n2o_factor: Decimal = Decimal("0.000583")
    gwp_ch4: Decimal = Decimal("28")
    gwp_n2o: Decimal = Decimal("265")

    # -- Project: process fuel -----------------------------------------------
    diesel_combustion_factor: Decimal = Decimal("2.6775")
    diesel_burn_rate_l_per_hour: Decimal = Decimal("0.25")
    plant_power_kw: Decimal = Decimal("0")
    grid_emission_factor: Decimal = Decimal("0.435")

    # -- Project: product and residue ----------------------------------------
    oil_combustion_factor: Decimal = Decimal("2.6775")
    char_sequestration_fraction: Decimal = Decimal("0.15")

    methodology_version: str = "IPCC2006-AR5-v1"

    def __post_init__(self) -> None:
        for name in ("polymer_carbon_fraction", "char_sequestration_fraction"):
            value = getattr(self, name)
            if not Decimal("0") <= value <= Decimal("1"):
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if not Decimal("0") <= self.default_contamination_pct <= Decimal("100"):
            raise ValueError(
                "default_contamination_pct must be within [0, 100], "
                f"got {self.default_contamination_pct}"
            )
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal) and value < 0:
                raise ValueError(f"{f.name} must be non-negative, got {value}")

    @property
    def open_burning_factor(self) -> Decimal:
        """kg CO2e per kg carbon for uncontrolled open burning."""
        return (
            self.open_burning_co2_factor
            + self.open_burning_ch4_factor * self.gwp_ch4
            + self.open_burning_n2o_factor * self.gwp_n2o
        )

    def factor_summary(self) -> dict:
        """Return every factor as a string keyed by field name."""
        return {f.name: str(getattr(self, f.name)) for f in fields(self)}

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> GHGConfig:
        """Build a GHGConfig from environment variables.

        Every field can be overridden via ``PYROLEDGER_GHG_<FIELD_UPPER>``.
        Decimal values are parsed through ``Decimal(str)``; unparseable
        values are logged and the default is kept.

        Returns:
            Populated GHGConfig instance.
        """
        prefix = _ENV_PREFIX
        overrides = {}

        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            if f.name == "methodology_version":
                overrides[f.name] = raw
                continue
            try:
                overrides[f.name] = Decimal(raw.strip())
            except InvalidOperation:
                logger.warning(
                    "Invalid decimal for %s%s=%s, using default %s",
                    prefix, f.name.upper(), raw, f.default,
                )

        config = cls(**overrides)

        logger.info(
            "GHGConfig loaded: methodology=%s, open_burning_factor=%s, "
            "diesel=%s, oil=%s, char_fraction=%s, overrides=%d",
            config.methodology_version,
            config.open_burning_factor,
            config.diesel_combustion_factor,
            config.oil_combustion_factor,
            config.char_sequestration_fraction,
            len(overrides),
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[GHGConfig] = None
_config_lock = threading.Lock()


def get_config() -> GHGConfig:
    """Return the singleton GHGConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = GHGConfig.from_env()
    return _config_instance


def set_config(config: GHGConfig) -> None:
    """Replace the singleton GHGConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("GHGConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "GHGConfig",
    "get_config",
    "set_config",
    "reset_config",
]
