# -*- coding: utf-8 -*-
"""
Lifecycle GHG Accounting Engine
===============================

Converts a batch's feedstock mass, contamination, oil yield, fuel use and
duration into baseline, project and avoided emissions (kg CO2e).

Key Components:
    - config: GHGConfig emission factors with PYROLEDGER_GHG_ env prefix
    - models: BatchInputs, GHGResult
    - carbon_model: pure methodology functions
    - calculator: GHGCalculator entry point
    - metrics: Prometheus metrics

Example:
    >>> from pyroledger.ghg import GHGCalculator
    >>> result = GHGCalculator().calculate({"feedstock_mass_kg": 450, "oil_output_l": 360})
    >>> result.avoided == result.baseline_total - result.project_total
    True
"""

from pyroledger.ghg.config import GHGConfig, get_config, reset_config, set_config
from pyroledger.ghg.models import BatchInputs, GHGResult
from pyroledger.ghg.calculator import GHGCalculator

__all__ = [
    "GHGConfig",
    "get_config",
    "set_config",
    "reset_config",
    "BatchInputs",
    "GHGResult",
    "GHGCalculator",
]
