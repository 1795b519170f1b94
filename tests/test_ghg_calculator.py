# -*- coding: utf-8 -*-
"""
GHG Calculator Tests

This test suite validates:
- The reference batch figures
- Exact totals and the avoided identity
- Input validation and boundary names
- Monotonic response to each input
- Reproducibility and provenance hashing
- Factor overrides from the environment
"""

from decimal import Decimal

import pytest

from pyroledger.exceptions import ValidationError
from pyroledger.ghg.calculator import GHGCalculator
from pyroledger.ghg.config import GHGConfig, get_config, reset_config
from pyroledger.ghg.models import BatchInputs

D = Decimal


# ==================== REFERENCE BATCH ====================

class TestReferenceBatch:
    """Test the worked 450 kg example."""

    def test_baseline(self, calculator, reference_inputs):
        result = calculator.calculate(reference_inputs)
        assert result.baseline_total == D("1298.33883484")
        assert result.baseline_co2 == D("1178.122185")
        assert result.baseline_ch4_co2e == D("69.5728026")
        assert result.baseline_n2o_co2e == D("50.64384724")

    def test_project_components(self, calculator, reference_inputs):
        result = calculator.calculate(reference_inputs)
        assert result.process_emissions == D("107.1")
        assert result.oil_combustion_emissions == D("963.9")
        assert result.char_sequestration_credit == D("180.291375")
        assert result.project_total == D("890.708625")

    def test_avoided(self, calculator, reference_inputs):
        result = calculator.calculate(reference_inputs)
        assert result.avoided == D("407.63020984")
        assert result.avoided > 0

    def test_reference_quantities(self, calculator, reference_inputs):
        result = calculator.calculate(reference_inputs)
        assert result.clean_feedstock_kg == D("382.5")
        assert result.effective_carbon_kg == D("327.8025")
        assert result.feedstock_mass_kg == D("450")
        assert result.process_emissions_estimated is False
        assert result.methodology_version == GHGConfig().methodology_version

    def test_reduction_percent(self, calculator, reference_inputs):
        result = calculator.calculate(reference_inputs)
        assert D("31.3") < result.reduction_percent < D("31.5")

    def test_summary(self, calculator, reference_inputs):
        summary = calculator.calculate(reference_inputs).summary()
        assert summary["baseline"] == "1298.3 kg CO2e"
        assert summary["avoided"] == "407.6 kg CO2e"


# ==================== EXACT TOTALS ====================

class TestExactTotals:
    """Test that totals are exact sums of their components."""

    @pytest.mark.parametrize("inputs", [
        {"feedstock_mass_kg": 450, "contamination_pct": 15, "oil_output_l": 360,
         "diesel_consumed_l": 40, "duration_hours": 6},
        {"feedstock_mass_kg": "123.456", "contamination_pct": "7.5", "oil_output_l": "99.99"},
        {"feedstock_mass_kg": 1, "oil_output_l": 0, "duration_hours": "0.3333"},
        {"feedstock_mass_kg": 10, "oil_output_l": 1000, "diesel_consumed_l": 55.5},
    ])
    def test_identities(self, calculator, inputs):
        result = calculator.calculate(inputs)
        assert result.project_total == (
            result.process_emissions
            + result.oil_combustion_emissions
            - result.char_sequestration_credit
        )
        assert result.avoided == result.baseline_total - result.project_total
        assert result.char_sequestration_credit <= result.baseline_total

    def test_avoided_may_be_negative(self, calculator):
        """Test that a batch worse than open burning reports a negative figure."""
        result = calculator.calculate({"feedstock_mass_kg": 10, "oil_output_l": 1000})
        assert result.avoided < 0


# ==================== VALIDATION ====================

class TestValidation:
    """Test rejection of impossible inputs."""

    @pytest.mark.parametrize("mass", [0, -5, "0"])
    def test_feedstock_must_be_positive(self, calculator, mass):
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate({"feedstock_mass_kg": mass})
        assert "feedstock_mass_kg" in exc_info.value.invalid_fields

    def test_feedstock_required(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate({"oil_output_l": 10})

    @pytest.mark.parametrize("field", ["oil_output_l", "diesel_consumed_l", "duration_hours"])
    def test_negative_quantities_rejected(self, calculator, field):
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate({"feedstock_mass_kg": 100, field: -1})
        assert field in exc_info.value.invalid_fields

    @pytest.mark.parametrize("pct", [-1, 100.5])
    def test_contamination_range(self, calculator, pct):
        with pytest.raises(ValidationError):
            calculator.calculate({"feedstock_mass_kg": 100, "contamination_pct": pct})

    def test_all_problems_reported_together(self, calculator):
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate({
                "feedstock_mass_kg": 100, "oil_output_l": -1, "diesel_consumed_l": -2,
            })
        assert set(exc_info.value.invalid_fields) == {"oil_output_l", "diesel_consumed_l"}

    def test_non_numeric_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate({"feedstock_mass_kg": "heavy"})

    def test_non_mapping_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate([450, 15])

    def test_unknown_input_rejected(self, calculator):
        """Test that a misspelled input name is a validation failure, not a crash."""
        with pytest.raises(ValidationError) as exc_info:
            calculator.calculate({
                "feedstockMass": 450, "oilOutput": 360, "contaminationPct": 15,
            })
        assert "contaminationPct" in exc_info.value.invalid_fields


# ==================== INPUT HANDLING ====================

class TestInputHandling:
    """Test boundary names, defaults and optional inputs."""

    def test_camel_case_names(self, calculator, reference_inputs):
        camel = {
            "feedstockMass": 450,
            "contaminationFraction": 15,
            "oilOutput": 360,
            "dieselConsumed": 40,
            "durationHours": 6,
        }
        assert calculator.calculate(camel).avoided == calculator.calculate(reference_inputs).avoided

    def test_default_contamination(self, calculator, reference_inputs):
        """Test that a missing contamination uses the configured default of 15%."""
        del reference_inputs["contamination_pct"]
        assert calculator.calculate(reference_inputs).avoided == D("407.63020984")

    def test_oil_defaults_to_zero(self, calculator):
        result = calculator.calculate({"feedstock_mass_kg": 450})
        assert result.oil_combustion_emissions == 0

    def test_duration_proxy_flagged(self, calculator, reference_inputs):
        del reference_inputs["diesel_consumed_l"]
        result = calculator.calculate(reference_inputs)
        assert result.process_emissions_estimated is True
        assert result.process_emissions == D("4.01625")

    def test_no_fuel_information(self, calculator):
        result = calculator.calculate({"feedstock_mass_kg": 450, "oil_output_l": 360})
        assert result.process_emissions == 0
        assert result.process_emissions_estimated is False

    def test_accepts_model_instance(self, calculator, reference_inputs):
        inputs = BatchInputs.model_validate(reference_inputs)
        assert calculator.calculate(inputs).avoided == D("407.63020984")

    def test_electricity_term(self, reference_inputs):
        calc = GHGCalculator(GHGConfig(plant_power_kw=D("10")))
        result = calc.calculate(reference_inputs)
        assert result.electricity_emissions == D("26.1")
        assert result.avoided == D("407.63020984") - D("26.1")


# ==================== MONOTONICITY ====================

class TestMonotonicity:
    """Test the direction each input moves the avoided figure."""

    def _avoided(self, calculator, reference_inputs, **changes):
        return calculator.calculate({**reference_inputs, **changes}).avoided

    def test_more_oil_less_avoided(self, calculator, reference_inputs):
        assert self._avoided(calculator, reference_inputs, oil_output_l=400) < \
            self._avoided(calculator, reference_inputs, oil_output_l=300)

    def test_more_diesel_less_avoided(self, calculator, reference_inputs):
        assert self._avoided(calculator, reference_inputs, diesel_consumed_l=80) < \
            self._avoided(calculator, reference_inputs, diesel_consumed_l=20)

    def test_more_contamination_lower_baseline(self, calculator, reference_inputs):
        low = calculator.calculate({**reference_inputs, "contamination_pct": 5})
        high = calculator.calculate({**reference_inputs, "contamination_pct": 40})
        assert high.baseline_total < low.baseline_total

    def test_more_feedstock_higher_baseline(self, calculator, reference_inputs):
        small = calculator.calculate({**reference_inputs, "feedstock_mass_kg": 300})
        large = calculator.calculate({**reference_inputs, "feedstock_mass_kg": 600})
        assert large.baseline_total > small.baseline_total


# ==================== REPRODUCIBILITY ====================

class TestReproducibility:
    """Test that identical inputs give identical results."""

    def test_repeated_calls_identical(self, calculator, reference_inputs):
        first = calculator.calculate(reference_inputs)
        second = calculator.calculate(dict(reference_inputs))
        assert first == second
        assert len(first.provenance_hash) == 64

    def test_number_representation_irrelevant(self, calculator, reference_inputs):
        as_strings = {k: str(v) for k, v in reference_inputs.items()}
        as_floats = {k: float(v) for k, v in reference_inputs.items()}
        first = calculator.calculate(as_strings)
        assert first.provenance_hash == calculator.calculate(as_floats).provenance_hash

    def test_factor_change_changes_hash(self, reference_inputs):
        default = GHGCalculator(GHGConfig()).calculate(reference_inputs)
        revised = GHGCalculator(GHGConfig(gwp_ch4=D("27.9"))).calculate(reference_inputs)
        assert default.provenance_hash != revised.provenance_hash
        assert default.avoided != revised.avoided

    def test_result_is_frozen(self, calculator, reference_inputs):
        result = calculator.calculate(reference_inputs)
        with pytest.raises(Exception):
            result.avoided = D("0")


# ==================== CONFIGURATION ====================

class TestConfiguration:
    """Test factor overrides."""

    def test_env_override(self, monkeypatch, reference_inputs):
        monkeypatch.setenv("PYROLEDGER_GHG_OIL_COMBUSTION_FACTOR", "3")
        reset_config()
        result = GHGCalculator().calculate(reference_inputs)
        assert result.oil_combustion_emissions == D("1080")

    def test_bad_env_value_keeps_default(self, monkeypatch):
        monkeypatch.setenv("PYROLEDGER_GHG_GWP_CH4", "twenty-eight")
        reset_config()
        assert get_config().gwp_ch4 == D("28")

    def test_methodology_version_override(self, monkeypatch):
        monkeypatch.setenv("PYROLEDGER_GHG_METHODOLOGY_VERSION", "IPCC2019-AR6")
        assert GHGConfig.from_env().methodology_version == "IPCC2019-AR6"

    def test_out_of_range_fraction_rejected(self):
        with pytest.raises(ValueError):
            GHGConfig(char_sequestration_fraction=D("1.5"))

    def test_negative_factor_rejected(self):
        with pytest.raises(ValueError):
            GHGConfig(oil_combustion_factor=D("-1"))
