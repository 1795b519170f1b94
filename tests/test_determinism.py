# -*- coding: utf-8 -*-
"""
Determinism Tests

This test suite validates:
- Canonical form of every supported value type
- Stable content hashing independent of key order and number representation
- Decimal coercion and quantization
- The freezable clock
"""

import hashlib
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

import pytest
from pydantic import BaseModel

from pyroledger.determinism import (
    DeterministicClock,
    canonical_json,
    canonicalize,
    content_hash,
    format_timestamp,
    quantize,
    to_decimal,
)
from pyroledger.exceptions import ValidationError


class Color(str, Enum):
    RED = "RED"


@dataclass
class Point:
    x: float
    y: Decimal


class Sample(BaseModel):
    name: str
    weight: Decimal


# ==================== CANONICALIZATION ====================

class TestCanonicalize:
    """Test the canonical value form."""

    def test_integral_numbers_become_int(self):
        """Test that 450, 450.0 and Decimal('450.00') canonicalize alike."""
        assert canonicalize(450) == 450
        assert canonicalize(450.0) == 450
        assert canonicalize(Decimal("450.00")) == 450
        assert isinstance(canonicalize(Decimal("450.00")), int)

    def test_fractional_numbers_become_decimal_strings(self):
        assert canonicalize(Decimal("1.50")) == "1.5"
        assert canonicalize(0.25) == "0.25"
        assert canonicalize(Decimal("-0.050")) == "-0.05"

    def test_float_and_decimal_fractions_agree(self):
        assert canonicalize(0.1) == canonicalize(Decimal("0.1"))
        assert canonicalize(450.5) == canonicalize(Decimal("450.500"))

    def test_no_exponent_notation(self):
        assert canonicalize(Decimal("1E-8")) == "0.00000001"
        assert canonicalize(1e-05) == "0.00001"

    def test_large_values_keep_every_digit(self):
        assert canonicalize(Decimal("123456789012.12345678")) == "123456789012.12345678"

    def test_bool_is_not_a_number(self):
        assert canonicalize(True) is True
        assert canonical_json(True) != canonical_json(1)

    def test_datetime_rendered_in_utc_with_milliseconds(self):
        """Test that aware datetimes are converted to UTC and naive ones taken as UTC."""
        aware = datetime(2026, 3, 14, 5, 30, 0, 123456, tzinfo=timezone(timedelta(hours=-5)))
        naive = datetime(2026, 3, 14, 10, 30, 0, 123000)
        assert canonicalize(aware) == "2026-03-14T10:30:00.123Z"
        assert canonicalize(naive) == "2026-03-14T10:30:00.123Z"

    def test_date_rendered_iso(self):
        assert canonicalize(date(2026, 3, 4)) == "2026-03-04"

    def test_enum_becomes_value(self):
        assert canonicalize(Color.RED) == "RED"

    def test_sets_become_sorted_lists(self):
        assert canonicalize({"b", "a", "c"}) == ["a", "b", "c"]

    def test_tuples_become_lists(self):
        assert canonicalize((1, 2.0)) == [1, 2]

    def test_models_and_dataclasses_dumped(self):
        assert canonicalize(Sample(name="x", weight=Decimal("2.0"))) == {"name": "x", "weight": 2}
        assert canonicalize(Point(x=1.5, y=Decimal("3"))) == {"x": "1.5", "y": 3}

    def test_non_finite_rejected(self):
        with pytest.raises(ValidationError):
            canonicalize(float("nan"))
        with pytest.raises(ValidationError):
            canonicalize(Decimal("Infinity"))

    def test_unsupported_type_rejected(self):
        with pytest.raises(TypeError):
            canonicalize(object())


class TestContentHash:
    """Test hashing of canonical serializations."""

    def test_key_order_does_not_matter(self):
        assert content_hash({"a": 1, "b": 2}) == content_hash({"b": 2, "a": 1})

    def test_number_representation_does_not_matter(self):
        assert content_hash({"w": 450}) == content_hash({"w": Decimal("450.000")})

    def test_canonical_json_is_compact_and_sorted(self):
        assert canonical_json({"b": Decimal("1.50"), "a": 2.0}) == '{"a":2,"b":"1.5"}'

    def test_hash_is_sha256_of_canonical_json(self):
        value = {"code": "B/03/1/LDPA/01", "avoided": Decimal("407.63")}
        expected = hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
        assert content_hash(value) == expected
        assert len(content_hash(value)) == 64

    def test_any_change_changes_hash(self):
        assert content_hash({"w": 450}) != content_hash({"w": 451})

    def test_eighth_decimal_place_changes_hash(self):
        """Test that large totals differing only in the last place hash apart."""
        assert content_hash({"avoided": Decimal("123456789012.12345678")}) != \
            content_hash({"avoided": Decimal("123456789012.12345679")})


# ==================== DECIMALS ====================

class TestDecimals:
    """Test numeric coercion and rounding."""

    def test_to_decimal_goes_through_string(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("bad", ["abc", None, True, float("inf")])
    def test_to_decimal_rejects_non_numbers(self, bad):
        with pytest.raises(ValidationError):
            to_decimal(bad, "field")

    def test_quantize_half_up_to_eight_places(self):
        assert quantize(Decimal("1.000000005")) == Decimal("1.00000001")
        assert quantize(Decimal("1.000000004")) == Decimal("1.00000000")


# ==================== CLOCK ====================

class TestDeterministicClock:
    """Test the freezable UTC clock."""

    def test_frozen_context(self):
        instant = datetime(2026, 1, 1, tzinfo=timezone.utc)
        with DeterministicClock.frozen(instant):
            assert DeterministicClock.utcnow() == instant
        assert DeterministicClock.utcnow() != instant

    def test_naive_freeze_taken_as_utc(self):
        DeterministicClock.freeze(datetime(2026, 1, 1))
        assert DeterministicClock.utcnow().tzinfo is timezone.utc

    def test_real_clock_is_aware(self):
        assert DeterministicClock.utcnow().tzinfo is not None

    def test_format_timestamp(self):
        assert format_timestamp(datetime(2026, 1, 2, 3, 4, 5, 6000)) == "2026-01-02T03:04:05.006Z"
