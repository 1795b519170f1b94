# -*- coding: utf-8 -*-
"""
PyroLedger Determinism Module - Canonical values, hashing and a freezable clock

Everything that is hashed or compared for audit purposes goes through
``canonicalize`` first, so that representation differences (float vs
Decimal, naive vs aware datetimes, dict ordering) never change a hash or
produce a spurious diff.

Canonical form:
    - None, str and bool pass through; enums become their value
    - int passes through; finite float/Decimal become int when integral,
      otherwise a plain decimal string with no exponent and no trailing
      zeros (floats via their shortest repr), so no digit is lost
    - datetime becomes UTC ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (naive means UTC)
    - date becomes ``YYYY-MM-DD``
    - mappings become dicts with str keys; lists/tuples become lists;
      sets become sorted lists
    - pydantic models and dataclasses are dumped to dicts first

``canonical_json`` serializes with sorted keys and no whitespace;
``content_hash`` is the SHA-256 hex digest of that string.

Example:
    >>> from decimal import Decimal
    >>> canonical_json({"b": Decimal("1.50"), "a": 2.0})
    '{"a":2,"b":"1.5"}'
"""

import dataclasses
import hashlib
import json
import math
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterator, Mapping, Optional

from pydantic import BaseModel

from pyroledger.exceptions import ValidationError

#: 8 decimal places for every derived quantity
PRECISION = Decimal("0.00000001")


class DeterministicClock:
    """
    A UTC clock that can be frozen for testing and auditing.

    Every timestamp the ledger writes (audit entries, certificate issuance,
    first verification) is read from this clock.
    """

    _lock = threading.Lock()
    _frozen_time: Optional[datetime] = None

    @classmethod
    def utcnow(cls) -> datetime:
        """Get current UTC time, either real or frozen."""
        frozen = cls._frozen_time
        if frozen is not None:
            return frozen
        return datetime.now(timezone.utc)

    @classmethod
    def freeze(cls, frozen_time: Optional[datetime] = None) -> None:
        """
        Freeze clock at specific time.

        Args:
            frozen_time: Time to freeze at (defaults to current time).
                Naive datetimes are taken as UTC.
        """
        if frozen_time is None:
            frozen_time = datetime.now(timezone.utc)
        elif frozen_time.tzinfo is None:
            frozen_time = frozen_time.replace(tzinfo=timezone.utc)
        with cls._lock:
            cls._frozen_time = frozen_time

    @classmethod
    def unfreeze(cls) -> None:
        """Unfreeze the clock."""
        with cls._lock:
            cls._frozen_time = None

    @classmethod
    @contextmanager
    def frozen(cls, frozen_time: Optional[datetime] = None) -> Iterator[None]:
        """
        Context manager for temporarily freezing time.

        Usage:
            with DeterministicClock.frozen(datetime(2025, 1, 1)):
                # All timestamps will be 2025-01-01
                pass
        """
        cls.freeze(frozen_time)
        try:
            yield
        finally:
            cls.unfreeze()


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Convert a numeric input to Decimal through its string form.

    Args:
        value: int, float, str or Decimal
        field_name: Name used in the error message

    Returns:
        Decimal representation

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a number, got bool",
            invalid_fields={field_name: "not a number"},
        )
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(
            f"{field_name} must be a number, got {value!r}",
            invalid_fields={field_name: "not a number"},
        ) from e
    if not result.is_finite():
        raise ValidationError(
            f"{field_name} must be finite, got {value!r}",
            invalid_fields={field_name: "not finite"},
        )
    return result


def quantize(value: Decimal) -> Decimal:
    """Round to 8 decimal places, half up."""
    return value.quantize(PRECISION, rounding=ROUND_HALF_UP)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as UTC ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def _canonical_number(value: Any) -> Any:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"Cannot canonicalize non-finite number {value!r}")
        value = Decimal(repr(value))
    if not value.is_finite():
        raise ValidationError(f"Cannot canonicalize non-finite number {value!r}")
    if value == value.to_integral_value():
        return int(value)
    return format(value, "f").rstrip("0")


def canonicalize(value: Any) -> Any:
    """
    Convert a value to its canonical JSON-safe form.

    Args:
        value: Any supported value (see module docstring)

    Returns:
        Structure made of None, bool, int, str, list and dict only

    Raises:
        ValidationError: On non-finite numbers
        TypeError: On unsupported types
    """
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, Enum):
        return canonicalize(value.value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        return _canonical_number(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, BaseModel):
        return canonicalize(value.model_dump())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return canonicalize(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(canonicalize(k)): canonicalize(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        items = [canonicalize(v) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True))
    if isinstance(value, (list, tuple)):
        return [canonicalize(v) for v in value]
    raise TypeError(f"Cannot canonicalize value of type {type(value).__name__}")


def canonical_json(value: Any) -> str:
    """Serialize a value in canonical form with sorted keys and no whitespace."""
    return json.dumps(
        canonicalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def content_hash(value: Any) -> str:
    """
    Generate SHA-256 hash of the canonical serialization of a value.

    Args:
        value: Any value accepted by ``canonicalize``

    Returns:
        Full SHA-256 hash hex string
    """
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


__all__ = [
    "PRECISION",
    "DeterministicClock",
    "to_decimal",
    "quantize",
    "format_timestamp",
    "canonicalize",
    "canonical_json",
    "content_hash",
]
