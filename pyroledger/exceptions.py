"""PyroLedger Exception Hierarchy.

Every failure raised by the accounting and certification core derives from
``PyroLedgerError`` and carries rich context for logging and API responses.

Exception Hierarchy:
    PyroLedgerError (base)
    ├── ValidationError        bad physical inputs, never retried
    ├── PreconditionError      certificate requested for an ineligible batch
    ├── NotFoundError          certificate or entity lookup miss
    ├── ConcurrencyError       contention on the write-once verification stamp
    ├── DuplicateCodeError     certificate code already taken at insert time
    └── CodeGenerationError    no free certificate code after all attempts

All exceptions include:
- error_code: identifier derived from the class name (e.g. "PL_NOT_FOUND_ERROR")
- context: dictionary with error-specific details
- timestamp: when the error occurred

Example:
    >>> from pyroledger.exceptions import ValidationError
    >>> raise ValidationError(
    ...     message="feedstock_mass_kg must be greater than zero",
    ...     invalid_fields={"feedstock_mass_kg": "must be > 0"},
    ... )
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class PyroLedgerError(Exception):
    """Base exception for all PyroLedger errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "PL_VALIDATION_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "PL"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def _generate_error_code(self) -> str:
        """Generate an error code from the class name.

        Returns:
            Error code like "PL_VALIDATION_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


class ValidationError(PyroLedgerError):
    """Physical input validation failed.

    Raised before any calculation when a mass, volume or percentage is
    negative, non-finite or out of range.

    Example:
        >>> raise ValidationError(
        ...     message="contamination_pct must be within [0, 100]",
        ...     invalid_fields={"contamination_pct": "got 120"},
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        super().__init__(message, context=context)

    @property
    def invalid_fields(self) -> Dict[str, str]:
        return self.context.get("invalid_fields", {})


class PreconditionError(PyroLedgerError):
    """A certificate was requested for a batch that cannot be certified."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        batch_id: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        context = context or {}
        if batch_id:
            context["batch_id"] = batch_id
        if reason:
            context["reason"] = reason
        super().__init__(message, context=context)


class NotFoundError(PyroLedgerError):
    """Lookup of a certificate or entity missed."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        context = context or {}
        if entity_type:
            context["entity_type"] = entity_type
        if entity_id:
            context["entity_id"] = entity_id
        super().__init__(message, context=context)


class ConcurrencyError(PyroLedgerError):
    """Contention on an atomic conditional write at the store boundary."""


class DuplicateCodeError(PyroLedgerError):
    """A certificate code collided with an existing one at insert time."""


class CodeGenerationError(PyroLedgerError):
    """No unused certificate code could be generated."""


def format_exception_chain(exc: BaseException) -> str:
    """Format an exception and its causes for logging.

    Args:
        exc: Exception to format

    Returns:
        One line per exception in the ``__cause__`` chain
    """
    lines = []
    current: Optional[BaseException] = exc
    while current is not None:
        if isinstance(current, PyroLedgerError):
            lines.append(str(current))
            if current.context:
                lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = current.__cause__
    return "\n".join(lines)


def is_retriable(exc: BaseException) -> bool:
    """Check whether an operation that raised ``exc`` may be retried.

    Validation and precondition failures indicate caller misuse; only
    store-level contention is transient.
    """
    return isinstance(exc, (ConcurrencyError, DuplicateCodeError))


__all__ = [
    "PyroLedgerError",
    "ValidationError",
    "PreconditionError",
    "NotFoundError",
    "ConcurrencyError",
    "DuplicateCodeError",
    "CodeGenerationError",
    "format_exception_chain",
    "is_retriable",
]
