# -*- coding: utf-8 -*-
"""
Certification Configuration

Settings for certificate issuance and public verification:
- Verification code shape (length, unambiguous alphabet)
- Code generation attempts before giving up
- Public base URL embedded in the QR verification link
- Retries on contention when stamping the first verification

All settings can be overridden via environment variables with the
``PYROLEDGER_CERT_`` prefix (e.g. ``PYROLEDGER_CERT_PUBLIC_BASE_URL``).

Example:
    >>> from pyroledger.certification.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.code_length, cfg.public_base_url)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PYROLEDGER_CERT_"

#: Excludes 0, O, 1 and I
UNAMBIGUOUS_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


@dataclass(frozen=True)
class CertificationConfig:
    """Configuration for certificate issuance and verification.

    Attributes:
        code_length: Characters in a verification code.
        code_alphabet: Characters a code is drawn from.
        max_code_attempts: Fresh codes tried before CodeGenerationError.
        public_base_url: Base of the public verification link.
        verify_retry_attempts: Retries on store contention while stamping
            the first verification.
    """

    code_length: int = 8
    code_alphabet: str = UNAMBIGUOUS_ALPHABET
    max_code_attempts: int = 10
    public_base_url: str = "http://localhost:3000"
    verify_retry_attempts: int = 3

    def __post_init__(self) -> None:
        if self.code_length < 4:
            raise ValueError(f"code_length must be >= 4, got {self.code_length}")
        if len(set(self.code_alphabet)) < 16:
            raise ValueError("code_alphabet must hold at least 16 distinct characters")
        if self.code_alphabet != self.code_alphabet.upper():
            raise ValueError("code_alphabet must be upper case")
        if self.max_code_attempts < 1:
            raise ValueError("max_code_attempts must be >= 1")
        if self.verify_retry_attempts < 0:
            raise ValueError("verify_retry_attempts must be >= 0")

    def verification_url(self, code: str) -> str:
        """Public URL a QR code on the certificate points to."""
        return f"{self.public_base_url.rstrip('/')}/verify/{code}"

    @classmethod
    def from_env(cls) -> CertificationConfig:
        """Build a CertificationConfig from environment variables.

        Returns:
            Populated CertificationConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        config = cls(
            code_length=_int("CODE_LENGTH", cls.code_length),
            code_alphabet=_env("CODE_ALPHABET", cls.code_alphabet),
            max_code_attempts=_int("MAX_CODE_ATTEMPTS", cls.max_code_attempts),
            public_base_url=_env("PUBLIC_BASE_URL", cls.public_base_url),
            verify_retry_attempts=_int(
                "VERIFY_RETRY_ATTEMPTS", cls.verify_retry_attempts,
            ),
        )

        logger.info(
            "CertificationConfig loaded: code_length=%d, base_url=%s, "
            "max_code_attempts=%d",
            config.code_length,
            config.public_base_url,
            config.max_code_attempts,
        )
        return config


_config_instance: Optional[CertificationConfig] = None
_config_lock = threading.Lock()


def get_config() -> CertificationConfig:
    """Return the singleton CertificationConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = CertificationConfig.from_env()
    return _config_instance


def set_config(config: CertificationConfig) -> None:
    """Replace the singleton CertificationConfig (useful for testing)."""
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("CertificationConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "UNAMBIGUOUS_ALPHABET",
    "CertificationConfig",
    "get_config",
    "set_config",
    "reset_config",
]
