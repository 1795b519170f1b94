# -*- coding: utf-8 -*-
"""
Audit Trail Configuration

Settings for the append-only audit log:
- Recording toggle
- Volatile fields ignored by the record differ
- Pagination defaults and limits

All settings can be overridden via environment variables with the
``PYROLEDGER_AUDIT_`` prefix (e.g. ``PYROLEDGER_AUDIT_MAX_PAGE_SIZE``).
``IGNORED_FIELDS`` is a comma-separated list.

Example:
    >>> from pyroledger.audit.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.enabled, cfg.ignored_fields)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PYROLEDGER_AUDIT_"


@dataclass(frozen=True)
class AuditConfig:
    """Configuration for the audit trail.

    Attributes:
        enabled: Whether mutations are recorded at all.
        ignored_fields: Volatile, non-semantic fields never diffed.
        default_page_size: Page size when a query gives no limit.
        max_page_size: Upper bound on a query limit.
        batch_history_limit: Entries returned by the per-batch history.
    """

    enabled: bool = True
    ignored_fields: Tuple[str, ...] = ("updated_at", "updatedAt")
    default_page_size: int = 50
    max_page_size: int = 500
    batch_history_limit: int = 100

    @classmethod
    def from_env(cls) -> AuditConfig:
        """Build an AuditConfig from environment variables.

        Returns:
            Populated AuditConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

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

        ignored = _env("IGNORED_FIELDS")
        config = cls(
            enabled=_bool("ENABLED", cls.enabled),
            ignored_fields=(
                tuple(f.strip() for f in ignored.split(",") if f.strip())
                if ignored is not None else cls.ignored_fields
            ),
            default_page_size=_int("DEFAULT_PAGE_SIZE", cls.default_page_size),
            max_page_size=_int("MAX_PAGE_SIZE", cls.max_page_size),
            batch_history_limit=_int("BATCH_HISTORY_LIMIT", cls.batch_history_limit),
        )

        logger.info(
            "AuditConfig loaded: enabled=%s, ignored_fields=%s, page=%d/%d",
            config.enabled,
            ",".join(config.ignored_fields),
            config.default_page_size,
            config.max_page_size,
        )
        return config


_config_instance: Optional[AuditConfig] = None
_config_lock = threading.Lock()


def get_config() -> AuditConfig:
    """Return the singleton AuditConfig, creating from env if needed."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AuditConfig.from_env()
    return _config_instance


def set_config(config: AuditConfig) -> None:
    """Replace the singleton AuditConfig (useful for testing)."""
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("AuditConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "AuditConfig",
    "get_config",
    "set_config",
    "reset_config",
]
