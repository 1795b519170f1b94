# -*- coding: utf-8 -*-
"""
Certificate Stores

Keyed certificate store with unique codes and an atomic set-if-null for
the first-verification timestamp. Certificates are never updated otherwise
and never deleted.

Implementations:
    - InMemoryCertificateStore: thread-safe, process-local
    - pyroledger.db.stores.SqlCertificateStore: SQLAlchemy-backed
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from pyroledger.certification.models import Certificate
from pyroledger.exceptions import DuplicateCodeError

logger = logging.getLogger(__name__)


@runtime_checkable
class CertificateStore(Protocol):
    """Certificate store keyed by verification code."""

    def insert(self, certificate: Certificate) -> None:
        """Persist a new certificate.

        Raises:
            DuplicateCodeError: If the code is already taken.
        """
        ...

    def get_by_code(self, code: str) -> Optional[Certificate]:
        ...

    def code_exists(self, code: str) -> bool:
        ...

    def list_for_batch(self, batch_id: str) -> List[Certificate]:
        """A batch's certificates, newest first."""
        ...

    def mark_verified(self, code: str, verified_at: datetime) -> Optional[Certificate]:
        """Set ``verified_at`` only if it is still null, atomically.

        Returns:
            The stored certificate after the call (carrying whichever
            timestamp won), or None for an unknown code.

        Raises:
            ConcurrencyError: On transient contention; safe to retry.
        """
        ...


class InMemoryCertificateStore:
    """Process-local certificate store."""

    def __init__(self) -> None:
        self._by_code: Dict[str, Certificate] = {}
        self._lock = threading.Lock()

    def insert(self, certificate: Certificate) -> None:
        with self._lock:
            if certificate.code in self._by_code:
                raise DuplicateCodeError(
                    f"Certificate code {certificate.code} already exists",
                    context={"code": certificate.code},
                )
            self._by_code[certificate.code] = certificate

    def get_by_code(self, code: str) -> Optional[Certificate]:
        with self._lock:
            return self._by_code.get(code)

    def code_exists(self, code: str) -> bool:
        with self._lock:
            return code in self._by_code

    def list_for_batch(self, batch_id: str) -> List[Certificate]:
        with self._lock:
            certs = [c for c in self._by_code.values() if c.batch_id == batch_id]
        return sorted(certs, key=lambda c: c.issued_at, reverse=True)

    def mark_verified(self, code: str, verified_at: datetime) -> Optional[Certificate]:
        with self._lock:
            cert = self._by_code.get(code)
            if cert is None or cert.verified_at is not None:
                return cert
            cert = cert.model_copy(update={"verified_at": verified_at})
            self._by_code[code] = cert
            return cert

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._by_code)


__all__ = ["CertificateStore", "InMemoryCertificateStore"]
