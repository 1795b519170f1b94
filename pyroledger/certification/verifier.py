# -*- coding: utf-8 -*-
"""
Certificate Verifier - public, anonymous certificate lookup

A lookup by code returns the public projection of the certificate's fact
snapshot and stamps ``verified_at`` on the first successful lookup. The
stamp is a set-if-null performed by the store, so concurrent first lookups
record exactly one timestamp. Contention reported by the store is retried
and never surfaced to the caller.

``verify_document`` lets a third party holding a fact document recompute
its hash independently of any store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pyroledger.certification.config import CertificationConfig, get_config
from pyroledger.certification.facts import fact_hash
from pyroledger.certification.metrics import record_verification
from pyroledger.certification.models import (
    Certificate,
    LabVerdict,
    PublicVerification,
)
from pyroledger.certification.store import CertificateStore
from pyroledger.determinism import DeterministicClock
from pyroledger.exceptions import ConcurrencyError, NotFoundError

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    """Upper-case a code and strip surrounding whitespace."""
    return (code or "").strip().upper()


class CertificateVerifier:
    """Serves public certificate lookups.

    Attributes:
        certificate_store: Store holding certificates.
        config: CertificationConfig instance.
    """

    def __init__(
        self,
        certificate_store: CertificateStore,
        config: Optional[CertificationConfig] = None,
    ) -> None:
        self.certificate_store = certificate_store
        self.config = config or get_config()

    def verify(self, code: str) -> PublicVerification:
        """Look up a certificate by code.

        Args:
            code: Verification code, case-insensitive.

        Returns:
            PublicVerification projection with ``hash_valid``.

        Raises:
            NotFoundError: If no certificate has this code.
        """
        normalized = normalize_code(code)
        certificate = self.certificate_store.get_by_code(normalized) if normalized else None
        if certificate is None:
            record_verification("not_found")
            raise NotFoundError(
                "Certificate not found",
                entity_type="Certificate", entity_id=normalized,
            )

        first = certificate.verified_at is None
        if first:
            certificate = self._stamp_first_verification(certificate)

        hash_valid = self.verify_document(certificate.facts, certificate.content_hash)
        if not hash_valid:
            record_verification("hash_mismatch")
            logger.warning(
                "Certificate %s facts no longer match its stored hash",
                certificate.code,
            )
        else:
            record_verification("first" if first else "repeat")
        logger.info("Certificate %s verified (first=%s)", certificate.code, first)
        return self._project(certificate, hash_valid)

    @staticmethod
    def verify_document(facts: Dict[str, Any], expected_hash: str) -> bool:
        """Return True when ``facts`` hashes to ``expected_hash``."""
        return fact_hash(facts) == (expected_hash or "").lower()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _stamp_first_verification(self, certificate: Certificate) -> Certificate:
        attempts = self.config.verify_retry_attempts + 1
        for attempt in range(1, attempts + 1):
            try:
                stamped = self.certificate_store.mark_verified(
                    certificate.code, DeterministicClock.utcnow(),
                )
            except ConcurrencyError as e:
                logger.warning(
                    "Contention stamping certificate %s (attempt %d/%d): %s",
                    certificate.code, attempt, attempts, e.message,
                )
                continue
            return stamped or certificate

        current = self.certificate_store.get_by_code(certificate.code)
        return current or certificate

    @staticmethod
    def _project(certificate: Certificate, hash_valid: bool) -> PublicVerification:
        facts = certificate.facts
        return PublicVerification(
            code=certificate.code,
            content_hash=certificate.content_hash,
            hash_valid=hash_valid,
            issued_at=certificate.issued_at,
            verified_at=certificate.verified_at,
            verification_url=certificate.verification_url,
            batch=dict(facts.get("batch", {})),
            feedstock=dict(facts.get("feedstock", {})),
            output=dict(facts.get("output", {})),
            impact=dict(facts.get("impact", {})),
            lab=[LabVerdict(**entry) for entry in facts.get("lab", [])],
        )


__all__ = ["normalize_code", "CertificateVerifier"]
