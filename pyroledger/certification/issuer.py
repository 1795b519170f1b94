# -*- coding: utf-8 -*-
"""
Certificate Issuer - tamper-evident certificates for completed batches

Issuing a certificate:
    1. Load the batch; it must be COMPLETED and carry a GHG result.
    2. Build the canonical fact document and hash it (SHA-256).
    3. Mint a random verification code from an unambiguous alphabet,
       collision-checked against the store.
    4. Persist the certificate with its fact snapshot. An insert that loses
       a race for the same code retries with a fresh code.

Re-issuing for an unchanged batch yields the same hash under a new code.
Every certificate of a batch stays independently valid.

Example:
    >>> issuer = CertificateIssuer(batch_store, certificate_store)
    >>> issued = issuer.issue(batch_id)
    >>> len(issued.code)
    8
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pyroledger.audit.models import Actor, AuditAction
from pyroledger.audit.trail import AuditTrail
from pyroledger.batches.models import BatchStatus
from pyroledger.batches.store import BatchStore
from pyroledger.certification.config import CertificationConfig, get_config
from pyroledger.certification.facts import build_fact_document, fact_hash
from pyroledger.certification.metrics import (
    record_collision,
    record_issued,
    record_rejection,
)
from pyroledger.certification.models import Certificate, IssuedCertificate
from pyroledger.certification.store import CertificateStore
from pyroledger.determinism import DeterministicClock, to_decimal
from pyroledger.exceptions import (
    CodeGenerationError,
    DuplicateCodeError,
    NotFoundError,
    PreconditionError,
)

logger = logging.getLogger(__name__)


class CertificateIssuer:
    """Issues certificates for completed batches.

    Attributes:
        batch_store: Source of batch records.
        certificate_store: Destination of certificates.
        config: CertificationConfig instance.
        trail: Optional AuditTrail recording each issuance.
    """

    def __init__(
        self,
        batch_store: BatchStore,
        certificate_store: CertificateStore,
        config: Optional[CertificationConfig] = None,
        trail: Optional[AuditTrail] = None,
    ) -> None:
        """Initialize CertificateIssuer.

        Args:
            batch_store: Batch store to read from.
            certificate_store: Certificate store to write to.
            config: Optional config. Uses global config if None.
            trail: Optional audit trail for issuance entries.
        """
        self.batch_store = batch_store
        self.certificate_store = certificate_store
        self.config = config or get_config()
        self.trail = trail

    def issue(self, batch_id: str, actor: Optional[Actor] = None) -> IssuedCertificate:
        """Issue a certificate for a batch.

        Args:
            batch_id: Batch to certify.
            actor: Who requested it; recorded when an audit trail is set.

        Returns:
            IssuedCertificate with code, hash and verification URL.

        Raises:
            NotFoundError: If the batch does not exist.
            PreconditionError: If the batch is not COMPLETED or has no GHG
                result.
            CodeGenerationError: If no free code was found.
        """
        batch = self.batch_store.get(batch_id)
        if batch is None:
            record_rejection("not_found")
            raise NotFoundError(
                f"Batch {batch_id} not found",
                entity_type="Batch", entity_id=batch_id,
            )
        if batch.status is not BatchStatus.COMPLETED:
            record_rejection("not_completed")
            raise PreconditionError(
                f"Only COMPLETED batches can be certified; {batch.code} is "
                f"{batch.status.value}",
                batch_id=batch_id, reason="not_completed",
            )
        if batch.ghg is None:
            record_rejection("no_ghg")
            raise PreconditionError(
                f"Batch {batch.code} has no GHG result",
                batch_id=batch_id, reason="no_ghg",
            )

        facts = build_fact_document(batch)
        digest = fact_hash(facts)
        issued_at = DeterministicClock.utcnow()

        certificate = self._insert_with_fresh_code(
            batch_id=batch_id,
            content_hash=digest,
            issued_at=issued_at,
            co2_avoided_kg=batch.ghg.avoided,
            plastic_diverted_kg=to_decimal(batch.feedstock_weight_kg, "feedstock_weight_kg"),
            facts=facts,
        )
        record_issued()
        logger.info(
            "Certificate %s issued for batch %s (hash=%s)",
            certificate.code, batch.code, digest[:16],
        )

        if self.trail is not None and actor is not None:
            self.trail.record(
                actor,
                AuditAction.CREATE,
                "Certificate",
                certificate.certificate_id,
                related_batch_id=batch_id,
                changes=certificate.model_dump(exclude={"facts"}),
            )
        return IssuedCertificate.from_certificate(certificate)

    def list_for_batch(self, batch_id: str) -> List[IssuedCertificate]:
        """A batch's certificates, newest first."""
        return [
            IssuedCertificate.from_certificate(c)
            for c in self.certificate_store.list_for_batch(batch_id)
        ]

    def generate_code(self) -> str:
        """Random code of ``code_length`` characters from ``code_alphabet``."""
        alphabet = self.config.code_alphabet
        return "".join(secrets.choice(alphabet) for _ in range(self.config.code_length))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert_with_fresh_code(
        self,
        batch_id: str,
        content_hash: str,
        issued_at: datetime,
        co2_avoided_kg: Decimal,
        plastic_diverted_kg: Decimal,
        facts: Dict[str, Any],
    ) -> Certificate:
        for attempt in range(1, self.config.max_code_attempts + 1):
            code = self.generate_code()
            if self.certificate_store.code_exists(code):
                record_collision()
                logger.warning("Certificate code collision on attempt %d", attempt)
                continue

            certificate = Certificate(
                batch_id=batch_id,
                code=code,
                content_hash=content_hash,
                verification_url=self.config.verification_url(code),
                issued_at=issued_at,
                co2_avoided_kg=co2_avoided_kg,
                plastic_diverted_kg=plastic_diverted_kg,
                facts=facts,
            )
            try:
                self.certificate_store.insert(certificate)
            except DuplicateCodeError:
                record_collision()
                logger.warning(
                    "Certificate code taken at insert on attempt %d, retrying",
                    attempt,
                )
                continue
            return certificate

        raise CodeGenerationError(
            f"No unused certificate code after {self.config.max_code_attempts} attempts",
            context={"batch_id": batch_id},
        )


__all__ = ["CertificateIssuer"]
