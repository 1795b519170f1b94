# -*- coding: utf-8 -*-
"""
Ledger Service Setup

Provides ``configure_ledger_service(app)`` which wires up the GHG
calculator, audit trail, batch lifecycle, certificate issuer and verifier
over one set of stores and mounts the REST API.

Also exposes ``get_ledger_service(app)`` for programmatic access and the
``LedgerService`` facade class.

Usage:
    >>> from fastapi import FastAPI
    >>> from pyroledger.setup import configure_ledger_service
    >>> app = FastAPI()
    >>> configure_ledger_service(app)

Stores default to the in-memory implementations; pass
``database_url`` (or use ``LedgerService.from_database``) for the
SQLAlchemy-backed ones.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from pyroledger.audit.config import AuditConfig
from pyroledger.audit.config import get_config as get_audit_config
from pyroledger.audit.differ import RecordDiffer
from pyroledger.audit.models import Actor, AuditPage, AuditQuery
from pyroledger.audit.store import AuditLogStore, InMemoryAuditLogStore
from pyroledger.audit.trail import AuditTrail
from pyroledger.batches.lifecycle import BatchLifecycle
from pyroledger.batches.models import Batch, BatchCreate, BatchUpdate, LabResult, LabResultCreate
from pyroledger.batches.store import BatchStore, InMemoryBatchStore
from pyroledger.certification.config import CertificationConfig
from pyroledger.certification.config import get_config as get_cert_config
from pyroledger.certification.issuer import CertificateIssuer
from pyroledger.certification.metrics import PROMETHEUS_AVAILABLE
from pyroledger.certification.models import IssuedCertificate, PublicVerification
from pyroledger.certification.store import CertificateStore, InMemoryCertificateStore
from pyroledger.certification.verifier import CertificateVerifier
from pyroledger.ghg.calculator import GHGCalculator
from pyroledger.ghg.config import GHGConfig
from pyroledger.ghg.config import get_config as get_ghg_config
from pyroledger.ghg.models import BatchInputs, GHGResult

logger = logging.getLogger(__name__)


# ===================================================================
# LedgerService facade
# ===================================================================

# Thread-safe singleton lock
_singleton_lock = threading.Lock()
_singleton_instance: Optional["LedgerService"] = None


class LedgerService:
    """Facade over the GHG, audit, batch and certification components.

    Attributes:
        calculator: GHGCalculator.
        trail: AuditTrail.
        lifecycle: BatchLifecycle.
        issuer: CertificateIssuer.
        verifier: CertificateVerifier.
    """

    def __init__(
        self,
        ghg_config: Optional[GHGConfig] = None,
        audit_config: Optional[AuditConfig] = None,
        cert_config: Optional[CertificationConfig] = None,
        batch_store: Optional[BatchStore] = None,
        audit_store: Optional[AuditLogStore] = None,
        certificate_store: Optional[CertificateStore] = None,
    ) -> None:
        """Initialize LedgerService.

        Args:
            ghg_config: Optional emission factors. Global config if None.
            audit_config: Optional audit config. Global config if None.
            cert_config: Optional certification config. Global config if None.
            batch_store: Optional batch store. In-memory if None.
            audit_store: Optional audit log store. In-memory if None.
            certificate_store: Optional certificate store. In-memory if None.
        """
        self.ghg_config = ghg_config or get_ghg_config()
        self.audit_config = audit_config or get_audit_config()
        self.cert_config = cert_config or get_cert_config()

        self.batch_store = batch_store or InMemoryBatchStore()
        self.audit_store = audit_store or InMemoryAuditLogStore()
        self.certificate_store = certificate_store or InMemoryCertificateStore()

        self.calculator = GHGCalculator(self.ghg_config)
        self.trail = AuditTrail(
            self.audit_store,
            differ=RecordDiffer(ignored_fields=self.audit_config.ignored_fields),
            config=self.audit_config,
        )
        self.lifecycle = BatchLifecycle(self.batch_store, self.trail, self.calculator)
        self.issuer = CertificateIssuer(
            self.batch_store, self.certificate_store, self.cert_config, trail=self.trail,
        )
        self.verifier = CertificateVerifier(self.certificate_store, self.cert_config)

        self._started = False
        logger.info(
            "LedgerService initialized: stores=%s/%s/%s, methodology=%s",
            type(self.batch_store).__name__,
            type(self.audit_store).__name__,
            type(self.certificate_store).__name__,
            self.ghg_config.methodology_version,
        )

    @classmethod
    def from_database(cls, database_url: Optional[str] = None, **kwargs: Any) -> LedgerService:
        """Build a service over the SQLAlchemy-backed stores.

        Without a URL the process-wide engine for ``PYROLEDGER_DATABASE_URL``
        is shared; an explicit URL gets an engine of its own.

        Args:
            database_url: Database URL, or None for the shared engine.
            **kwargs: Forwarded to ``LedgerService.__init__``.
        """
        from pyroledger.db.base import (
            build_engine,
            build_session_factory,
            get_session_factory,
            init_db,
        )
        from pyroledger.db.stores import SqlAuditLogStore, SqlBatchStore, SqlCertificateStore

        if database_url is None:
            factory = get_session_factory()
        else:
            engine = build_engine(database_url)
            init_db(engine)
            factory = build_session_factory(engine)
        return cls(
            batch_store=SqlBatchStore(factory),
            audit_store=SqlAuditLogStore(factory),
            certificate_store=SqlCertificateStore(factory),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # GHG
    # ------------------------------------------------------------------

    def calculate_ghg(self, inputs: Union[BatchInputs, Mapping[str, Any]]) -> GHGResult:
        return self.calculator.calculate(inputs)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def query_audit(self, query: Optional[AuditQuery] = None) -> AuditPage:
        return self.trail.query(query)

    def batch_history(self, batch_id: str, limit: Optional[int] = None) -> AuditPage:
        return self.trail.for_batch(batch_id, limit=limit)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def create_batch(
        self, actor: Actor, data: Union[BatchCreate, Mapping[str, Any]],
    ) -> Batch:
        return self.lifecycle.create(actor, data)

    def get_batch(self, batch_id: str) -> Batch:
        return self.lifecycle.get(batch_id)

    def update_batch(
        self,
        actor: Actor,
        batch_id: str,
        data: Union[BatchUpdate, Mapping[str, Any]],
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Batch:
        return self.lifecycle.update(
            actor, batch_id, data,
            reason=reason, ip_address=ip_address, user_agent=user_agent,
        )

    def add_lab_result(
        self,
        actor: Actor,
        batch_id: str,
        data: Union[LabResultCreate, Mapping[str, Any]],
    ) -> LabResult:
        return self.lifecycle.add_lab_result(actor, batch_id, data)

    # ------------------------------------------------------------------
    # Certificates
    # ------------------------------------------------------------------

    def issue_certificate(
        self, batch_id: str, actor: Optional[Actor] = None,
    ) -> IssuedCertificate:
        return self.issuer.issue(batch_id, actor=actor)

    def list_certificates(self, batch_id: str) -> List[IssuedCertificate]:
        return self.issuer.list_for_batch(batch_id)

    def verify_certificate(self, code: str) -> PublicVerification:
        return self.verifier.verify(code)

    # ------------------------------------------------------------------
    # Health & lifecycle
    # ------------------------------------------------------------------

    def get_health(self) -> Dict[str, Any]:
        """Return service health and configuration summary."""
        return {
            "status": "healthy" if self._started else "not_started",
            "methodology_version": self.ghg_config.methodology_version,
            "audit_enabled": self.audit_config.enabled,
            "prometheus_available": PROMETHEUS_AVAILABLE,
        }

    def startup(self) -> None:
        """Start the ledger service.

        Safe to call multiple times.
        """
        if self._started:
            logger.debug("LedgerService already started; skipping")
            return
        self._started = True
        logger.info("LedgerService startup complete")

    def shutdown(self) -> None:
        """Shutdown the ledger service."""
        if not self._started:
            return
        self._started = False
        logger.info("LedgerService shut down")


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def _get_singleton() -> LedgerService:
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = LedgerService()
    return _singleton_instance


# ===================================================================
# FastAPI integration
# ===================================================================


def configure_ledger_service(
    app: Any,
    service: Optional[LedgerService] = None,
    database_url: Optional[str] = None,
) -> LedgerService:
    """Configure the Ledger Service on a FastAPI application.

    Creates the LedgerService (unless one is given), stores it in
    app.state, mounts the ledger API router, and starts the service.

    Args:
        app: FastAPI application instance.
        service: Optional pre-built service.
        database_url: Use SQLAlchemy stores on this database when no
            service is given.

    Returns:
        LedgerService instance.
    """
    global _singleton_instance

    if service is None:
        service = (
            LedgerService.from_database(database_url) if database_url
            else LedgerService()
        )

    with _singleton_lock:
        _singleton_instance = service

    app.state.ledger_service = service

    ledger_router = get_router()
    if ledger_router is None:
        logger.warning("FastAPI not available; ledger API not mounted")
    else:
        app.include_router(ledger_router)
        logger.info("Ledger API router mounted")

    service.startup()

    logger.info("Ledger service configured on app")
    return service


def get_ledger_service(app: Any = None) -> LedgerService:
    """Get the LedgerService from app state, or the process singleton.

    Args:
        app: Optional FastAPI application instance.

    Returns:
        LedgerService instance.

    Raises:
        RuntimeError: If an app is given but the service is not configured.
    """
    if app is None:
        return _get_singleton()
    service = getattr(app.state, "ledger_service", None)
    if service is None:
        raise RuntimeError(
            "Ledger service not configured. "
            "Call configure_ledger_service(app) first."
        )
    return service


def get_router() -> Any:
    """Get the ledger API router.

    Returns:
        FastAPI APIRouter or None if FastAPI not available.
    """
    try:
        from pyroledger.api.router import router
        return router
    except ImportError:
        return None


__all__ = [
    "LedgerService",
    "configure_ledger_service",
    "get_ledger_service",
    "get_router",
]
