# -*- coding: utf-8 -*-
"""
Ledger REST API Router

Endpoints under ``/api/v1/ledger``:

    POST  /ghg/calculate                  GHG figures for ad-hoc inputs
    GET   /audit                          filtered audit log
    POST  /batches                        register a batch
    GET   /batches/{batch_id}             read a batch
    PATCH /batches/{batch_id}             update a batch (GHG on completion)
    POST  /batches/{batch_id}/lab         attach a lab result
    GET   /batches/{batch_id}/audit       batch history
    POST  /batches/{batch_id}/certificates   issue a certificate
    GET   /batches/{batch_id}/certificates   list a batch's certificates
    GET   /certificates/{code}            public verification (no actor)

Mutations identify their actor through the ``X-Actor-Id`` and
``X-Actor-Label`` headers. Domain errors map to 400 (validation),
409 (precondition), 404 (not found) and 503 (no free certificate code).
Decimal figures are serialized as strings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request

from pyroledger.audit.models import Actor, AuditAction, AuditPage, AuditQuery
from pyroledger.batches.models import Batch, BatchCreate, BatchUpdate, LabResult, LabResultCreate
from pyroledger.certification.models import IssuedCertificate, PublicVerification
from pyroledger.exceptions import (
    CodeGenerationError,
    NotFoundError,
    PreconditionError,
    PyroLedgerError,
    ValidationError,
    format_exception_chain,
)
from pyroledger.ghg.models import GHGResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])


def _service(request: Request) -> Any:
    from pyroledger.setup import get_ledger_service
    return get_ledger_service(request.app)


def _actor(actor_id: Optional[str], actor_label: Optional[str]) -> Actor:
    if not actor_id:
        raise HTTPException(status_code=401, detail="X-Actor-Id header required")
    return Actor(actor_id=actor_id, actor_label=actor_label or actor_id)


def _http_error(exc: PyroLedgerError) -> HTTPException:
    if isinstance(exc, ValidationError):
        status = 400
    elif isinstance(exc, PreconditionError):
        status = 409
    elif isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, CodeGenerationError):
        status = 503
    else:
        status = 500
        logger.error("Ledger request failed:\n%s", format_exception_chain(exc))
    return HTTPException(status_code=status, detail=exc.to_dict())


# ------------------------------------------------------------------
# GHG
# ------------------------------------------------------------------
@router.post("/ghg/calculate", response_model=GHGResult)
async def post_calculate_ghg(request: Request, body: Dict[str, Any]) -> GHGResult:
    """Calculate lifecycle GHG figures without storing anything."""
    try:
        return _service(request).calculate_ghg(body)
    except PyroLedgerError as exc:
        raise _http_error(exc)


# ------------------------------------------------------------------
# Audit
# ------------------------------------------------------------------
@router.get("/audit", response_model=AuditPage)
async def get_audit_log(
    request: Request,
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    actor_id: Optional[str] = Query(None),
    related_batch_id: Optional[str] = Query(None),
    action: Optional[AuditAction] = Query(None),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
) -> AuditPage:
    """Read the audit log, newest first."""
    return _service(request).query_audit(AuditQuery(
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        related_batch_id=related_batch_id,
        action=action,
        limit=limit,
        offset=offset,
    ))


@router.get("/batches/{batch_id}/audit", response_model=AuditPage)
async def get_batch_audit(
    request: Request,
    batch_id: str,
    limit: Optional[int] = Query(None, ge=1),
) -> AuditPage:
    """History of a batch and everything attached to it."""
    return _service(request).batch_history(batch_id, limit=limit)


# ------------------------------------------------------------------
# Batches
# ------------------------------------------------------------------
@router.post("/batches", response_model=Batch, status_code=201)
async def post_create_batch(
    request: Request,
    body: BatchCreate,
    x_actor_id: Optional[str] = Header(None),
    x_actor_label: Optional[str] = Header(None),
) -> Batch:
    """Register a new ACTIVE batch."""
    actor = _actor(x_actor_id, x_actor_label)
    try:
        return _service(request).create_batch(actor, body)
    except PyroLedgerError as exc:
        raise _http_error(exc)


@router.get("/batches/{batch_id}", response_model=Batch)
async def get_batch(request: Request, batch_id: str) -> Batch:
    """Read a batch with its lab results and stored GHG result."""
    try:
        return _service(request).get_batch(batch_id)
    except PyroLedgerError as exc:
        raise _http_error(exc)


@router.patch("/batches/{batch_id}", response_model=Batch)
async def patch_batch(
    request: Request,
    batch_id: str,
    body: BatchUpdate,
    x_actor_id: Optional[str] = Header(None),
    x_actor_label: Optional[str] = Header(None),
    x_change_reason: Optional[str] = Header(None),
) -> Batch:
    """Update a batch; completing it computes its GHG figures."""
    actor = _actor(x_actor_id, x_actor_label)
    try:
        return _service(request).update_batch(
            actor,
            batch_id,
            body,
            reason=x_change_reason,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except PyroLedgerError as exc:
        raise _http_error(exc)


@router.post("/batches/{batch_id}/lab", response_model=LabResult, status_code=201)
async def post_lab_result(
    request: Request,
    batch_id: str,
    body: LabResultCreate,
    x_actor_id: Optional[str] = Header(None),
    x_actor_label: Optional[str] = Header(None),
) -> LabResult:
    """Attach a lab result to a batch."""
    actor = _actor(x_actor_id, x_actor_label)
    try:
        return _service(request).add_lab_result(actor, batch_id, body)
    except PyroLedgerError as exc:
        raise _http_error(exc)


# ------------------------------------------------------------------
# Certificates
# ------------------------------------------------------------------
@router.post(
    "/batches/{batch_id}/certificates",
    response_model=IssuedCertificate,
    status_code=201,
)
async def post_issue_certificate(
    request: Request,
    batch_id: str,
    x_actor_id: Optional[str] = Header(None),
    x_actor_label: Optional[str] = Header(None),
) -> IssuedCertificate:
    """Issue a certificate for a COMPLETED batch."""
    actor = _actor(x_actor_id, x_actor_label)
    try:
        return _service(request).issue_certificate(batch_id, actor=actor)
    except PyroLedgerError as exc:
        raise _http_error(exc)


@router.get(
    "/batches/{batch_id}/certificates",
    response_model=List[IssuedCertificate],
)
async def get_batch_certificates(
    request: Request, batch_id: str,
) -> List[IssuedCertificate]:
    """A batch's certificates, newest first."""
    return _service(request).list_certificates(batch_id)


@router.get("/certificates/{code}", response_model=PublicVerification)
async def get_verify_certificate(request: Request, code: str) -> PublicVerification:
    """Public verification; stamps the first lookup."""
    try:
        return _service(request).verify_certificate(code)
    except PyroLedgerError as exc:
        raise _http_error(exc)


__all__ = ["router"]
