"""
SQLAlchemy-backed implementations of the ledger store protocols

- SqlBatchStore: BatchStore
- SqlAuditLogStore: AuditLogStore (insert and select only)
- SqlCertificateStore: CertificateStore, with the first-verification stamp
  done as ``UPDATE ... WHERE verified_at IS NULL``

Timestamps are stored as naive UTC and returned as aware UTC.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from pyroledger.audit.models import AuditEntry, AuditQuery
from pyroledger.batches.models import Batch
from pyroledger.certification.models import Certificate
from pyroledger.db.base import session_scope
from pyroledger.db.models import AuditEntryRecord, BatchRecord, CertificateRecord
from pyroledger.exceptions import (
    ConcurrencyError,
    DuplicateCodeError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


# =============================================================================
# Batches
# =============================================================================


class SqlBatchStore:
    """Batch store over the ``ledger_batches`` table"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_batch(row: BatchRecord) -> Batch:
        return Batch.model_validate(row.payload)

    def get(self, batch_id: str) -> Optional[Batch]:
        with session_scope(self.session_factory) as session:
            row = session.get(BatchRecord, batch_id)
            return self._to_batch(row) if row is not None else None

    def add(self, batch: Batch) -> None:
        try:
            with session_scope(self.session_factory) as session:
                session.add(BatchRecord(
                    batch_id=batch.batch_id,
                    code=batch.code,
                    date=batch.date,
                    status=batch.status.value,
                    payload=batch.model_dump(mode="json"),
                ))
        except IntegrityError as e:
            raise ConcurrencyError(
                f"Batch {batch.batch_id} already exists",
                context={"batch_id": batch.batch_id},
            ) from e

    def replace(self, batch: Batch) -> None:
        with session_scope(self.session_factory) as session:
            row = session.get(BatchRecord, batch.batch_id)
            if row is None:
                raise NotFoundError(
                    f"Batch {batch.batch_id} not found",
                    entity_type="Batch", entity_id=batch.batch_id,
                )
            row.code = batch.code
            row.date = batch.date
            row.status = batch.status.value
            row.payload = batch.model_dump(mode="json")

    def list_batches(self) -> List[Batch]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(BatchRecord).order_by(BatchRecord.date.desc(), BatchRecord.code.desc())
            ).all()
            return [self._to_batch(r) for r in rows]

    def count_code_prefix(self, prefix: str) -> int:
        with session_scope(self.session_factory) as session:
            return session.scalar(
                select(func.count()).select_from(BatchRecord)
                .where(BatchRecord.code.startswith(prefix, autoescape=True))
            )


# =============================================================================
# Audit log
# =============================================================================


class SqlAuditLogStore:
    """Append-only audit log over the ``ledger_audit_entries`` table"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_entry(row: AuditEntryRecord) -> AuditEntry:
        return AuditEntry(
            entry_id=row.entry_id,
            actor_id=row.actor_id,
            actor_label=row.actor_label,
            action=row.action,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            related_batch_id=row.related_batch_id,
            changes=row.changes,
            reason=row.reason,
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            timestamp=_from_db_time(row.timestamp),
            entry_hash=row.entry_hash,
        )

    def append(self, entry: AuditEntry) -> None:
        try:
            with session_scope(self.session_factory) as session:
                session.add(AuditEntryRecord(
                    entry_id=entry.entry_id,
                    actor_id=entry.actor_id,
                    actor_label=entry.actor_label,
                    action=entry.action.value,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    related_batch_id=entry.related_batch_id,
                    changes=entry.changes,
                    reason=entry.reason,
                    ip_address=entry.ip_address,
                    user_agent=entry.user_agent,
                    timestamp=_to_db_time(entry.timestamp),
                    entry_hash=entry.entry_hash,
                ))
        except IntegrityError as e:
            raise ConcurrencyError(
                f"Audit entry {entry.entry_id} already exists",
                context={"entry_id": entry.entry_id},
            ) from e

    def query(self, query: AuditQuery, limit: int) -> Tuple[List[AuditEntry], int]:
        filters = []
        if query.entity_type is not None:
            filters.append(AuditEntryRecord.entity_type == query.entity_type)
        if query.entity_id is not None:
            filters.append(AuditEntryRecord.entity_id == query.entity_id)
        if query.actor_id is not None:
            filters.append(AuditEntryRecord.actor_id == query.actor_id)
        if query.related_batch_id is not None:
            filters.append(AuditEntryRecord.related_batch_id == query.related_batch_id)
        if query.action is not None:
            filters.append(AuditEntryRecord.action == query.action.value)

        with session_scope(self.session_factory) as session:
            total = session.scalar(
                select(func.count()).select_from(AuditEntryRecord).where(*filters)
            )
            rows = session.scalars(
                select(AuditEntryRecord)
                .where(*filters)
                .order_by(AuditEntryRecord.timestamp.desc(), AuditEntryRecord.seq.desc())
                .offset(query.offset)
                .limit(limit)
            ).all()
            return [self._to_entry(r) for r in rows], total


# =============================================================================
# Certificates
# =============================================================================


class SqlCertificateStore:
    """Certificate store over the ``ledger_certificates`` table"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_certificate(row: CertificateRecord) -> Certificate:
        return Certificate(
            certificate_id=row.certificate_id,
            batch_id=row.batch_id,
            code=row.code,
            content_hash=row.content_hash,
            verification_url=row.verification_url,
            issued_at=_from_db_time(row.issued_at),
            verified_at=_from_db_time(row.verified_at),
            co2_avoided_kg=Decimal(row.co2_avoided_kg),
            plastic_diverted_kg=Decimal(row.plastic_diverted_kg),
            facts=row.facts,
        )

    def _select_by_code(self, session, code: str) -> Optional[CertificateRecord]:
        return session.scalars(
            select(CertificateRecord).where(CertificateRecord.code == code)
        ).first()

    def insert(self, certificate: Certificate) -> None:
        try:
            with session_scope(self.session_factory) as session:
                session.add(CertificateRecord(
                    certificate_id=certificate.certificate_id,
                    batch_id=certificate.batch_id,
                    code=certificate.code,
                    content_hash=certificate.content_hash,
                    verification_url=certificate.verification_url,
                    issued_at=_to_db_time(certificate.issued_at),
                    verified_at=_to_db_time(certificate.verified_at),
                    co2_avoided_kg=str(certificate.co2_avoided_kg),
                    plastic_diverted_kg=str(certificate.plastic_diverted_kg),
                    facts=certificate.facts,
                ))
        except IntegrityError as e:
            raise DuplicateCodeError(
                f"Certificate code {certificate.code} already exists",
                context={"code": certificate.code},
            ) from e

    def get_by_code(self, code: str) -> Optional[Certificate]:
        with session_scope(self.session_factory) as session:
            row = self._select_by_code(session, code)
            return self._to_certificate(row) if row is not None else None

    def code_exists(self, code: str) -> bool:
        with session_scope(self.session_factory) as session:
            return session.scalar(
                select(func.count()).select_from(CertificateRecord)
                .where(CertificateRecord.code == code)
            ) > 0

    def list_for_batch(self, batch_id: str) -> List[Certificate]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(CertificateRecord)
                .where(CertificateRecord.batch_id == batch_id)
                .order_by(CertificateRecord.issued_at.desc())
            ).all()
            return [self._to_certificate(r) for r in rows]

    def mark_verified(self, code: str, verified_at: datetime) -> Optional[Certificate]:
        try:
            with session_scope(self.session_factory) as session:
                result = session.execute(
                    update(CertificateRecord)
                    .where(
                        CertificateRecord.code == code,
                        CertificateRecord.verified_at.is_(None),
                    )
                    .values(verified_at=_to_db_time(verified_at))
                )
                if result.rowcount:
                    logger.debug("Certificate %s first verification stamped", code)
        except OperationalError as e:
            raise ConcurrencyError(
                f"Could not stamp verification for certificate {code}",
                context={"code": code},
            ) from e
        return self.get_by_code(code)


__all__ = ["SqlBatchStore", "SqlAuditLogStore", "SqlCertificateStore"]
