"""
Database models for the ledger stores

Tables:
- ledger_batches: batch snapshots (JSON payload plus indexed keys)
- ledger_audit_entries: append-only audit log
- ledger_certificates: certificates with write-once verified_at
"""

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)

from pyroledger.db.base import Base


class BatchRecord(Base):
    """Batch snapshot; the full record is kept in ``payload``"""

    __tablename__ = "ledger_batches"

    batch_id = Column(String(36), primary_key=True)
    code = Column(String(64), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)
    payload = Column(JSON, nullable=False)

    __table_args__ = (
        Index("idx_batch_date_code", "date", "code"),
    )

    def __repr__(self):
        return f"<BatchRecord(batch_id={self.batch_id}, code={self.code}, status={self.status})>"


class AuditEntryRecord(Base):
    """Append-only audit log entry; rows are never updated or deleted"""

    __tablename__ = "ledger_audit_entries"

    # Arrival order, used to break timestamp ties
    seq = Column(Integer, primary_key=True, autoincrement=True)
    entry_id = Column(String(36), nullable=False, unique=True)

    actor_id = Column(String(255), nullable=False, index=True)
    actor_label = Column(String(255), nullable=False)
    action = Column(String(10), nullable=False)
    entity_type = Column(String(64), nullable=False)
    entity_id = Column(String(64), nullable=False)
    related_batch_id = Column(String(36), nullable=True, index=True)
    changes = Column(JSON, nullable=True)
    reason = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, index=True)  # UTC
    entry_hash = Column(String(64), nullable=False)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )

    def __repr__(self):
        return (
            f"<AuditEntryRecord(entry_id={self.entry_id}, action={self.action}, "
            f"entity={self.entity_type}:{self.entity_id})>"
        )


class CertificateRecord(Base):
    """Issued certificate; only verified_at ever changes, once"""

    __tablename__ = "ledger_certificates"

    certificate_id = Column(String(36), primary_key=True)
    batch_id = Column(String(36), nullable=False, index=True)
    code = Column(String(32), nullable=False, unique=True)
    content_hash = Column(String(64), nullable=False)
    verification_url = Column(Text, nullable=False)
    issued_at = Column(DateTime, nullable=False)  # UTC
    verified_at = Column(DateTime, nullable=True)  # UTC
    co2_avoided_kg = Column(String(64), nullable=False)  # Decimal text
    plastic_diverted_kg = Column(String(64), nullable=False)  # Decimal text
    facts = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<CertificateRecord(code={self.code}, batch_id={self.batch_id})>"
