"""
SQL persistence for the ledger stores
"""

from pyroledger.db.base import (
    Base,
    build_engine,
    build_session_factory,
    get_database_url,
    get_engine,
    get_session_factory,
    init_db,
    reset_engine,
    session_scope,
)
from pyroledger.db.models import AuditEntryRecord, BatchRecord, CertificateRecord
from pyroledger.db.stores import SqlAuditLogStore, SqlBatchStore, SqlCertificateStore

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "get_database_url",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_engine",
    "session_scope",
    "AuditEntryRecord",
    "BatchRecord",
    "CertificateRecord",
    "SqlAuditLogStore",
    "SqlBatchStore",
    "SqlCertificateStore",
]
