# -*- coding: utf-8 -*-
"""
Certificates & Public Verification
==================================

Tamper-evident certificates for completed batches: a deterministic SHA-256
hash over a canonical fact document, plus a short verification code.

Key Components:
    - config: CertificationConfig with PYROLEDGER_CERT_ env prefix
    - models: Certificate, IssuedCertificate, PublicVerification
    - facts: canonical fact document and its hash
    - store: CertificateStore protocol, InMemoryCertificateStore
    - issuer: CertificateIssuer
    - verifier: CertificateVerifier
    - metrics: Prometheus metrics
"""

from pyroledger.certification.config import (
    UNAMBIGUOUS_ALPHABET,
    CertificationConfig,
    get_config,
    reset_config,
    set_config,
)
from pyroledger.certification.models import (
    Certificate,
    IssuedCertificate,
    LabVerdict,
    PublicVerification,
)
from pyroledger.certification.facts import FACT_FORMAT, build_fact_document, fact_hash
from pyroledger.certification.store import CertificateStore, InMemoryCertificateStore
from pyroledger.certification.issuer import CertificateIssuer
from pyroledger.certification.verifier import CertificateVerifier, normalize_code

__all__ = [
    "UNAMBIGUOUS_ALPHABET",
    "CertificationConfig",
    "get_config",
    "set_config",
    "reset_config",
    "Certificate",
    "IssuedCertificate",
    "LabVerdict",
    "PublicVerification",
    "FACT_FORMAT",
    "build_fact_document",
    "fact_hash",
    "CertificateStore",
    "InMemoryCertificateStore",
    "CertificateIssuer",
    "CertificateVerifier",
    "normalize_code",
]
