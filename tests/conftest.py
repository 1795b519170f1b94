# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import os
from datetime import date, datetime, timezone

import pytest

from pyroledger.audit.config import AuditConfig
from pyroledger.audit.config import reset_config as reset_audit_config
from pyroledger.audit.models import Actor
from pyroledger.audit.store import InMemoryAuditLogStore
from pyroledger.audit.trail import AuditTrail
from pyroledger.batches.lifecycle import BatchLifecycle
from pyroledger.batches.store import InMemoryBatchStore
from pyroledger.certification.config import CertificationConfig
from pyroledger.certification.config import reset_config as reset_cert_config
from pyroledger.certification.issuer import CertificateIssuer
from pyroledger.certification.store import InMemoryCertificateStore
from pyroledger.certification.verifier import CertificateVerifier
from pyroledger.db.base import reset_engine
from pyroledger.determinism import DeterministicClock
from pyroledger.ghg.calculator import GHGCalculator
from pyroledger.ghg.config import GHGConfig
from pyroledger.ghg.config import reset_config as reset_ghg_config

FROZEN_NOW = datetime(2026, 3, 14, 10, 30, 0, tzinfo=timezone.utc)

#: The reference batch: 450 kg feedstock, 15% contamination, 360 L oil,
#: 40 L diesel over 6 hours
REFERENCE_INPUTS = {
    "feedstock_mass_kg": 450,
    "contamination_pct": 15,
    "oil_output_l": 360,
    "diesel_consumed_l": 40,
    "duration_hours": 6,
}


@pytest.fixture(autouse=True)
def _isolate_global_state(monkeypatch):
    """Reset config and engine singletons, env overrides and the clock around each test."""
    for name in list(os.environ):
        if name.startswith("PYROLEDGER_"):
            monkeypatch.delenv(name, raising=False)
    reset_ghg_config()
    reset_audit_config()
    reset_cert_config()
    yield
    DeterministicClock.unfreeze()
    reset_ghg_config()
    reset_audit_config()
    reset_cert_config()
    reset_engine()


@pytest.fixture
def frozen_clock():
    """Freeze the ledger clock at FROZEN_NOW."""
    DeterministicClock.freeze(FROZEN_NOW)
    yield FROZEN_NOW
    DeterministicClock.unfreeze()


# ==================== GHG ====================

@pytest.fixture
def ghg_config():
    return GHGConfig()


@pytest.fixture
def calculator(ghg_config):
    return GHGCalculator(ghg_config)


@pytest.fixture
def reference_inputs():
    return dict(REFERENCE_INPUTS)


# ==================== AUDIT ====================

@pytest.fixture
def actor():
    return Actor(actor_id="user-ops-1", actor_label="operator@plant.example")


@pytest.fixture
def other_actor():
    return Actor(actor_id="user-lab-2", actor_label="lab@plant.example")


@pytest.fixture
def audit_config():
    return AuditConfig()


@pytest.fixture
def audit_store():
    return InMemoryAuditLogStore()


@pytest.fixture
def trail(audit_store, audit_config):
    return AuditTrail(audit_store, config=audit_config)


# ==================== BATCHES ====================

@pytest.fixture
def batch_store():
    return InMemoryBatchStore()


@pytest.fixture
def lifecycle(batch_store, trail, calculator):
    return BatchLifecycle(batch_store, trail, calculator)


@pytest.fixture
def new_batch_request():
    return {
        "feedstock_type": "LDPE Agrícola",
        "feedstock_origin": "Campo Norte",
        "feedstock_weight_kg": 450,
        "contamination_pct": 15,
        "operators": ["Ana", "Luis"],
        "date": date(2026, 3, 14),
    }


@pytest.fixture
def active_batch(lifecycle, actor, new_batch_request):
    return lifecycle.create(actor, new_batch_request)


@pytest.fixture
def completed_batch(lifecycle, actor, active_batch):
    """Reference batch completed with two lab results."""
    lifecycle.add_lab_result(actor, active_batch.batch_id, {
        "lab_name": "Lab Norte",
        "lab_certification": "ISO/IEC 17025",
        "sample_number": "S-002",
        "report_date": datetime(2026, 3, 20, tzinfo=timezone.utc),
        "sulfur_percent": 0.12,
        "water_content": 0.05,
        "verdict": "PASS",
    })
    lifecycle.add_lab_result(actor, active_batch.batch_id, {
        "lab_name": "Lab Sur",
        "sample_number": "S-001",
        "report_date": datetime(2026, 3, 21, tzinfo=timezone.utc),
        "sulfur_percent": 0.15,
        "verdict": "PASS",
    })
    return lifecycle.update(actor, active_batch.batch_id, {
        "status": "COMPLETED",
        "oil_output_l": 360,
        "yield_percent": 80,
        "diesel_consumed_l": 40,
        "duration_minutes": 360,
    })


# ==================== CERTIFICATION ====================

@pytest.fixture
def cert_config():
    return CertificationConfig(public_base_url="https://trace.example.org")


@pytest.fixture
def certificate_store():
    return InMemoryCertificateStore()


@pytest.fixture
def issuer(batch_store, certificate_store, cert_config, trail):
    return CertificateIssuer(batch_store, certificate_store, cert_config, trail=trail)


@pytest.fixture
def verifier(certificate_store, cert_config):
    return CertificateVerifier(certificate_store, cert_config)
