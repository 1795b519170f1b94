# -*- coding: utf-8 -*-
"""
Ledger API Tests

Exercises the FastAPI router mounted by ``configure_ledger_service``:
- GHG calculation and validation errors
- Batch registration, update and lab results with actor headers
- Audit log queries
- Certificate issuance, listing and public verification
- Error status mapping
"""

from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pyroledger.audit.config import AuditConfig
from pyroledger.certification.config import CertificationConfig
from pyroledger.ghg.config import GHGConfig
from pyroledger.api.router import router as ledger_router
from pyroledger.db.stores import SqlBatchStore
from pyroledger.setup import (
    LedgerService,
    configure_ledger_service,
    get_ledger_service,
    get_router,
)

PREFIX = "/api/v1/ledger"
OPS = {"X-Actor-Id": "user-ops-1", "X-Actor-Label": "operator@plant.example"}


@pytest.fixture
def service():
    return LedgerService(
        ghg_config=GHGConfig(),
        audit_config=AuditConfig(),
        cert_config=CertificationConfig(public_base_url="https://trace.example.org"),
    )


@pytest.fixture
def app(service):
    app = FastAPI()
    configure_ledger_service(app, service=service)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def batch_id(client):
    response = client.post(f"{PREFIX}/batches", headers=OPS, json={
        "feedstock_type": "LDPE Agrícola",
        "feedstock_origin": "Campo Norte",
        "feedstock_weight_kg": 450,
        "contamination_pct": 15,
        "operators": ["Ana", "Luis"],
        "date": "2026-03-14",
    })
    assert response.status_code == 201
    return response.json()["batch_id"]


@pytest.fixture
def completed_id(client, batch_id):
    response = client.patch(f"{PREFIX}/batches/{batch_id}", headers=OPS, json={
        "status": "COMPLETED",
        "oil_output_l": 360,
        "diesel_consumed_l": 40,
        "duration_minutes": 360,
    })
    assert response.status_code == 200
    return batch_id


class TestSetup:
    """Test service wiring."""

    def test_service_on_app_state(self, app, service):
        assert get_ledger_service(app) is service
        assert service.get_health()["status"] == "healthy"

    def test_unconfigured_app(self):
        with pytest.raises(RuntimeError):
            get_ledger_service(FastAPI())

    def test_shutdown(self, service, app):
        service.shutdown()
        assert service.get_health()["status"] == "not_started"

    def test_get_router(self, app):
        router = get_router()
        assert router is ledger_router
        mounted = {route.path for route in app.routes}
        assert {route.path for route in router.routes} <= mounted
        assert f"{PREFIX}/ghg/calculate" in mounted

    def test_process_singleton_follows_configure(self, app, service):
        assert get_ledger_service() is service

    def test_configure_with_database_url(self):
        app = FastAPI()
        service = configure_ledger_service(app, database_url="sqlite://")
        assert isinstance(service.batch_store, SqlBatchStore)
        assert get_ledger_service(app) is service


class TestCalculateEndpoint:
    """Test POST /ghg/calculate."""

    def test_reference_batch(self, client):
        response = client.post(f"{PREFIX}/ghg/calculate", json={
            "feedstockMass": 450, "contaminationFraction": 15, "oilOutput": 360,
            "dieselConsumed": 40, "durationHours": 6,
        })
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["avoided"]) == Decimal("407.63020984")
        assert Decimal(body["baseline_total"]) == Decimal("1298.33883484")

    def test_invalid_inputs(self, client):
        response = client.post(f"{PREFIX}/ghg/calculate", json={"feedstock_mass_kg": -3})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error_code"] == "PL_VALIDATION_ERROR"
        assert "feedstock_mass_kg" in detail["context"]["invalid_fields"]

    def test_unknown_input(self, client):
        response = client.post(f"{PREFIX}/ghg/calculate", json={
            "feedstockMass": 450, "oilOutput": 360, "contaminationPct": 15,
        })
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error_code"] == "PL_VALIDATION_ERROR"
        assert "contaminationPct" in detail["context"]["invalid_fields"]


class TestBatchEndpoints:
    """Test batch mutations through the API."""

    def test_create(self, client, batch_id):
        body = client.get(f"{PREFIX}/batches/{batch_id}").json()
        assert body["code"] == "C/03/1/LDPA/01"
        assert body["status"] == "ACTIVE"
        assert body["ghg"] is None

    def test_actor_required(self, client, batch_id):
        response = client.patch(f"{PREFIX}/batches/{batch_id}", json={"notes": "x"})
        assert response.status_code == 401

    def test_complete_computes_ghg(self, client, completed_id):
        body = client.get(f"{PREFIX}/batches/{completed_id}").json()
        assert Decimal(body["ghg"]["avoided"]) == Decimal("407.63020984")

    def test_update_audited_with_request_metadata(self, client, batch_id):
        client.patch(
            f"{PREFIX}/batches/{batch_id}",
            headers={**OPS, "X-Change-Reason": "scale fix", "User-Agent": "tablet/1.0"},
            json={"oil_output_l": 300},
        )
        entries = client.get(f"{PREFIX}/audit", params={"action": "UPDATE"}).json()["entries"]
        assert len(entries) == 1
        assert entries[0]["reason"] == "scale fix"
        assert entries[0]["user_agent"] == "tablet/1.0"
        assert entries[0]["ip_address"] is not None
        assert entries[0]["changes"] == {"oil_output_l": {"old": None, "new": 300}}

    def test_missing_batch(self, client):
        assert client.get(f"{PREFIX}/batches/nope").status_code == 404
        assert client.patch(f"{PREFIX}/batches/nope", headers=OPS, json={"notes": "x"}).status_code == 404

    def test_lab_result(self, client, batch_id):
        response = client.post(f"{PREFIX}/batches/{batch_id}/lab", headers=OPS, json={
            "lab_name": "Lab Norte",
            "sample_number": "S-001",
            "report_date": "2026-03-20T00:00:00Z",
            "verdict": "PASS",
        })
        assert response.status_code == 201
        history = client.get(f"{PREFIX}/batches/{batch_id}/audit").json()
        assert [e["entity_type"] for e in history["entries"]] == ["LabResult", "Batch"]


class TestAuditEndpoint:
    """Test GET /audit."""

    def test_filters(self, client, completed_id):
        body = client.get(f"{PREFIX}/audit", params={
            "entity_type": "Batch", "entity_id": completed_id, "actor_id": "user-ops-1",
        }).json()
        assert body["total"] == 2
        assert [e["action"] for e in body["entries"]] == ["UPDATE", "CREATE"]

    def test_pagination(self, client, completed_id):
        body = client.get(f"{PREFIX}/audit", params={"limit": 1, "offset": 1}).json()
        assert body["total"] == 2
        assert len(body["entries"]) == 1
        assert body["entries"][0]["action"] == "CREATE"

    def test_invalid_limit(self, client):
        assert client.get(f"{PREFIX}/audit", params={"limit": 0}).status_code == 422


class TestCertificateEndpoints:
    """Test issuance and public verification."""

    def test_issue_and_verify(self, client, completed_id):
        issued = client.post(f"{PREFIX}/batches/{completed_id}/certificates", headers=OPS)
        assert issued.status_code == 201
        code = issued.json()["code"]
        assert issued.json()["verification_url"] == f"https://trace.example.org/verify/{code}"

        public = client.get(f"{PREFIX}/certificates/{code.lower()}")
        assert public.status_code == 200
        body = public.json()
        assert body["hash_valid"] is True
        assert body["verified_at"] is not None
        assert "batch_id" not in body

        again = client.get(f"{PREFIX}/certificates/{code}").json()
        assert again["verified_at"] == body["verified_at"]

    def test_list(self, client, completed_id):
        for _ in range(2):
            client.post(f"{PREFIX}/batches/{completed_id}/certificates", headers=OPS)
        listed = client.get(f"{PREFIX}/batches/{completed_id}/certificates").json()
        assert len(listed) == 2
        assert listed[0]["content_hash"] == listed[1]["content_hash"]
        assert listed[0]["code"] != listed[1]["code"]

    def test_active_batch_conflict(self, client, batch_id):
        response = client.post(f"{PREFIX}/batches/{batch_id}/certificates", headers=OPS)
        assert response.status_code == 409
        assert response.json()["detail"]["context"]["reason"] == "not_completed"

    def test_unknown_batch(self, client):
        assert client.post(f"{PREFIX}/batches/nope/certificates", headers=OPS).status_code == 404

    def test_unknown_code(self, client):
        assert client.get(f"{PREFIX}/certificates/ZZZZ2345").status_code == 404

    def test_issue_requires_actor(self, client, completed_id):
        assert client.post(f"{PREFIX}/batches/{completed_id}/certificates").status_code == 401
