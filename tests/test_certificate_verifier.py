# -*- coding: utf-8 -*-
"""
Certificate Verifier Tests

This test suite validates:
- First-verification stamping and its write-once behaviour
- Code normalization
- Hash validation of the stored fact snapshot
- Concurrent first lookups
- Retry on store contention
- The public projection
"""

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pyroledger.certification.config import CertificationConfig
from pyroledger.certification.facts import FACT_FORMAT, build_fact_document, fact_hash
from pyroledger.certification.store import InMemoryCertificateStore
from pyroledger.certification.verifier import CertificateVerifier, normalize_code
from pyroledger.determinism import DeterministicClock
from pyroledger.exceptions import ConcurrencyError, NotFoundError


@pytest.fixture
def issued(issuer, completed_batch, frozen_clock):
    return issuer.issue(completed_batch.batch_id)


class TestVerify:
    """Test public lookups."""

    def test_first_lookup_stamps(self, verifier, issued, frozen_clock):
        later = frozen_clock + timedelta(days=2)
        DeterministicClock.freeze(later)
        result = verifier.verify(issued.code)
        assert result.verified_at == later
        assert result.issued_at == frozen_clock
        assert result.hash_valid is True

    def test_repeat_lookup_keeps_first_stamp(self, verifier, certificate_store, issued, frozen_clock):
        DeterministicClock.freeze(frozen_clock + timedelta(days=1))
        first = verifier.verify(issued.code)
        DeterministicClock.freeze(frozen_clock + timedelta(days=5))
        second = verifier.verify(issued.code)
        assert second.verified_at == first.verified_at
        assert certificate_store.get_by_code(issued.code).verified_at == first.verified_at

    @pytest.mark.parametrize("transform", [str.lower, lambda c: f"  {c}\n", lambda c: c.swapcase()])
    def test_code_case_and_whitespace(self, verifier, issued, transform):
        assert verifier.verify(transform(issued.code)).code == issued.code

    @pytest.mark.parametrize("code", ["ZZZZZZZZ", "", "   "])
    def test_unknown_code(self, verifier, issued, code):
        with pytest.raises(NotFoundError):
            verifier.verify(code)

    def test_normalize_code(self):
        assert normalize_code(" abcd2345 ") == "ABCD2345"
        assert normalize_code(None) == ""


class TestProjection:
    """Test what an anonymous verifier sees."""

    def test_public_fields(self, verifier, issued):
        result = verifier.verify(issued.code)
        assert result.batch == {"code": "C/03/1/LDPA/01", "date": "2026-03-14"}
        assert result.feedstock["type"] == "LDPE Agrícola"
        assert result.impact["avoided"] == "407.63020984"
        assert result.verification_url == issued.verification_url
        assert result.content_hash == issued.content_hash

    def test_lab_verdicts(self, verifier, issued):
        result = verifier.verify(issued.code)
        assert [(lab.lab_name, lab.verdict) for lab in result.lab] == [
            ("Lab Sur", "PASS"), ("Lab Norte", "PASS"),
        ]
        assert result.lab[1].water_content == Decimal("0.05")
        assert result.lab[1].lab_certification == "ISO/IEC 17025"
        assert result.lab[0].lab_certification is None

    def test_no_internal_identifiers(self, verifier, issued):
        dumped = verifier.verify(issued.code).model_dump()
        assert "certificate_id" not in dumped
        assert "batch_id" not in dumped
        assert "facts" not in dumped
        assert issued.batch_id not in str(dumped)


class TestHashValidation:
    """Test tamper detection on lookup."""

    def test_tampered_facts_flagged(self, verifier, certificate_store, issued):
        stored = certificate_store.get_by_code(issued.code)
        tampered_facts = dict(stored.facts, impact={**stored.facts["impact"], "avoided": 9999})
        certificate_store._by_code[issued.code] = stored.model_copy(update={"facts": tampered_facts})
        assert verifier.verify(issued.code).hash_valid is False

    def test_verify_document(self, completed_batch, issued):
        doc = build_fact_document(completed_batch)
        assert CertificateVerifier.verify_document(doc, issued.content_hash)
        assert CertificateVerifier.verify_document(doc, issued.content_hash.upper())
        assert not CertificateVerifier.verify_document({**doc, "format": "other"}, issued.content_hash)

    def test_hash_recomputable_from_projection(self, verifier, issued):
        """Test that a verifier can rebuild the document from what it was shown."""
        result = verifier.verify(issued.code)
        rebuilt = {
            "format": FACT_FORMAT,
            "batch": result.batch,
            "feedstock": result.feedstock,
            "output": result.output,
            "impact": result.impact,
            "lab": [lab.model_dump() for lab in result.lab],
        }
        assert fact_hash(rebuilt) == result.content_hash


class TestConcurrency:
    """Test concurrent first lookups and store contention."""

    def test_concurrent_first_lookups_one_stamp(self, certificate_store, cert_config, issued):
        DeterministicClock.unfreeze()
        verifier = CertificateVerifier(certificate_store, cert_config)
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def lookup():
            barrier.wait()
            result = verifier.verify(issued.code)
            with lock:
                results.append(result.verified_at)

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = certificate_store.get_by_code(issued.code).verified_at
        assert len(results) == 8
        assert set(results) == {stored}

    def test_contention_retried(self, issued, certificate_store, cert_config):
        store = FlakyCertificateStore(certificate_store, failures=2)
        verifier = CertificateVerifier(store, cert_config)
        result = verifier.verify(issued.code)
        assert result.verified_at is not None
        assert store.calls == 3

    def test_contention_exhausted_not_surfaced(self, issued, certificate_store):
        store = FlakyCertificateStore(certificate_store, failures=100)
        verifier = CertificateVerifier(store, CertificationConfig(verify_retry_attempts=2))
        result = verifier.verify(issued.code)
        assert result.verified_at is None
        assert store.calls == 3


class FlakyCertificateStore:
    """Wraps a store and raises ConcurrencyError on the first mark_verified calls."""

    def __init__(self, inner: InMemoryCertificateStore, failures: int):
        self.inner = inner
        self.failures = failures
        self.calls = 0

    def get_by_code(self, code):
        return self.inner.get_by_code(code)

    def mark_verified(self, code, verified_at):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConcurrencyError("database is locked")
        return self.inner.mark_verified(code, verified_at)


class TestStoreStamp:
    """Test the set-if-null primitive directly."""

    def test_mark_verified_write_once(self, certificate_store, issued):
        t1 = datetime(2026, 4, 1, tzinfo=timezone.utc)
        t2 = datetime(2026, 4, 2, tzinfo=timezone.utc)
        assert certificate_store.mark_verified(issued.code, t1).verified_at == t1
        assert certificate_store.mark_verified(issued.code, t2).verified_at == t1

    def test_mark_verified_unknown(self, certificate_store):
        assert certificate_store.mark_verified("NOPE2345", datetime.now(timezone.utc)) is None
