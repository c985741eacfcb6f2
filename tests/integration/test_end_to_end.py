"""Integration tests for TrustGate.

End-to-end tests that drive the evaluation service with a file-backed
audit log and the background writer, as a deployment would.
"""

import os
import threading
from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import LAGOS, LONDON, T0
from trustgate.api.schemas import CheckAccessRequest
from trustgate.api.service import AccessEvaluationService
from trustgate.common.config import Config
from trustgate.data.schemas.login_attempt import DevicePosture
from trustgate.events.dispatcher import EventDispatcher
from trustgate.governance.audit.store import FileAuditStore
from trustgate.governance.audit.writer import AuditWriter
from trustgate.providers.compliance import StaticComplianceProvider
from trustgate.providers.geolocation import StaticGeolocationProvider
from trustgate.providers.identity import InMemoryIdentityProvider
from trustgate.registry.store import InMemoryTrustRegistry

LAGOS_IP = "102.89.1.10"
LONDON_IP = "81.2.69.142"
PRINCIPAL = "alice@company.com"


class TestAccessServiceIntegration:
    """Full decision lifecycle through the evaluation service."""

    @pytest.fixture
    def audit_store(self, tmp_path):
        return FileAuditStore(log_dir=tmp_path / "audit")

    @pytest.fixture
    def service(self, audit_store):
        with patch.dict(os.environ, {"TRUSTGATE_AUDIT_STORAGE_TYPE": "memory"}, clear=False):
            config = Config()
        svc = AccessEvaluationService(
            config=config,
            registry=InMemoryTrustRegistry(),
            audit_writer=AuditWriter(audit_store, use_background_writer=True),
            dispatcher=EventDispatcher(),
            identity_provider=InMemoryIdentityProvider([PRINCIPAL]),
            geolocation_provider=StaticGeolocationProvider({LAGOS_IP: LAGOS, LONDON_IP: LONDON}),
            compliance_provider=StaticComplianceProvider({
                "fp_unpatched": DevicePosture(os_patched=False),
            }),
        )
        yield svc
        svc.shutdown()

    def check(self, service, minutes=0, ip=LAGOS_IP, fingerprint="fp_7a9c2e", **extra):
        return service.evaluate(CheckAccessRequest(
            email=PRINCIPAL,
            device_fingerprint=fingerprint,
            ip=ip,
            timestamp=T0 + timedelta(minutes=minutes),
            **extra,
        ))

    def test_login_journey(self, service, audit_store):
        """First login, routine login, impossible travel, then a new laptop."""
        first = self.check(service)
        assert (first.decision, first.risk_score) == ("GRANTED", 30)

        routine = self.check(service, minutes=8 * 60)
        assert (routine.decision, routine.risk_score) == ("GRANTED", 25)

        travel = self.check(service, minutes=8 * 60 + 45, ip=LONDON_IP)
        assert (travel.decision, travel.risk_score) == ("BLOCKED", 100)

        new_device = self.check(service, minutes=9 * 60, fingerprint="fp_new_laptop")
        assert (new_device.decision, new_device.risk_score) == ("CHALLENGE", 45)

        baseline = service.registry.get_baseline(PRINCIPAL)
        assert baseline.trusted_fingerprint == "fp_7a9c2e"
        assert baseline.last_location == LAGOS
        assert baseline.version == 2

        assert service.audit_writer.flush(timeout=5)
        entries = service.get_audit_entries(principal=PRINCIPAL)
        assert [e.decision for e in entries] == ["CHALLENGE", "BLOCKED", "GRANTED", "GRANTED"]
        assert audit_store.verify_integrity() is True

    def test_noncompliant_device_blocked(self, service):
        self.check(service)
        response = self.check(service, minutes=60, fingerprint="fp_unpatched")

        assert response.decision == "BLOCKED"
        device = response.risk_factors[1]
        assert device.status == "danger"
        assert device.points == 50

    def test_unlocated_ip_degrades(self, service):
        self.check(service)
        response = self.check(service, minutes=60, ip="10.0.0.1")

        assert response.decision == "GRANTED"
        assert response.risk_factors[2].label.startswith("⚠️")

    def test_concurrent_attempts_serialize(self, service, audit_store):
        """Parallel grants for one principal commit one after another."""
        responses = []
        lock = threading.Lock()

        def attempt(i):
            response = self.check(service, minutes=i, attemptId=f"att_conc_{i}")
            with lock:
                responses.append(response)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(responses) == 10
        assert all(r.decision == "GRANTED" for r in responses)

        baseline = service.registry.get_baseline(PRINCIPAL)
        assert baseline.version == 10
        assert baseline.last_seen_at in {T0 + timedelta(minutes=i) for i in range(10)}

        assert service.audit_writer.flush(timeout=5)
        assert len(audit_store.get_entries(limit=100)) == 10
        assert audit_store.verify_integrity() is True

    def test_live_subscriber_sees_journey(self, service):
        with service.subscribe([PRINCIPAL]) as subscription:
            self.check(service)
            self.check(service, minutes=45, ip=LONDON_IP)

            first = subscription.get(timeout=2)
            second = subscription.get(timeout=2)

        assert first.decision.decision.value == "GRANTED"
        assert second.decision.decision.value == "BLOCKED"
        assert second.metadata["is_impossible_travel"] is True
