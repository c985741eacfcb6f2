"""Quick smoke run of the API Gateway: the impossible-travel scenario."""

import json
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from trustgate.api.gateway import ServiceManager, app
from trustgate.api.service import AccessEvaluationService
from trustgate.data.schemas.location import GeoLocation
from trustgate.events.dispatcher import EventDispatcher
from trustgate.governance.audit.store import InMemoryAuditStore
from trustgate.governance.audit.writer import AuditWriter
from trustgate.providers.geolocation import StaticGeolocationProvider
from trustgate.providers.identity import InMemoryIdentityProvider
from trustgate.registry.store import InMemoryTrustRegistry

LAGOS_IP = "102.89.1.10"
LONDON_IP = "81.2.69.142"

service = AccessEvaluationService(
    registry=InMemoryTrustRegistry(),
    audit_writer=AuditWriter(InMemoryAuditStore(), use_background_writer=False),
    dispatcher=EventDispatcher(),
    identity_provider=InMemoryIdentityProvider(["alice@company.com"]),
    geolocation_provider=StaticGeolocationProvider({
        LAGOS_IP: GeoLocation(city="Lagos", country="Nigeria", latitude=6.5244, longitude=3.3792),
        LONDON_IP: GeoLocation(city="London", country="United Kingdom", latitude=51.5074, longitude=-0.1278),
    }),
)
ServiceManager.set_service(service)
client = TestClient(app)

t0 = datetime.now(timezone.utc).replace(microsecond=0)

attempts = [
    ("Lagos, first login", {"ip": LAGOS_IP, "timestamp": t0.isoformat()}),
    ("London, 45 minutes later", {"ip": LONDON_IP, "timestamp": (t0 + timedelta(minutes=45)).isoformat()}),
]

all_passed = True
expected = ["GRANTED", "BLOCKED"]
for (title, overrides), want in zip(attempts, expected):
    print("=" * 60)
    print(f"POST /check-access - {title}")
    print("=" * 60)
    body = {"email": "alice@company.com", "deviceFingerprint": "fp_7a9c2e", "userAgent": "smoke"}
    body.update(overrides)
    response = client.post("/check-access", json=body)
    data = response.json()
    print(json.dumps(data, indent=2, ensure_ascii=False))
    if response.status_code != 200 or data.get("decision") != want:
        print(f"❌ expected {want}")
        all_passed = False

print("\n" + "=" * 60)
print("GET /audit")
print("=" * 60)
audit = client.get("/audit", params={"principal": "alice@company.com"}).json()
print(f"entries: {audit['count']}")
for entry in audit["entries"]:
    print(f"  {entry['timestamp']}  {entry['location']:<25} {entry['decision']:<9} {entry['riskScore']}")

print("\n" + "=" * 60)
if all_passed and audit["count"] == 2:
    print("✅ ALL CHECKS PASSED!")
else:
    print("❌ CHECKS FAILED!")
print("=" * 60)
