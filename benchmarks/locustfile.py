"""
TrustGate HTTP Load Test - Locust
=================================
Exercises the real HTTP API layer (POST /check-access) end-to-end.
Complements benchmarks/latency_benchmark.py, which benchmarks the
in-process AccessEvaluationService without the network stack.

Run the gateway without live geolocation so ip-api.com rate limits do not
skew the numbers, with the load principals registered up front
(enrollment is not exposed over HTTP):

    TRUSTGATE_GEOLOCATION_PROVIDER=none TRUSTGATE_AUDIT_STORAGE_TYPE=memory \\
    TRUSTGATE_KNOWN_PRINCIPALS=$(seq -s, -f "load_%g@company.com" 0 499) \\
        python main.py

LOAD_PRINCIPALS must match the size of that list (default 500).

Usage (headless, 200 concurrent users, 60-second run):

    locust -f benchmarks/locustfile.py \\
           --headless -u 200 -r 20 --run-time 60s \\
           --host http://localhost:8000

    # Interactive web UI (browse to http://localhost:8089):
    locust -f benchmarks/locustfile.py --host http://localhost:8000

Key stats emitted at test end
------------------------------
  - Total requests / failure count / error rate (%)
  - P50 / P95 / P99 HTTP latency (ms)
  - Requests per second (RPS) at steady state
  - Mean CPU utilisation (%) + peak CPU (%) sampled via psutil
"""

from __future__ import annotations

import itertools
import os
import threading
import time
import uuid
from collections import deque
from datetime import datetime, timezone

import psutil
from locust import HttpUser, between, events, task

LOAD_PRINCIPALS = int(os.getenv("LOAD_PRINCIPALS", "500"))
_principal_counter = itertools.count()

# ---------------------------------------------------------------------------
# CPU utilisation sampler - runs in a background thread during the test
# ---------------------------------------------------------------------------

_cpu_samples: deque[float] = deque()
_cpu_sampler_stop = threading.Event()


def _sample_cpu() -> None:
    """Collect system-wide CPU% every second until signalled to stop."""
    while not _cpu_sampler_stop.is_set():
        _cpu_samples.append(psutil.cpu_percent(interval=None))
        time.sleep(1.0)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    _cpu_samples.clear()
    _cpu_sampler_stop.clear()
    # First call always returns 0.0
    psutil.cpu_percent(interval=None)
    t = threading.Thread(target=_sample_cpu, daemon=True, name="cpu-sampler")
    t.start()
    print("\n[trustgate-load-test] CPU sampler started.")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Stop the CPU sampler and print a consolidated results summary."""
    _cpu_sampler_stop.set()

    stats = environment.runner.stats.total
    req_count = stats.num_requests
    fail_count = stats.num_failures
    error_rate = (fail_count / req_count * 100) if req_count > 0 else 0.0

    p50 = stats.get_response_time_percentile(0.50) or 0
    p95 = stats.get_response_time_percentile(0.95) or 0
    p99 = stats.get_response_time_percentile(0.99) or 0
    rps = stats.current_rps

    cpu_list = list(_cpu_samples)
    mean_cpu = sum(cpu_list) / len(cpu_list) if cpu_list else 0.0
    peak_cpu = max(cpu_list) if cpu_list else 0.0

    print("\n" + "=" * 60)
    print("  TrustGate Load Test Results")
    print("=" * 60)
    print(f"  Requests        : {req_count:>8,}")
    print(f"  Failures        : {fail_count:>8,}")
    print(f"  Error rate      : {error_rate:>7.2f}%")
    print(f"  RPS (current)   : {rps:>7.1f}")
    print(f"  P50 latency     : {p50:>7} ms")
    print(f"  P95 latency     : {p95:>7} ms")
    print(f"  P99 latency     : {p99:>7} ms")
    print(f"  CPU mean        : {mean_cpu:>7.1f}%")
    print(f"  CPU peak        : {peak_cpu:>7.1f}%")
    print("=" * 60 + "\n")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TrustGateUser(HttpUser):
    """
    One simulated employee with one laptop.

    Task weighting:
      - 80% routine logins from the usual device     -> GRANTED
      - 15% logins from an unknown device            -> CHALLENGE or BLOCKED
      -  5% audit queries for the user's own history

    Users take principals from the registered pool in turn so
    per-principal locking is spread across the registry. The first
    login of each principal seeds its baseline.
    """

    wait_time = between(0.1, 0.5)

    def on_start(self):
        index = next(_principal_counter) % LOAD_PRINCIPALS
        self.email = f"load_{index}@company.com"
        self.fingerprint = f"fp_load_{index:05d}"

        with self.client.get("/health", catch_response=True) as resp:
            if resp.status_code != 200:
                resp.failure(f"Health check failed: HTTP {resp.status_code}")

    def _check(self, fingerprint: str, name: str) -> None:
        with self.client.post(
            "/check-access",
            json={
                "email": self.email,
                "deviceFingerprint": fingerprint,
                "ip": "203.0.113.42",
                "userAgent": "locust",
                "timestamp": _now_iso(),
            },
            name=name,
            catch_response=True,
        ) as response:
            if response.status_code == 200:
                body = response.json()
                if "decision" not in body:
                    response.failure("Response missing 'decision' field")
                elif len(body.get("riskFactors", [])) != 4:
                    response.failure("Expected one risk factor per pillar")
            elif response.status_code in (400, 422):
                response.failure(f"Validation error: {response.text[:200]}")
            else:
                response.failure(f"Unexpected HTTP {response.status_code}")

    @task(16)
    def routine_login(self):
        self._check(self.fingerprint, "POST /check-access [trusted device]")

    @task(3)
    def unknown_device_login(self):
        self._check(f"fp_{uuid.uuid4().hex[:8]}", "POST /check-access [new device]")

    @task(1)
    def audit_history(self):
        with self.client.get(
            "/audit",
            params={"principal": self.email, "limit": 20},
            name="GET /audit",
            catch_response=True,
        ) as response:
            if response.status_code != 200:
                response.failure(f"Unexpected HTTP {response.status_code}")
