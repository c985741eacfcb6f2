import time
import numpy as np
import concurrent.futures
from uuid import uuid4

from trustgate.api.service import AccessEvaluationService
from trustgate.common.config import Config
from trustgate.data.schemas.location import GeoLocation
from trustgate.events.dispatcher import EventDispatcher
from trustgate.governance.audit.store import InMemoryAuditStore
from trustgate.governance.audit.writer import AuditWriter
from trustgate.orchestration.decision_context import AccessRequest
from trustgate.providers.geolocation import StaticGeolocationProvider
from trustgate.providers.identity import InMemoryIdentityProvider
from trustgate.registry.store import InMemoryTrustRegistry

BENCH_IP = "102.89.1.10"
LAGOS = GeoLocation(city="Lagos", country="Nigeria", latitude=6.5244, longitude=3.3792)


def create_service(principals):
    return AccessEvaluationService(
        config=Config(),
        registry=InMemoryTrustRegistry(),
        audit_writer=AuditWriter(InMemoryAuditStore()),
        dispatcher=EventDispatcher(),
        identity_provider=InMemoryIdentityProvider(principals),
        geolocation_provider=StaticGeolocationProvider({BENCH_IP: LAGOS}),
    )


def create_request(principal="bench_001@company.com"):
    return AccessRequest(
        principal=principal,
        device_fingerprint="fp_bench_001",
        ip_address=BENCH_IP,
        user_agent="latency-benchmark",
        attempt_id=f"att_{uuid4().hex[:16]}",
    )


def run_latency_benchmark(iterations=100):
    service = create_service(["bench_001@company.com"])

    print(f"--- Latency Benchmark ({iterations} iterations) ---")

    latencies = []

    # Warmup
    service.check(create_request())

    for i in range(iterations):
        request = create_request()
        start_time = time.perf_counter()
        service.check(request)
        end_time = time.perf_counter()

        latency_ms = (end_time - start_time) * 1000
        latencies.append(latency_ms)

        if (i + 1) % 20 == 0:
            print(f"  Completed {i + 1}/{iterations} iterations")

    service.shutdown()

    print("\nLatency Results:")
    print(f"  Mean:   {np.mean(latencies):.2f} ms")
    print(f"  Median: {np.median(latencies):.2f} ms")
    print(f"  P95:    {np.percentile(latencies, 95):.2f} ms")
    print(f"  P99:    {np.percentile(latencies, 99):.2f} ms")
    print("-" * 40)
    return latencies


def run_throughput_benchmark(total_requests=500, concurrent_users=10, principals=10):
    """Attempts spread over a few principals so the registry locks contend."""
    emails = [f"bench_{i:03d}@company.com" for i in range(principals)]
    service = create_service(emails)

    print(f"\n--- Throughput Benchmark ({total_requests} requests, {concurrent_users} concurrent) ---")

    start_time = time.perf_counter()

    with concurrent.futures.ThreadPoolExecutor(max_workers=concurrent_users) as executor:
        futures = [
            executor.submit(service.check, create_request(emails[i % principals]))
            for i in range(total_requests)
        ]
        concurrent.futures.wait(futures)

    end_time = time.perf_counter()
    total_time = end_time - start_time
    service.shutdown()

    throughput = total_requests / total_time

    print(f"\nThroughput Results:")
    print(f"  Total Time: {total_time:.2f} s")
    print(f"  Throughput: {throughput:.2f} requests/sec")
    print("-" * 40)
    return throughput


if __name__ == "__main__":
    run_latency_benchmark()
    run_throughput_benchmark()
