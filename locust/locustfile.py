"""
Locust Load Test Suite

Tokens are minted locally with the service's SECRET_KEY, so run this with
the same environment as the API.

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag

from booking_engine.core.security import Role, create_access_token

# Shared state
RESOURCE_IDS = []
CONCURRENCY_RESOURCE_ID = None
ORGANIZER_ID = 1


def bearer(user_id, role=Role.CLIENT):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


def resource_payload(capacity, title):
    start = datetime.now(timezone.utc) + timedelta(days=random.randint(3, 90))
    return {
        "title": title,
        "description": "Load test resource",
        "category": "concert",
        "venue": "Venue",
        "city": "Paris",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=3)).isoformat(),
        "capacity": capacity,
        "unit_price": "20.00",
    }


def create_published_resource(client, capacity, title):
    headers = bearer(ORGANIZER_ID, Role.ORGANIZER)
    resp = client.post("/api/v1/resources/", json=resource_payload(capacity, title), headers=headers)
    if resp.status_code != 201:
        return None
    resource_id = resp.json()["id"]
    resp = client.post(f"/api/v1/resources/{resource_id}/publish", headers=headers)
    return resource_id if resp.status_code == 200 else None


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 units

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(units) FROM bookings WHERE resource_id = X AND status != 'cancelled';
    Should be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = bearer(random.randint(1000, 10**6))
        if not CONCURRENCY_RESOURCE_ID:
            resource_id = create_published_resource(self.client, 10, "Concurrency Test Resource")
            if resource_id:
                globals()["CONCURRENCY_RESOURCE_ID"] = resource_id
                print(f"\nCreated resource {resource_id} with 10 units\n")

    @tag("concurrency")
    @task
    def book_limited_units(self):
        """All users fight for the same 10 units."""
        if not CONCURRENCY_RESOURCE_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json={"resource_id": CONCURRENCY_RESOURCE_ID, "units": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409 expected once sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run with and without Redis and compare latency percentiles:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_resources_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/resources/?page={page}&page_size=20",
            name="/api/v1/resources/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def availability(self):
        if RESOURCE_IDS:
            self.client.get(f"/api/v1/resources/{random.choice(RESOURCE_IDS)}/availability",
                name="/api/v1/resources/{id}/availability")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = bearer(random.randint(1000, 10**6))

    def _expect(self, codes, **kwargs):
        with self.client.post("/api/v1/bookings/", catch_response=True, **kwargs) as resp:
            if resp.status_code in codes:
                resp.success()
            else:
                resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_resource(self):
        self._expect([404], json={"resource_id": 999999, "units": 1}, headers=self.headers)

    @tag("edge")
    @task
    def zero_units(self):
        self._expect([422], json={"resource_id": 1, "units": 0}, headers=self.headers)

    @tag("edge")
    @task
    def huge_units(self):
        self._expect([404, 409], json={"resource_id": 1, "units": 999999}, headers=self.headers)

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect([422], data="not json at all", headers=self.headers)

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect([401], json={"resource_id": 1, "units": 1})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = bearer(random.randint(1000, 10**6))

    @task(50)
    def browse_resources(self):
        resp = self.client.get("/api/v1/resources/?page=1&page_size=20")
        if resp.status_code == 200:
            for resource in resp.json().get("resources", []):
                if resource["id"] not in RESOURCE_IDS:
                    RESOURCE_IDS.append(resource["id"])

    @task(20)
    def view_resource(self):
        if RESOURCE_IDS:
            self.client.get(f"/api/v1/resources/{random.choice(RESOURCE_IDS)}",
                name="/api/v1/resources/{id}")

    @task(10)
    def book_units(self):
        if RESOURCE_IDS:
            self.client.post("/api/v1/bookings/",
                json={"resource_id": random.choice(RESOURCE_IDS), "units": random.randint(1, 3)},
                headers=self.headers)

    @task(3)
    def create_resource(self):
        resource_id = create_published_resource(
            self.client, random.randint(10, 500), f"Resource {random.randint(1, 10000)}"
        )
        if resource_id:
            RESOURCE_IDS.append(resource_id)
