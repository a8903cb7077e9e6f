"""
Locust load test suite for the reservation API.

Accounts are provisioned upstream, so the run needs existing ids:

  LOAD_OWNER_ID=1 LOAD_DRIVER_IDS=2,3,4,5 locust -f locustfile.py

Run scenarios:
  locust -f locustfile.py --tags contention   # Race drivers for a few slots
  locust -f locustfile.py --tags throughput   # Test the listing cache
  locust -f locustfile.py --tags edge         # Test bad input
"""

import os
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

OWNER_ID = os.environ.get("LOAD_OWNER_ID", "1")
DRIVER_IDS = [d for d in os.environ.get("LOAD_DRIVER_IDS", "2").split(",") if d]
CONTENTION_SLOTS = int(os.environ.get("LOAD_CONTENTION_SLOTS", "3"))

# Shared state
CHARGER_IDS = []
CONTENTION_CHARGER_ID = None


def owner_headers() -> dict:
    return {"X-User-Id": OWNER_ID}


def driver_headers() -> dict:
    return {"X-User-Id": random.choice(DRIVER_IDS)}


def booking_payload(charger_id: int, duration_hours: float = 1.0) -> dict:
    start = datetime.now(timezone.utc) + timedelta(hours=random.randint(1, 48))
    return {"charger_id": charger_id, "start_time": start.isoformat(), "duration_hours": duration_hours}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print(f"\nLoad test: owner={OWNER_ID} drivers={','.join(DRIVER_IDS)} slots={CONTENTION_SLOTS}\n")


class ContentionUser(HttpUser):
    """
    Many drivers -> one charger with a handful of slots.

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After the run, verify no charger went below zero:
      SELECT id, available_slots FROM chargers WHERE available_slots < 0;
    and that active bookings never exceed total_slots.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONTENTION_CHARGER_ID
        if CONTENTION_CHARGER_ID is None:
            resp = self.client.post(
                "/api/v1/chargers/",
                json={
                    "name": "Contention Charger",
                    "address": "Load Test Lot",
                    "latitude": 0.0,
                    "longitude": 0.0,
                    "total_slots": CONTENTION_SLOTS,
                },
                headers=owner_headers(),
            )
            if resp.status_code == 201:
                CONTENTION_CHARGER_ID = resp.json()["id"]
                print(f"\nCreated charger {CONTENTION_CHARGER_ID} with {CONTENTION_SLOTS} slots\n")

    @tag("contention")
    @task
    def book_last_slots(self):
        if not CONTENTION_CHARGER_ID:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(CONTENTION_CHARGER_ID),
            headers=driver_headers(),
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409 and resp.json().get("retryable"):
                resp.success()  # Expected: charger full
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    Listing throughput with and without Redis.

    Run twice, once with REDIS_ENABLED=false, and compare P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_chargers_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/chargers/?page={page}&page_size=20", name="/api/v1/chargers/ [cached]")
        if resp.status_code == 200:
            for charger in resp.json().get("chargers", []):
                if charger["id"] not in CHARGER_IDS:
                    CHARGER_IDS.append(charger["id"])

    @tag("throughput", "read")
    @task(3)
    def get_charger_detail(self):
        if CHARGER_IDS:
            self.client.get(f"/api/v1/chargers/{random.choice(CHARGER_IDS)}", name="/api/v1/chargers/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    Bad input must produce proper error codes, never a 500.

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_charger(self):
        with self.client.post(
            "/api/v1/bookings/", json=booking_payload(999999), headers=driver_headers(), catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def duration_too_long(self):
        with self.client.post(
            "/api/v1/bookings/", json=booking_payload(1, 2.0), headers=driver_headers(), catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def negative_duration(self):
        with self.client.post(
            "/api/v1/bookings/", json=booking_payload(1, -1.0), headers=driver_headers(), catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/", data="not json at all", headers=driver_headers(), catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_identity(self):
        with self.client.post("/api/v1/bookings/", json=booking_payload(1), catch_response=True) as resp:
            self._expect(resp, [401])

    @tag("edge")
    @task
    def reject_without_reason(self):
        with self.client.put(
            "/api/v1/booking-requests/1/reject", json={"reason": ""}, headers=owner_headers(), catch_response=True,
        ) as resp:
            self._expect(resp, [400, 403, 404])
