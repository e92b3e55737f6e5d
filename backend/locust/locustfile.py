"""
Locust Load Test Suite

Run scenarios against a freshly migrated, empty ledger:
  locust -f locustfile.py --tags concurrency  # Race for the 91 slots
  locust -f locustfile.py --tags churn        # Book/cancel churn, promotion cascade
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from locust import HttpUser, task, between, tag, events

TICKETS = "/api/v1/tickets"

# Reservation ids booked by this locust process, for the churn scenario
BOOKED_IDS = []


def random_name():
    return "load_" + "".join(random.choices(string.ascii_lowercase, k=10))


def random_booking():
    gender = random.choice(["male", "female", "other"])
    children = [
        {"name": random_name(), "age": random.randint(0, 5)}
        for _ in range(random.choice([0, 0, 0, 1, 2]))
    ]
    return {
        "name": random_name(),
        "age": random.randint(18, 90),
        "gender": gender,
        "children": children,
    }


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Check the capacity invariant once the run is over."""
    print("\n" + "=" * 60)
    print("Verify after the run:")
    print("  GET /api/v1/tickets/available -> every 'remaining' must be >= 0")
    print("  SELECT status, COUNT(*) FROM reservations GROUP BY status;")
    print("  CNF <= 63, RAC <= 18, WAIT <= 10")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 300 users -> 91 slots (63 CNF + 18 RAC + 10 WAIT)

    Run: locust -f locustfile.py --tags concurrency -u 300 -r 100 --run-time 30s

    Expected: exactly 91 201s, every other booking 409 capacity_exhausted.
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book(self):
        with self.client.post(f"{TICKETS}/book",
            json=random_booking(),
            name=f"{TICKETS}/book",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                BOOKED_IDS.append(resp.json()["reservation_id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: pool full
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ChurnUser(HttpUser):
    """
    TEST 2: Churn - bookings and cancellations interleaved

    Run: locust -f locustfile.py --tags churn -u 50 -r 10 --run-time 60s

    Every cancellation of a CNF or RAC ticket runs the promotion cascade
    inside the same transaction as the delete. A 503 here means a
    transaction aborted and must be investigated in the logs.
    """
    wait_time = between(0.05, 0.3)

    @tag("churn")
    @task(3)
    def book(self):
        with self.client.post(f"{TICKETS}/book",
            json=random_booking(),
            name=f"{TICKETS}/book",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                BOOKED_IDS.append(resp.json()["reservation_id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn")
    @task(2)
    def cancel(self):
        if not BOOKED_IDS:
            return
        reservation_id = BOOKED_IDS.pop(random.randrange(len(BOOKED_IDS)))
        with self.client.post(f"{TICKETS}/cancel/{reservation_id}",
            name=f"{TICKETS}/cancel/{{id}}",
            catch_response=True
        ) as resp:
            if resp.status_code in [200, 404]:
                resp.success()  # 404: another user already cancelled it
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("churn", "read")
    @task(5)
    def availability(self):
        with self.client.get(f"{TICKETS}/available", catch_response=True) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
                return
            data = resp.json()
            if any(data[tier]["remaining"] < 0 for tier in ("CNF", "RAC", "WAIT")):
                resp.failure(f"Overbooked: {data}")
            else:
                resp.success()


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def too_old(self):
        body = random_booking() | {"age": 101}
        with self.client.post(f"{TICKETS}/book", json=body, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def child_too_old(self):
        body = random_booking() | {"children": [{"name": "big_kid", "age": 9}]}
        with self.client.post(f"{TICKETS}/book", json=body, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def unknown_gender(self):
        body = random_booking() | {"gender": "robot"}
        with self.client.post(f"{TICKETS}/book", json=body, catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def cancel_unknown(self):
        with self.client.post(f"{TICKETS}/cancel/999999999",
            name=f"{TICKETS}/cancel/{{id}}",
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(f"{TICKETS}/book",
            data="not json at all",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])
