import random
import uuid
from datetime import date, timedelta

from locust import HttpUser, between, task

PROPERTY_IDS = ["casa-lago", "loft-centro"]


def random_stay() -> dict:
    check_in = date.today() + timedelta(days=random.randint(7, 180))
    nights = random.randint(2, 5)
    return {
        "property_id": random.choice(PROPERTY_IDS),
        "check_in": check_in.isoformat(),
        "check_out": (check_in + timedelta(days=nights)).isoformat(),
        "guests": 2,
    }


class APIUser(HttpUser):
    # Wait between 1 and 3 seconds between tasks
    wait_time = between(1, 3)

    def on_start(self):
        """
        Called when a Locust user starts.
        Each simulated user acts as its own customer.
        """
        self.headers = {
            "X-Customer-Id": f"load-{uuid.uuid4().hex[:12]}",
            "Content-Type": "application/json",
        }

    @task(3)
    def quote(self):
        self.client.post("/api/v1/quote", json=random_stay(), name="/api/v1/quote")

    @task(1)
    def reserve_and_release(self):
        """
        Take a hold and release it, exercising the overlap check under contention.
        Conflicts come back as 200 with can_reserve=false.
        """
        response = self.client.post(
            "/api/v1/reserve",
            json=random_stay(),
            headers=self.headers,
            name="/api/v1/reserve",
        )
        if response.status_code != 200:
            return
        hold = response.json().get("hold")
        if hold:
            self.client.delete(
                f"/api/v1/holds/{hold['id']}",
                headers=self.headers,
                name="/api/v1/holds/[id]",
            )
