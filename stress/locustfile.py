"""Basic Locust profile for mixed create/track/analytics operations.

This profile is convenient for local smoke load and interactive testing. It keeps
an in-user pool of created links so tracking and analytics traffic can target
recently created short codes.
"""

import random

from locust import HttpUser, between, task

MAX_LINKS_PER_USER = 200


class LinkTrackerUser(HttpUser):
    """Mixed workload user for local functional load checks."""

    wait_time = between(0.1, 0.5)

    def on_start(self) -> None:
        """Initialize per-user link cache for follow-up read requests."""

        self.links: list[dict] = []

    @task(2)
    def create_link(self) -> None:
        """Create new links and add successful ones to the user cache."""

        number = random.randint(1, 1000000)
        payload = {"name": f"Load {number}", "originalUrl": f"https://example.com/page/{number}"}
        response = self.client.post("/api/links", json=payload, name="POST /api/links")

        if response.status_code == 201:
            link = response.json().get("data")
            if link:
                self.links.append(link)
                if len(self.links) > MAX_LINKS_PER_USER:
                    self.links = self.links[-MAX_LINKS_PER_USER:]

    @task(6)
    def track(self) -> None:
        """Visit a tracking URL or seed a link during warmup."""

        if not self.links:
            self.create_link()
            return

        link = random.choice(self.links)
        self.client.get(
            f"/track/{link['short_code']}",
            name="GET /track/:short_code",
            allow_redirects=False,
        )

    @task(1)
    def link_analytics(self) -> None:
        """Fetch the per-link summary for a sampled link."""

        if not self.links:
            self.create_link()
            return

        link = random.choice(self.links)
        self.client.get(f"/api/analytics/{link['id']}", name="GET /api/analytics/:link_id")

    @task(1)
    def global_analytics(self) -> None:
        self.client.get("/api/analytics", name="GET /api/analytics")
