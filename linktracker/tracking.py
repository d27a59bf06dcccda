"""Visit tracking: turn one request to a tracking URL into a stored click.

Flow Diagram — track_visit()
============================
::
    ┌─────────────┐
    │ GET /track/ │
    │ :short_code │
    └──────┬──────┘
           ▼
    ┌─────────────┐  MISSING  ┌─────────────┐
    │ Lookup link │─────────▶│ return None │
    └──────┬──────┘           │ (404)       │
           ▼                  └─────────────┘
    ┌─────────────┐
    │ Client IP,  │
    │ user agent, │
    │ referer     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Resolve     │
    │ location    │
    │ (blocking)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Insert click│
    │ + counter   │
    │ (1 commit)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ return link │
    │ (302)       │
    └─────────────┘

The redirect itself and the fallback on failure live in the route handler.
"""

import time
from collections.abc import Mapping

from prometheus_client import Histogram

from linktracker.client_info import LOOPBACK_IP, get_client_ip, parse_user_agent, sanitize_referer
from linktracker.geolocation import GeoLocationResolver
from linktracker.link_service import LinkService
from linktracker.models import Link
from linktracker.schemas import ClickCreate

__all__ = ["TrackingService", "generate_tracking_url"]

TRACKING_DURATION = Histogram(
    "link_tracker_tracking_duration_seconds",
    "Time from lookup to committed click, geolocation included",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def generate_tracking_url(short_code: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/track/{short_code}"


class TrackingService:
    def __init__(self, links: LinkService, resolver: GeoLocationResolver, logger):
        self._links = links
        self._resolver = resolver
        self._logger = logger

    async def track_visit(self, short_code: str, headers: Mapping[str, str]) -> Link | None:
        """Record one visit to ``short_code``.

        Returns:
            The visited link, or None when the short code is unknown (nothing is stored).

        Raises:
            Any persistence error; the caller decides how to degrade.
        """
        link = await self._links.get_link_by_short_code(short_code)
        if link is None:
            return None

        start_time = time.perf_counter()
        client_ip = get_client_ip(headers) or LOOPBACK_IP
        user_agent = headers.get("user-agent")
        referer = sanitize_referer(headers.get("referer"))

        agent = parse_user_agent(user_agent)
        if agent is not None and agent.is_bot:
            self._logger.info(f"Bot visit on {short_code}: {user_agent}")

        location = await self._resolver.resolve(client_ip)
        await self._links.record_click(
            link,
            ClickCreate(
                ip_address=client_ip,
                location=location,
                user_agent=user_agent,
                referer=referer,
            ),
        )
        TRACKING_DURATION.observe(time.perf_counter() - start_time)
        return link
