"""IP geolocation with a primary/secondary lookup fallback.

Flow Diagram — resolve(ip)
==========================
::
    ┌─────────────┐
    │ resolve(ip) │
    └──────┬──────┘
           ▼
    ┌─────────────┐   YES   ┌─────────────┐
    │ empty/local │───────▶│ "Local"     │
    │ /private?   │         │ sentinel    │
    └──────┬──────┘         └─────────────┘
           │ NO
           ▼
    ┌─────────────┐   OK    ┌─────────────┐
    │ Primary     │───────▶│ Location    │
    │ (ipapi.co)  │         │ record      │
    └──────┬──────┘         └─────────────┘
           │ FAIL (warn)
           ▼
    ┌─────────────┐   OK    ┌─────────────┐
    │ Secondary   │───────▶│ Location    │
    │ (ip-api.com)│         │ record      │
    └──────┬──────┘         └─────────────┘
           │ FAIL (warn)
           ▼
    ┌─────────────┐
    │ "Unknown"   │
    │ sentinel    │
    └─────────────┘

Key Behaviours
===============
- Loopback and private addresses never leave the process.
- A failure is a non-2xx response, a transport error, an unparseable body or an
  error reported in the body. Each failure is logged as a warning.
- There are no retries beyond the single fallback, and no caching.
- A failed attempt never leaks partial data into the result.
- Timeouts are the HTTP client's own (GEO_TIMEOUT_SECONDS).

Classes:
    GeoLocationResolver:  Resolves visitor IPs to LocationData.
"""

import logging
import math
from typing import Any

import httpx
from prometheus_client import Counter

from linktracker.config import Settings
from linktracker.enums import LocationSource
from linktracker.schemas import LocationData

__all__ = ["GeoLocationResolver", "GeoLookupError", "is_local_ip"]

GEO_LOOKUPS_TOTAL = Counter(
    "link_tracker_geo_lookups_total",
    "IP geolocation resolutions by the source that answered",
    ["source"],
)

_PRIVATE_PREFIXES = ("192.168.", "10.", "172.")
_LOOPBACK = ("127.0.0.1", "::1")


class GeoLookupError(Exception):
    """A geolocation service answered, but not with a usable location."""


def is_local_ip(ip: str | None) -> bool:
    # Every 172.* address counts as private, not just 172.16.0.0/12.
    if not ip or ip in _LOOPBACK:
        return True
    return ip.startswith(_PRIVATE_PREFIXES)


def _text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _coordinate(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class GeoLocationResolver:
    """Resolve an IP address to a best-effort location.

    Args:
        settings: Application settings (service URLs, user agent, timeout).
        logger: Logger or adapter used for failure warnings.
        transport: Optional httpx transport, used by tests to stub the services.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._logger = logger
        self._transport = transport

    async def resolve(self, ip: str | None) -> LocationData:
        if is_local_ip(ip):
            GEO_LOOKUPS_TOTAL.labels(source=LocationSource.LOCAL).inc()
            return LocationData.local()

        async with httpx.AsyncClient(
            timeout=self._settings.GEO_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            try:
                location = await self._lookup_primary(client, ip)
                GEO_LOOKUPS_TOTAL.labels(source=LocationSource.PRIMARY).inc()
                return location
            except Exception as exc:
                self._logger.warning(f"Primary IP service failed for {ip}: {exc}")

            try:
                location = await self._lookup_secondary(client, ip)
                GEO_LOOKUPS_TOTAL.labels(source=LocationSource.SECONDARY).inc()
                return location
            except Exception as exc:
                self._logger.warning(f"Fallback IP service failed for {ip}: {exc}")

        GEO_LOOKUPS_TOTAL.labels(source=LocationSource.UNKNOWN).inc()
        return LocationData.unknown()

    async def _lookup_primary(self, client: httpx.AsyncClient, ip: str) -> LocationData:
        response = await client.get(
            self._settings.GEO_PRIMARY_URL.format(ip=ip),
            headers={"User-Agent": self._settings.GEO_USER_AGENT},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise GeoLookupError("unexpected response body")
        if data.get("error"):
            raise GeoLookupError(data.get("reason") or "IP lookup failed")

        return LocationData(
            country=_text(data.get("country_name")),
            city=_text(data.get("city")),
            region=_text(data.get("region")),
            latitude=_coordinate(data.get("latitude")),
            longitude=_coordinate(data.get("longitude")),
        )

    async def _lookup_secondary(self, client: httpx.AsyncClient, ip: str) -> LocationData:
        response = await client.get(self._settings.GEO_SECONDARY_URL.format(ip=ip))
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or data.get("status") != "success":
            status = data.get("status") if isinstance(data, dict) else None
            raise GeoLookupError(f"lookup status {status!r}")

        return LocationData(
            country=_text(data.get("country")),
            city=_text(data.get("city")),
            region=_text(data.get("regionName")),
            latitude=_coordinate(data.get("lat")),
            longitude=_coordinate(data.get("lon")),
        )
