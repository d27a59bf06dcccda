"""Shared enums for the link tracking application.

This module defines all status and classification enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = [
    "HealthStatus",
    "RequestStatus",
    "LocationSource",
    "Browser",
    "OperatingSystem",
    "DeviceType",
]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def from_str(cls, value: str) -> "HealthStatus":
        """Safely parse from string, falling back to UNHEALTHY for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNHEALTHY


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    ERROR = "error"
    NOT_FOUND = "not_found"
    FALLBACK = "fallback"


class LocationSource(StrEnum):
    """Where a resolved location came from."""

    LOCAL = "local"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    UNKNOWN = "unknown"


class Browser(StrEnum):
    FIREFOX = "Firefox"
    CHROME = "Chrome"
    SAFARI = "Safari"
    EDGE = "Edge"
    OPERA = "Opera"
    UNKNOWN = "Unknown"


class OperatingSystem(StrEnum):
    WINDOWS = "Windows"
    MACOS = "macOS"
    LINUX = "Linux"
    ANDROID = "Android"
    IOS = "iOS"
    UNKNOWN = "Unknown"


class DeviceType(StrEnum):
    IPHONE = "iPhone"
    IPAD = "iPad"
    ANDROID = "Android Device"
    MOBILE = "Mobile Device"
    DESKTOP = "Desktop"
