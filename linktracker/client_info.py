"""Client metadata extraction for tracked visits.

Derives the visitor IP from proxy headers, strips query strings from referers
and classifies user agents with simple keyword heuristics.

How to Use
===========
::
    ip = get_client_ip(request.headers) or LOOPBACK_IP
    referer = sanitize_referer(request.headers.get("referer"))
    agent = parse_user_agent(request.headers.get("user-agent"))

Key Behaviours
===============
- Proxy headers are checked in a fixed priority order; the first header whose
  first comma-separated token is a syntactically valid IP wins.
- There is no fallback to the socket peer address.
- Referers that are not absolute URLs are dropped.
- User-agent classification is approximate by nature.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from linktracker.enums import Browser, DeviceType, OperatingSystem

__all__ = [
    "CLIENT_IP_HEADERS",
    "LOOPBACK_IP",
    "UserAgentInfo",
    "get_client_ip",
    "is_valid_ip",
    "parse_user_agent",
    "sanitize_referer",
]

LOOPBACK_IP = "127.0.0.1"

CLIENT_IP_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "x-client-ip",
    "cf-connecting-ip",  # Cloudflare
    "true-client-ip",  # Akamai
    "x-cluster-client-ip",
)

_IPV4_RE = re.compile(r"([0-9]{1,3}\.){3}[0-9]{1,3}")
_IPV6_RE = re.compile(r"([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}")
_MOBILE_RE = re.compile(r"Mobile|Android|iPhone|iPad")
_BOT_RE = re.compile(r"bot|crawler|spider|crawling", re.IGNORECASE)


@dataclass(frozen=True)
class UserAgentInfo:
    raw: str
    browser: Browser
    os: OperatingSystem
    device: DeviceType
    is_mobile: bool
    is_bot: bool


def is_valid_ip(value: str) -> bool:
    """Syntactic check only: dotted quad IPv4 or fully expanded 8-group IPv6."""
    return bool(_IPV4_RE.fullmatch(value) or _IPV6_RE.fullmatch(value))


def get_client_ip(headers: Mapping[str, str]) -> str | None:
    for header in CLIENT_IP_HEADERS:
        value = headers.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if is_valid_ip(candidate):
            return candidate
    return None


def sanitize_referer(referer: str | None) -> str | None:
    """Return the referer without its query string, or None if it is not a URL."""
    if not referer:
        return None

    try:
        parts = urlsplit(referer.strip())
        # Accessing .port validates it.
        parts.port
    except ValueError:
        return None

    if not parts.scheme or not parts.netloc or not parts.hostname or re.search(r"\s", parts.netloc):
        return None

    netloc = parts.netloc.rsplit("@", 1)
    host = netloc[-1].lower()
    netloc = f"{netloc[0]}@{host}" if len(netloc) == 2 else host
    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", "", parts.fragment))


def parse_user_agent(user_agent: str | None) -> UserAgentInfo | None:
    if not user_agent:
        return None

    return UserAgentInfo(
        raw=user_agent,
        browser=_extract_browser(user_agent),
        os=_extract_os(user_agent),
        device=_extract_device(user_agent),
        is_mobile=bool(_MOBILE_RE.search(user_agent)),
        is_bot=bool(_BOT_RE.search(user_agent)),
    )


def _extract_browser(ua: str) -> Browser:
    # Order matters: Chrome UAs also mention Safari.
    if "Firefox/" in ua:
        return Browser.FIREFOX
    if "Chrome/" in ua:
        return Browser.CHROME
    if "Safari/" in ua:
        return Browser.SAFARI
    if "Edge/" in ua:
        return Browser.EDGE
    if "Opera/" in ua:
        return Browser.OPERA
    return Browser.UNKNOWN


def _extract_os(ua: str) -> OperatingSystem:
    if "Windows" in ua:
        return OperatingSystem.WINDOWS
    if "Mac OS X" in ua:
        return OperatingSystem.MACOS
    if "Linux" in ua:
        return OperatingSystem.LINUX
    if "Android" in ua:
        return OperatingSystem.ANDROID
    if "iOS" in ua:
        return OperatingSystem.IOS
    return OperatingSystem.UNKNOWN


def _extract_device(ua: str) -> DeviceType:
    if "iPhone" in ua:
        return DeviceType.IPHONE
    if "iPad" in ua:
        return DeviceType.IPAD
    if "Android" in ua:
        return DeviceType.ANDROID
    if "Mobile" in ua:
        return DeviceType.MOBILE
    return DeviceType.DESKTOP
