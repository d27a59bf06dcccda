"""Unit tests for client IP extraction, referer sanitizing and user-agent parsing."""

import pytest

from linktracker.client_info import get_client_ip, is_valid_ip, parse_user_agent, sanitize_referer
from linktracker.enums import Browser, DeviceType, OperatingSystem

IPV6 = "2001:0db8:85a3:0000:0000:8a2e:0370:7334"


@pytest.mark.parametrize("value", ["1.2.3.4", "255.255.255.255", IPV6, "FFFF:0:0:0:0:0:0:1"])
def test_valid_ips(value: str) -> None:
    assert is_valid_ip(value)


@pytest.mark.parametrize("value", ["", "unknown", "1.2.3", "1.2.3.4.5", "::1", "2001:db8::1", "1.2.3.4\n"])
def test_invalid_ips(value: str) -> None:
    assert not is_valid_ip(value)


def test_client_ip_takes_first_forwarded_hop() -> None:
    headers = {"x-forwarded-for": " 203.0.113.1 , 10.0.0.2, 10.0.0.3"}
    assert get_client_ip(headers) == "203.0.113.1"


def test_client_ip_header_priority() -> None:
    headers = {
        "x-cluster-client-ip": "5.5.5.5",
        "cf-connecting-ip": "4.4.4.4",
        "x-real-ip": "2.2.2.2",
    }
    assert get_client_ip(headers) == "2.2.2.2"


def test_client_ip_skips_invalid_values() -> None:
    headers = {"x-forwarded-for": "unknown, 1.1.1.1", "x-client-ip": "3.3.3.3"}
    assert get_client_ip(headers) == "3.3.3.3"


def test_client_ip_ipv6() -> None:
    assert get_client_ip({"true-client-ip": IPV6}) == IPV6


def test_client_ip_none_without_headers() -> None:
    assert get_client_ip({}) is None
    assert get_client_ip({"x-real-ip": ""}) is None


@pytest.mark.parametrize(
    "referer, expected",
    [
        ("https://ref.com/page?token=secret", "https://ref.com/page"),
        ("https://ref.com", "https://ref.com/"),
        ("HTTPS://Ref.COM/Path?x=1", "https://ref.com/Path"),
        ("http://ref.com:8080/a/b?q=1&r=2", "http://ref.com:8080/a/b"),
        ("https://ref.com/page?x=1#section", "https://ref.com/page#section"),
    ],
)
def test_sanitize_referer(referer: str, expected: str) -> None:
    assert sanitize_referer(referer) == expected


@pytest.mark.parametrize("referer", [None, "", "not-a-url", "/relative/path?x=1", "http://ref.com:99999/", "http://[::1/", "http://exa mple.com/x?y"])
def test_sanitize_referer_rejects(referer) -> None:
    assert sanitize_referer(referer) is None


def test_parse_user_agent_empty() -> None:
    assert parse_user_agent(None) is None
    assert parse_user_agent("") is None


@pytest.mark.parametrize(
    "ua, browser, os, device, mobile",
    [
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
            Browser.FIREFOX, OperatingSystem.WINDOWS, DeviceType.DESKTOP, False,
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 Version/17.0 Safari/605.1.15",
            Browser.SAFARI, OperatingSystem.MACOS, DeviceType.DESKTOP, False,
        ),
        (
            "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 Chrome/120.0 Mobile Safari/537.36",
            Browser.CHROME, OperatingSystem.LINUX, DeviceType.ANDROID, True,
        ),
        (
            "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148",
            Browser.UNKNOWN, OperatingSystem.MACOS, DeviceType.IPAD, True,
        ),
        ("Opera/9.80 (Nintendo Wii)", Browser.OPERA, OperatingSystem.UNKNOWN, DeviceType.DESKTOP, False),
    ],
)
def test_parse_user_agent(ua, browser, os, device, mobile) -> None:
    info = parse_user_agent(ua)
    assert info is not None
    assert info.raw == ua
    assert (info.browser, info.os, info.device, info.is_mobile) == (browser, os, device, mobile)
    assert info.is_bot is False


@pytest.mark.parametrize("ua", ["Googlebot/2.1 (+http://www.google.com/bot.html)", "SomeCrawler/1.0", "spider-x"])
def test_parse_user_agent_bots(ua: str) -> None:
    assert parse_user_agent(ua).is_bot
