"""Tests for visitor fingerprinting and user-agent classification."""

from unittest.mock import MagicMock

import pytest

from devstack.services.fingerprint import (
    VisitorInfo,
    browser_type,
    client_ip,
    device_type,
    fingerprint,
)

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Safari/604.1"
IPAD_UA = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) Safari/604.1"
DESKTOP_CHROME_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"


class TestFingerprint:
    """Tests for visitor id derivation."""

    def test_deterministic(self) -> None:
        """Test identical inputs produce identical ids."""
        assert fingerprint("1.2.3.4", "ua") == fingerprint("1.2.3.4", "ua")

    def test_is_sha256_hex(self) -> None:
        """Test the id is a 64-char hex digest."""
        value = fingerprint("1.2.3.4", "ua")
        assert len(value) == 64
        int(value, 16)

    def test_differs_by_ip_and_agent(self) -> None:
        """Test either component changes the id."""
        base = fingerprint("1.2.3.4", "ua")
        assert fingerprint("1.2.3.5", "ua") != base
        assert fingerprint("1.2.3.4", "other") != base

    def test_missing_agent_is_empty_string(self) -> None:
        """Test None and empty user agents hash the same."""
        assert fingerprint("1.2.3.4", None) == fingerprint("1.2.3.4", "")


@pytest.mark.parametrize(
    ("user_agent", "expected"),
    [
        (IPHONE_UA, "mobile"),
        ("Mozilla/5.0 (Linux; Android 14) Mobile", "mobile"),
        (IPAD_UA, "tablet"),
        ("Some Tablet Browser", "tablet"),
        (DESKTOP_CHROME_UA, "desktop"),
        ("", "unknown"),
        (None, "unknown"),
    ],
)
def test_device_type(user_agent: str | None, expected: str) -> None:
    """Test device classification by substring."""
    assert device_type(user_agent) == expected


@pytest.mark.parametrize(
    ("user_agent", "expected"),
    [
        (DESKTOP_CHROME_UA, "chrome"),
        ("Mozilla/5.0 Firefox/121.0", "firefox"),
        (IPHONE_UA, "safari"),
        ("curl/8.0", "other"),
        (None, "unknown"),
    ],
)
def test_browser_type(user_agent: str | None, expected: str) -> None:
    """Test the first matching browser family wins."""
    assert browser_type(user_agent) == expected


def _request(headers: dict[str, str], host: str | None = "10.0.0.1") -> MagicMock:
    request = MagicMock()
    request.headers = headers
    request.client = MagicMock(host=host) if host else None
    return request


class TestClientIp:
    """Tests for proxy-aware client address resolution."""

    def test_forwarded_for_first_entry(self) -> None:
        """Test the original client is the first forwarded address."""
        request = _request({"x-forwarded-for": "203.0.113.7, 10.0.0.2"})
        assert client_ip(request) == "203.0.113.7"

    def test_real_ip(self) -> None:
        """Test x-real-ip is used when x-forwarded-for is absent."""
        assert client_ip(_request({"x-real-ip": "203.0.113.8"})) == "203.0.113.8"

    def test_falls_back_to_socket(self) -> None:
        """Test the socket peer is used without proxy headers."""
        assert client_ip(_request({})) == "10.0.0.1"

    def test_unknown_without_client(self) -> None:
        """Test a sentinel when nothing identifies the client."""
        assert client_ip(_request({}, host=None)) == "unknown"


class TestVisitorInfo:
    """Tests for captured visitor metadata."""

    def test_build_truncates_headers(self) -> None:
        """Test user agent and referer are stored truncated to 500 chars."""
        info = VisitorInfo.build("1.2.3.4", "a" * 800, referer="r" * 900)

        assert len(info.user_agent) == 500
        assert len(info.referer) == 500
        # The id is derived from the full user agent
        assert info.visitor_id == fingerprint("1.2.3.4", "a" * 800)

    def test_from_request(self) -> None:
        """Test request headers are captured."""
        request = _request(
            {
                "user-agent": IPHONE_UA,
                "referer": "https://twitter.com/someone",
                "cf-ipcountry": "de",
            }
        )

        info = VisitorInfo.from_request(request)

        assert info.ip_address == "10.0.0.1"
        assert info.device == "mobile"
        assert info.browser == "safari"
        assert info.referer == "https://twitter.com/someone"
        assert info.country == "DE"
