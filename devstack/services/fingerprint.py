"""Visitor fingerprinting and user-agent classification.

A visitor id is a coarse pseudo-identity: identical IP and user agent
always map to the same id, and shared IPs or agents collide.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from fastapi import Request

from devstack.models.analytics import MAX_HEADER_LENGTH

# Checked in order; first header present wins
_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "x-client-ip", "cf-connecting-ip")

_MOBILE_MARKERS = ("mobile", "android", "iphone")
_TABLET_MARKERS = ("tablet", "ipad")
_BROWSERS = ("chrome", "firefox", "safari", "edge", "opera")


def fingerprint(ip: str, user_agent: str | None) -> str:
    """Deterministic visitor id (SHA-256 hex of ``ip:user_agent``)."""
    raw = f"{ip}:{user_agent or ''}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def device_type(user_agent: str | None) -> str:
    """Classify as mobile, tablet, desktop, or unknown."""
    if not user_agent:
        return "unknown"
    ua = user_agent.lower()
    if any(marker in ua for marker in _MOBILE_MARKERS):
        return "mobile"
    if any(marker in ua for marker in _TABLET_MARKERS):
        return "tablet"
    return "desktop"


def browser_type(user_agent: str | None) -> str:
    """First matching browser family, ``other``, or ``unknown``."""
    if not user_agent:
        return "unknown"
    ua = user_agent.lower()
    for name in _BROWSERS:
        if name in ua:
            return name
    return "other"


def client_ip(request: Request) -> str:
    """Get client IP, handling proxies."""
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # First IP is the original client
            return value.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _truncate(value: str | None) -> str | None:
    if value is None:
        return None
    return value[:MAX_HEADER_LENGTH]


@dataclass(frozen=True)
class VisitorInfo:
    """Request metadata captured with every analytics event."""

    visitor_id: str
    ip_address: str
    user_agent: str | None
    referer: str | None
    device: str
    browser: str
    country: str | None = None

    @classmethod
    def build(
        cls,
        ip: str,
        user_agent: str | None,
        referer: str | None = None,
        country: str | None = None,
    ) -> VisitorInfo:
        return cls(
            visitor_id=fingerprint(ip, user_agent),
            ip_address=ip,
            user_agent=_truncate(user_agent),
            referer=_truncate(referer),
            device=device_type(user_agent),
            browser=browser_type(user_agent),
            country=country,
        )

    @classmethod
    def from_request(cls, request: Request) -> VisitorInfo:
        """Capture visitor metadata before the request is released."""
        country = request.headers.get("cf-ipcountry") or request.headers.get("x-vercel-ip-country")
        return cls.build(
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
            country=country[:2].upper() if country else None,
        )
