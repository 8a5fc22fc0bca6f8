"""
Korean API Proxy target validation
==================================

Design goals
------------
- Pure checks: nothing here touches the network.
- Reject before fetch: a URL that fails here never reaches the Fetcher.

What this module does
---------------------
- validate_target_url(raw)   -> ParsedUrl, or raises MissingParameter /
                                MalformedUrl / DomainNotAllowed
- is_allowed_host(hostname)  -> bool (domain-boundary match against the policy table)
- get_http(request)          -> shared HttpClients from `app.state.http` (if any)

Allowlist matching
------------------
A hostname passes when it equals an allowlisted domain or is a subdomain of it.
`evilkoreaexim.go.kr` and `koreaexim.go.kr.evil.com` are both rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit

from ..clients.upstreams import ALLOWED_DOMAINS, policy_for
from .errors import DomainNotAllowed, MalformedUrl, MissingParameter

SUPPORTED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class ParsedUrl:
    scheme: str
    hostname: str
    port: Optional[int]
    path: str
    query: str
    raw: str


def is_allowed_host(hostname: Optional[str]) -> bool:
    if not hostname:
        return False
    return policy_for(hostname) is not None


def validate_target_url(raw: Optional[str]) -> ParsedUrl:
    if raw is None or not str(raw).strip():
        raise MissingParameter("Missing url parameter")
    value = str(raw).strip()

    try:
        parts = urlsplit(value)
        port = parts.port  # raises ValueError on junk like ':abc' or out of range
    except ValueError as e:
        raise MalformedUrl(f"Invalid URL: {e}", detail=value) from e

    scheme = (parts.scheme or "").lower()
    if not scheme or not parts.hostname:
        raise MalformedUrl("URL must be absolute (scheme and hostname required)", detail=value)
    if scheme not in SUPPORTED_SCHEMES:
        raise MalformedUrl(f"Unsupported scheme '{scheme}'", detail=value)

    # "host." and "host" are the same name
    hostname = parts.hostname.rstrip(".")
    if not is_allowed_host(hostname):
        raise DomainNotAllowed(f"Host '{parts.hostname}' is not allowed", detail=parts.hostname)

    return ParsedUrl(
        scheme=scheme,
        hostname=hostname,
        port=port,
        path=parts.path or "/",
        query=parts.query,
        raw=value,
    )


def get_http(request) -> Optional[Any]:
    """Return shared HttpClients from `app.state.http` if available."""
    app = getattr(request, "app", None)
    state = getattr(app, "state", None)
    return getattr(state, "http", None)


__all__ = [
    "ALLOWED_DOMAINS",
    "ParsedUrl",
    "SUPPORTED_SCHEMES",
    "get_http",
    "is_allowed_host",
    "validate_target_url",
]
