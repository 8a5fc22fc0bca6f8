# krproxy/resolver.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .clients.upstreams import UpstreamPolicy, policy_for
from .utils.validation import ParsedUrl

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class ResolvedTarget:
    scheme: str
    hostname: str
    port: int
    path: str
    query: str = ""
    verify_tls: bool = False
    policy: Optional[str] = None

    @property
    def url(self) -> str:
        # default ports are left implicit so the Host header stays clean
        netloc = self.hostname
        if self.port != DEFAULT_PORTS.get(self.scheme):
            netloc = f"{netloc}:{self.port}"
        url = f"{self.scheme}://{netloc}{self.path or '/'}"
        if self.query:
            url = f"{url}?{self.query}"
        return url


def _pick_port(parsed: ParsedUrl, scheme: str, policy: Optional[UpstreamPolicy]) -> int:
    if parsed.port is not None:
        return parsed.port
    if policy is not None and policy.default_port is not None:
        return policy.default_port
    return DEFAULT_PORTS[scheme]


def resolve(parsed: ParsedUrl) -> ResolvedTarget:
    """Apply the per-domain policy to a validated URL.

    Order: hostname rewrite, scheme override, then port (explicit > policy default > scheme default).
    Deterministic for a given URL and policy table.
    """
    policy = policy_for(parsed.hostname)

    hostname = parsed.hostname
    scheme = parsed.scheme
    verify_tls = False
    if policy is not None:
        hostname = policy.host_rewrites.get(hostname, hostname)
        scheme = policy.force_scheme or scheme
        verify_tls = policy.verify_tls

    return ResolvedTarget(
        scheme=scheme,
        hostname=hostname,
        port=_pick_port(parsed, scheme, policy),
        path=parsed.path,
        query=parsed.query,
        verify_tls=verify_tls,
        policy=policy.name if policy else None,
    )
