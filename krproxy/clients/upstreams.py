# krproxy/clients/upstreams.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


# ------------------------------------------------------------------------------------
# Model
# ------------------------------------------------------------------------------------
@dataclass(frozen=True)
class UpstreamPolicy:
    """Quirks of one upstream domain family.

    A hostname belongs to the family when it equals `domain` or is a subdomain of it.
    """
    name: str
    domain: str
    force_scheme: Optional[str] = None        # "http" | "https" | None (keep requested)
    default_port: Optional[int] = None        # used when the URL carries no explicit port
    host_rewrites: Dict[str, str] = field(default_factory=dict)
    verify_tls: bool = False

    def matches(self, hostname: str) -> bool:
        host = (hostname or "").lower().rstrip(".")
        return host == self.domain or host.endswith("." + self.domain)


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default)


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _scheme_env(name: str, default: str) -> Optional[str]:
    v = _env(name, default).strip().lower()
    return v if v in ("http", "https") else None


# ------------------------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------------------------
# HTTPS on the Export-Import Bank API has answered with empty bodies, so it is downgraded.
KOREAEXIM = UpstreamPolicy(
    name="koreaexim",
    domain="koreaexim.go.kr",
    force_scheme=_scheme_env("KOREAEXIM_SCHEME", "http"),
    host_rewrites={"www.koreaexim.go.kr": _env("KOREAEXIM_API_HOST", "oapi.koreaexim.go.kr")},
    verify_tls=_bool_env("KOREAEXIM_VERIFY_TLS", False),
)

UNIPASS = UpstreamPolicy(
    name="unipass",
    domain="unipass.customs.go.kr",
    force_scheme="https",
    default_port=_int_env("UNIPASS_PORT", 38010),
    verify_tls=_bool_env("UNIPASS_VERIFY_TLS", False),
)

POLICIES: Tuple[UpstreamPolicy, ...] = (KOREAEXIM, UNIPASS)

ALLOWED_DOMAINS: Tuple[str, ...] = tuple(p.domain for p in POLICIES)


def policy_for(hostname: str) -> Optional[UpstreamPolicy]:
    for policy in POLICIES:
        if policy.matches(hostname):
            return policy
    return None
