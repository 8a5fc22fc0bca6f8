from __future__ import annotations

import asyncio
import errno
import logging
import os
import socket
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urljoin, urlsplit

import httpx

from .clients.upstreams import policy_for
from .resolver import DEFAULT_PORTS, ResolvedTarget
from .utils.errors import DomainNotAllowed, TooManyRedirects, UpstreamConnectionError, UpstreamTimeout

log = logging.getLogger("krproxy.net")


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


REQUEST_TIMEOUT_SECONDS: float = _float_env("REQUEST_TIMEOUT_SECONDS", 30.0)
CONNECT_TIMEOUT_SECONDS: float = _float_env("CONNECT_TIMEOUT_SECONDS", 10.0)
MAX_REDIRECTS: int = _int_env("MAX_REDIRECTS", 5)
USER_AGENT: str = os.getenv(
    "OUTBOUND_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36",
)
ACCEPT_LANGUAGE: str = os.getenv("OUTBOUND_ACCEPT_LANGUAGE", "ko-KR,ko;q=0.9")

DEFAULT_TIMEOUT = httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS)


def _browser_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    # at least one upstream answers differently to non-browser clients
    base = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json, text/plain, text/xml, */*",
        "Accept-Language": ACCEPT_LANGUAGE,
    }
    if extra:
        base.update(extra)
    return base


# ------------------------------------------------------------------------------
# Shared clients
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class HttpClients:
    """Process-wide outbound clients, built once at startup and only read afterwards."""
    verified: httpx.AsyncClient
    insecure: httpx.AsyncClient

    def for_target(self, target: ResolvedTarget) -> httpx.AsyncClient:
        return self.verified if target.verify_tls else self.insecure

    async def aclose(self) -> None:
        await self.verified.aclose()
        await self.insecure.aclose()


def build_clients(transport: Optional[httpx.AsyncBaseTransport] = None) -> HttpClients:
    def _make(verify: bool) -> httpx.AsyncClient:
        kwargs = dict(
            timeout=DEFAULT_TIMEOUT,
            headers=_browser_headers(),
            follow_redirects=False,
            verify=verify,
        )
        if transport is not None:
            kwargs["transport"] = transport
        return httpx.AsyncClient(**kwargs)

    return HttpClients(verified=_make(True), insecure=_make(False))


# ------------------------------------------------------------------------------
# Fetch
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    content_type: Optional[str]
    content: bytes
    url: str
    redirects: int = 0
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        try:
            return self.content.decode(self.encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


def error_code(exc: BaseException) -> str:
    """Best-effort errno-style code (ECONNREFUSED, ENOTFOUND...) for a transport failure."""
    seen = exc
    for _ in range(8):
        if seen is None:
            break
        if isinstance(seen, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(seen, OSError) and seen.errno in errno.errorcode:
            return errno.errorcode[seen.errno]
        seen = seen.__cause__ or seen.__context__
    return type(exc).__name__


async def _get_once(client: httpx.AsyncClient, target: ResolvedTarget, timeout: float) -> httpx.Response:
    # wait_for cancels the request on expiry, which closes its connection
    try:
        return await asyncio.wait_for(client.get(target.url), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        raise UpstreamTimeout(
            f"Upstream did not answer within {timeout:g}s",
            detail=target.url,
            code="ETIMEDOUT",
        ) from e
    except (httpx.RequestError, httpx.InvalidURL) as e:
        raise UpstreamConnectionError(
            str(e) or type(e).__name__,
            detail=target.url,
            code=error_code(e),
        ) from e


def _next_hop(current: ResolvedTarget, location: str) -> ResolvedTarget:
    absolute = urljoin(current.url, location.strip())
    parts = urlsplit(absolute)
    try:
        port = parts.port
    except ValueError as e:
        raise UpstreamConnectionError(
            f"Invalid redirect location '{location}'", detail=absolute, code="ERR_INVALID_REDIRECT"
        ) from e
    scheme = (parts.scheme or "").lower()
    if scheme not in DEFAULT_PORTS or not parts.hostname:
        raise UpstreamConnectionError(
            f"Invalid redirect location '{location}'", detail=absolute, code="ERR_INVALID_REDIRECT"
        )

    policy = policy_for(parts.hostname)
    if policy is None:
        raise DomainNotAllowed(f"Redirect to '{parts.hostname}' is not allowed", detail=absolute)

    return ResolvedTarget(
        scheme=scheme,
        hostname=parts.hostname,
        port=port if port is not None else DEFAULT_PORTS[scheme],
        path=parts.path or "/",
        query=parts.query,
        verify_tls=policy.verify_tls,
        policy=policy.name,
    )


async def fetch(
    clients: HttpClients,
    target: ResolvedTarget,
    redirect_budget: int = MAX_REDIRECTS,
    *,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
) -> UpstreamResponse:
    """GET `target`, following at most `redirect_budget` redirects.

    Each hop gets its own `timeout`. Any terminal (non-redirect) response is returned
    whatever its status; only transport failures, timeouts and an exhausted budget raise.
    """
    current = target
    remaining = max(0, int(redirect_budget))
    hops = 0
    while True:
        r = await _get_once(clients.for_target(current), current, timeout)
        location = r.headers.get("location")
        if not (300 <= r.status_code < 400 and location):
            log.info("[PROXY] Status: %s from %s", r.status_code, current.url)
            return UpstreamResponse(
                status_code=r.status_code,
                content_type=r.headers.get("content-type"),
                content=r.content,
                url=current.url,
                redirects=hops,
                encoding=r.encoding or "utf-8",
            )

        if remaining <= 0:
            raise TooManyRedirects(
                f"Maximum number of redirects exceeded ({redirect_budget})",
                detail=current.url,
                code="ERR_FR_TOO_MANY_REDIRECTS",
            )
        remaining -= 1
        hops += 1
        nxt = _next_hop(current, location)
        log.info("[PROXY] Redirect %s (%s) %s -> %s", hops, r.status_code, current.url, nxt.url)
        current = nxt
