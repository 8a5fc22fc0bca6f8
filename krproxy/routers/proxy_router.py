# krproxy/routers/proxy_router.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response

from ..net import MAX_REDIRECTS, HttpClients, fetch
from ..relay import ProxyOutcome, Success, relay, render
from ..resolver import resolve
from ..utils.errors import ProxyError
from ..utils.validation import get_http, validate_target_url

log = logging.getLogger("krproxy.proxy")

router = APIRouter(tags=["Proxy"])


def get_clients(request: Request) -> HttpClients:
    clients = get_http(request)
    if clients is None:
        raise HTTPException(status_code=503, detail="Outbound HTTP clients are not initialised")
    return clients


async def forward(raw_url: Optional[str], clients: HttpClients, redirect_budget: int = MAX_REDIRECTS) -> ProxyOutcome:
    """Validate -> resolve -> fetch -> relay. Always returns an outcome for ProxyErrors."""
    try:
        parsed = validate_target_url(raw_url)
        target = resolve(parsed)
        log.info("[PROXY] Requesting: %s (resolved %s, policy=%s)", parsed.raw, target.url, target.policy)
        result = await fetch(clients, target, redirect_budget)
    except ProxyError as e:
        outcome = relay(e)
        level = logging.WARNING if outcome.status_code < 500 else logging.ERROR
        log.log(level, "[PROXY] %s: %s (target=%s, code=%s)", e.kind.value, e.message, e.detail or raw_url, e.code)
        return outcome

    outcome = relay(result)
    if isinstance(outcome, Success):
        log.info("[PROXY] Relayed %s %s, %d bytes", outcome.status_code, outcome.content_type, len(outcome.content))
        log.debug("[PROXY] Data preview: %s", result.text[:200])
    else:
        log.error("[PROXY] %s: %s (target=%s)", outcome.kind.value, outcome.message, outcome.detail)
    return outcome


@router.get("/proxy")
async def proxy(
    url: Optional[str] = Query(None, description="Absolute target URL on an allowlisted domain."),
    clients: HttpClients = Depends(get_clients),
) -> Response:
    return render(await forward(url, clients))
