# krproxy/relay.py
from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .clients.upstreams import ALLOWED_DOMAINS
from .net import UpstreamResponse
from .utils.errors import FailureKind, ProxyError, status_for, title_for

DEFAULT_CONTENT_TYPE = "application/json"
USAGE = "/proxy?url=<encoded_url>"

STATUS_HEADER = "X-Proxy-Status"
ERROR_HEADER = "X-Proxy-Error"
TARGET_HEADER = "X-Proxy-Target"


class Success(BaseModel):
    kind: Literal["success"] = "success"
    status_code: int
    content_type: str
    content: bytes
    url: Optional[str] = None


class Failure(BaseModel):
    kind: FailureKind
    message: str
    detail: Optional[str] = None
    code: Optional[str] = None
    upstream_status: Optional[int] = None

    @property
    def status_code(self) -> int:
        return status_for(self.kind)

    def envelope(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": title_for(self.kind)}
        if self.kind is FailureKind.MISSING_PARAMETER:
            body["usage"] = USAGE
        elif self.kind is FailureKind.DOMAIN_NOT_ALLOWED:
            body["allowedDomains"] = list(ALLOWED_DOMAINS)
        elif self.kind is FailureKind.EMPTY_UPSTREAM_RESPONSE:
            body["statusCode"] = self.upstream_status
        elif self.kind is FailureKind.TIMEOUT:
            body["message"] = self.message
        elif self.kind in (FailureKind.CONNECTION_ERROR, FailureKind.TOO_MANY_REDIRECTS):
            body["message"] = self.message
            body["code"] = self.code or "UNKNOWN"
        return body


ProxyOutcome = Union[Success, Failure]


def relay(result: Union[UpstreamResponse, ProxyError]) -> ProxyOutcome:
    """Map a fetch result (or the error that ended the pipeline) onto a ProxyOutcome."""
    if isinstance(result, ProxyError):
        return Failure(kind=result.kind, message=result.message, detail=result.detail, code=result.code)

    if not result.content.strip():
        return Failure(
            kind=FailureKind.EMPTY_UPSTREAM_RESPONSE,
            message=f"Upstream returned an empty body (status {result.status_code})",
            detail=result.url,
            upstream_status=result.status_code,
        )

    return Success(
        status_code=result.status_code,
        content_type=result.content_type or DEFAULT_CONTENT_TYPE,
        content=result.content,
        url=result.url,
    )


def render(outcome: ProxyOutcome) -> Response:
    if isinstance(outcome, Success):
        # set directly: media_type would append "; charset=utf-8" to text/* types
        headers = {"Content-Type": outcome.content_type, STATUS_HEADER: "success"}
        if outcome.url:
            headers[TARGET_HEADER] = outcome.url
        return Response(
            content=outcome.content,
            status_code=outcome.status_code,
            headers=headers,
        )

    return JSONResponse(
        status_code=outcome.status_code,
        content=outcome.envelope(),
        headers={STATUS_HEADER: "error", ERROR_HEADER: outcome.kind.value},
    )
