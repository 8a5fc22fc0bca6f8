# krproxy/utils/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class FailureKind(str, Enum):
    MISSING_PARAMETER = "MissingParameter"
    MALFORMED_URL = "MalformedUrl"
    DOMAIN_NOT_ALLOWED = "DomainNotAllowed"
    CONNECTION_ERROR = "ConnectionError"
    TIMEOUT = "Timeout"
    TOO_MANY_REDIRECTS = "TooManyRedirects"
    EMPTY_UPSTREAM_RESPONSE = "EmptyUpstreamResponse"


# kind -> (HTTP status, envelope title)
FAILURE_TABLE: Dict[FailureKind, tuple] = {
    FailureKind.MISSING_PARAMETER: (400, "Missing url parameter"),
    FailureKind.MALFORMED_URL: (400, "Invalid URL format"),
    FailureKind.DOMAIN_NOT_ALLOWED: (403, "Domain not allowed"),
    FailureKind.CONNECTION_ERROR: (500, "Proxy request failed"),
    FailureKind.TOO_MANY_REDIRECTS: (500, "Proxy request failed"),
    FailureKind.TIMEOUT: (504, "Upstream request timed out"),
    FailureKind.EMPTY_UPSTREAM_RESPONSE: (502, "Empty response from upstream"),
}


def status_for(kind: FailureKind) -> int:
    return FAILURE_TABLE[kind][0]


def title_for(kind: FailureKind) -> str:
    return FAILURE_TABLE[kind][1]


class ProxyError(Exception):
    """Base for every terminal failure of a proxied request.

    `detail` describes the target involved (raw URL, host or resolved URL);
    `code` is an opaque underlying error code when one exists.
    """

    kind: FailureKind = FailureKind.CONNECTION_ERROR

    def __init__(self, message: str, *, detail: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.code = code

    @property
    def status_code(self) -> int:
        return status_for(self.kind)

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "detail": self.detail, "code": self.code}


class MissingParameter(ProxyError):
    kind = FailureKind.MISSING_PARAMETER


class MalformedUrl(ProxyError):
    kind = FailureKind.MALFORMED_URL


class DomainNotAllowed(ProxyError):
    kind = FailureKind.DOMAIN_NOT_ALLOWED


class UpstreamConnectionError(ProxyError):
    kind = FailureKind.CONNECTION_ERROR


class UpstreamTimeout(ProxyError):
    kind = FailureKind.TIMEOUT


class TooManyRedirects(ProxyError):
    kind = FailureKind.TOO_MANY_REDIRECTS
