"""Shared helpers for the Korean API Proxy.

- errors:     failure taxonomy (FailureKind + ProxyError family)
- validation: target URL validation and allowlist checks (no network)
"""

from .errors import (
    FailureKind, ProxyError, MissingParameter, MalformedUrl, DomainNotAllowed,
    UpstreamConnectionError, UpstreamTimeout, TooManyRedirects, status_for, title_for,
)

from .validation import (
    ParsedUrl, validate_target_url, is_allowed_host, get_http,
)

__all__ = [
    # errors
    "FailureKind","ProxyError","MissingParameter","MalformedUrl","DomainNotAllowed",
    "UpstreamConnectionError","UpstreamTimeout","TooManyRedirects","status_for","title_for",
    # validation
    "ParsedUrl","validate_target_url","is_allowed_host","get_http",
]
