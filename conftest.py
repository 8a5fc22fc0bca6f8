# Make `import krproxy.*` work when running pytest from a plain checkout.
import os
import sys

import httpx
import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from krproxy.net import build_clients  # noqa: E402


class StubUpstream:
    """Records outbound requests and answers them with `handler` (sync or async)."""

    def __init__(self, handler=None):
        self.requests = []
        self._handler = handler or (lambda request: httpx.Response(200, json={"ok": True}))

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self._handler(request)

    def clients(self):
        return build_clients(transport=httpx.MockTransport(self))


@pytest.fixture
def stub_upstream():
    """Factory fixture: stub_upstream(handler) -> StubUpstream."""
    return StubUpstream
