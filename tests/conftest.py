"""Shared test fixtures - fakes the upstream generation service with httpx.MockTransport."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from chat_relay.services.upstream_service import UpstreamClient, get_upstream

UPSTREAM_BASE = "http://upstream.test"


class FakeUpstream:
    """Records outbound requests and answers with a configurable chunked body."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.chunks: list[bytes] = [b"Hi", b" there"]
        self.connect_error = False
        self.fail_after: int | None = None  # raise ReadError after N chunks

    async def _body(self):
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise httpx.ReadError("upstream connection dropped")
            yield chunk
        if self.fail_after is not None and self.fail_after >= len(self.chunks):
            raise httpx.ReadError("upstream connection dropped")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        if self.connect_error:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status_code, content=self._body())

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
async def upstream_client(upstream):
    """UpstreamClient wired to the fake upstream."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler), timeout=None)
    yield UpstreamClient(http, base_url=UPSTREAM_BASE, caller_identity="default-user")
    await http.aclose()


@pytest.fixture
async def client(upstream_client):
    """Async HTTP test client for the relay, with the upstream overridden."""
    from chat_relay.main import app

    app.dependency_overrides[get_upstream] = lambda: upstream_client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
