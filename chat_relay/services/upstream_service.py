"""Upstream service - issues chat requests to the generation backend.

The backend exposes two streaming endpoints that take the user's message as a
raw text body:
- /ollama/chat/stream        plain chat
- /ollama/chat/stream/tools  tool-augmented generation
"""

from __future__ import annotations

import logging
from enum import Enum

import httpx

from chat_relay.config import settings

logger = logging.getLogger(__name__)


class ChatMode(str, Enum):
    CHAT = "chat"
    TOOLS = "tools"

    @classmethod
    def from_flag(cls, tool_mode: bool) -> "ChatMode":
        return cls.TOOLS if tool_mode else cls.CHAT


UPSTREAM_PATHS = {
    ChatMode.CHAT: "/ollama/chat/stream",
    ChatMode.TOOLS: "/ollama/chat/stream/tools",
}

# Statuses that never carry a response body
NO_BODY_STATUSES = frozenset({204, 205, 304})


class UpstreamUnavailable(Exception):
    """The upstream could not be reached or did not return a streamable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamClient:
    """Thin wrapper over an httpx.AsyncClient bound to the upstream base URL."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str | None = None,
        caller_identity: str | None = None,
    ):
        self.http = http
        self.base_url = (base_url if base_url is not None else settings.API_URL).rstrip("/")
        self.caller_identity = (
            caller_identity if caller_identity is not None else settings.CALLER_IDENTITY
        )

    def url_for(self, mode: ChatMode) -> str:
        return f"{self.base_url}{UPSTREAM_PATHS[mode]}"

    def build_request(self, message: str, mode: ChatMode) -> httpx.Request:
        """Build the outbound POST: raw text body plus the caller identity header."""
        return self.http.build_request(
            "POST",
            self.url_for(mode),
            content=message.encode("utf-8"),
            headers={
                "Content-Type": "text/plain",
                "username": self.caller_identity,
            },
        )

    async def open_stream(self, message: str, mode: ChatMode) -> httpx.Response:
        """Send the request and return the response with its body still unread.

        Raises UpstreamUnavailable on network errors, non-2xx statuses and
        bodiless responses. The caller owns the returned response and must
        close it.
        """
        request = self.build_request(message, mode)
        try:
            response = await self.http.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Upstream request failed: {exc}") from exc

        if not response.is_success or response.status_code in NO_BODY_STATUSES:
            await response.aclose()
            raise UpstreamUnavailable(
                f"Upstream returned status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def aclose(self) -> None:
        await self.http.aclose()


upstream_client: UpstreamClient | None = None


def get_upstream_client() -> UpstreamClient:
    """Get or create the UpstreamClient singleton (lazy init, no timeout)."""
    global upstream_client
    if upstream_client is None:
        upstream_client = UpstreamClient(httpx.AsyncClient(timeout=None))
        logger.info("Upstream client created for %s", upstream_client.base_url)
    return upstream_client


async def close_upstream_client() -> None:
    """Close the upstream HTTP client if open."""
    global upstream_client
    if upstream_client is not None:
        await upstream_client.aclose()
        upstream_client = None


async def get_upstream() -> UpstreamClient:
    """FastAPI dependency that returns the UpstreamClient."""
    return get_upstream_client()
