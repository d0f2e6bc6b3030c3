"""Relay service - pipes an upstream response body to the outbound response."""

import logging
from collections.abc import AsyncGenerator

import httpx
from fastapi.responses import StreamingResponse

from chat_relay.services.upstream_service import ChatMode

logger = logging.getLogger(__name__)

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"

# Only the plain-chat endpoint asks intermediaries to keep the stream live
MODE_HEADERS = {
    ChatMode.CHAT: {"Cache-Control": "no-cache", "Connection": "keep-alive"},
    ChatMode.TOOLS: {},
}


async def relay_stream(upstream: httpx.Response) -> AsyncGenerator[bytes, None]:
    """Yield upstream body chunks unchanged, in arrival order.

    A read failure here cannot be reported to the client any more: the status
    and headers are already sent. It is logged and re-raised so the server
    aborts the response and the client sees a truncated transfer.
    """
    relayed = 0
    try:
        async for chunk in upstream.aiter_bytes():
            relayed += len(chunk)
            yield chunk
    except httpx.HTTPError:
        logger.exception("Upstream stream failed after %d bytes", relayed)
        raise
    finally:
        await upstream.aclose()
    logger.debug("Relayed %d bytes from %s", relayed, upstream.request.url)


class RelayResponse(StreamingResponse):
    """StreamingResponse that closes the upstream however the transfer ends.

    The generator's own cleanup never runs if the client goes away before the
    first chunk is pulled, so the upstream is also closed here.
    """

    def __init__(self, upstream: httpx.Response, **kwargs):
        super().__init__(relay_stream(upstream), **kwargs)
        self.upstream = upstream

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.upstream.aclose()


def build_stream_response(upstream: httpx.Response, mode: ChatMode) -> RelayResponse:
    """Wrap an already-successful upstream response in a streaming response."""
    return RelayResponse(
        upstream,
        status_code=200,
        media_type=STREAM_MEDIA_TYPE,
        headers=MODE_HEADERS[mode],
    )
