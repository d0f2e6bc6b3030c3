"""Chat service - forwards one chat request upstream and relays the reply."""

import logging

from fastapi import Response
from fastapi.responses import JSONResponse

from chat_relay.schemas.chat import ErrorResponse
from chat_relay.services.relay_service import build_stream_response
from chat_relay.services.upstream_service import ChatMode, UpstreamClient, UpstreamUnavailable

logger = logging.getLogger(__name__)

UPSTREAM_ERROR_MESSAGE = "Failed to get response from AI"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=message).model_dump(), status_code=status_code
    )


class RequestForwarder:
    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream

    async def forward(self, message: str, mode: ChatMode) -> Response:
        """Dispatch the message to the endpoint for `mode` and stream the reply.

        Failures found before the first byte is relayed become a JSON error
        envelope with status 500.
        """
        try:
            upstream_response = await self.upstream.open_stream(message, mode)
        except UpstreamUnavailable as exc:
            logger.warning("Upstream unavailable (%s mode): %s", mode.value, exc)
            return error_response(UPSTREAM_ERROR_MESSAGE)
        except Exception:
            logger.exception("Error forwarding %s request", mode.value)
            return error_response(INTERNAL_ERROR_MESSAGE)

        logger.info(
            "Relaying %s stream from %s", mode.value, upstream_response.request.url
        )
        return build_stream_response(upstream_response, mode)
