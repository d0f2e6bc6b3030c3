"""Chat endpoints - two entry points into the same forwarder, one per mode."""

from fastapi import APIRouter, Depends

from chat_relay.schemas.chat import ChatRequest, ErrorResponse
from chat_relay.services.chat_service import RequestForwarder
from chat_relay.services.upstream_service import ChatMode, UpstreamClient, get_upstream

router = APIRouter()

STREAM_RESPONSES = {
    200: {"content": {"text/plain": {}}, "description": "Generated text, streamed"},
    500: {"model": ErrorResponse, "description": "Upstream failed before streaming"},
}


@router.post("/stream", responses=STREAM_RESPONSES)
async def chat_stream(data: ChatRequest, upstream: UpstreamClient = Depends(get_upstream)):
    """Plain chat: stream the upstream reply to `message`."""
    return await RequestForwarder(upstream).forward(data.message, ChatMode.CHAT)


@router.post("/generate", responses=STREAM_RESPONSES)
async def chat_generate(data: ChatRequest, upstream: UpstreamClient = Depends(get_upstream)):
    """Tool-augmented generation: stream the upstream reply to `message`."""
    return await RequestForwarder(upstream).forward(data.message, ChatMode.TOOLS)
