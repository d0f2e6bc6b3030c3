"""Async chat client - submits messages to the relay and streams replies into a store."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from chat_relay.config import settings
from chat_relay.core.conversation import ConversationStore
from chat_relay.core.stream_consumer import StreamConsumer
from chat_relay.services.upstream_service import ChatMode

logger = logging.getLogger(__name__)

ENDPOINTS = {
    ChatMode.CHAT: "/api/chat/stream",
    ChatMode.TOOLS: "/api/chat/generate",
}


class ChatClient:
    """One UI session: a ConversationStore plus the HTTP client that feeds it.

    Only one request may be in flight; `submit` rejects new input while the
    store is loading.
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        store: ConversationStore | None = None,
        base_url: str | None = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.RELAY_URL).rstrip("/")
        self.http = http if http is not None else httpx.AsyncClient(timeout=None)
        self.store = store if store is not None else ConversationStore()

    def endpoint(self) -> str:
        return f"{self.base_url}{ENDPOINTS[ChatMode.from_flag(self.store.tool_mode)]}"

    async def submit(
        self, text: str, on_text: Callable[[str], None] | None = None
    ) -> bool:
        """Send `text` and stream the reply. Returns False if the input was rejected."""
        if not text.strip() or not self.store.begin_request():
            return False

        self.store.append_user_message(text)
        consumer = StreamConsumer(self.store, on_text=on_text)
        try:
            async with self.http.stream(
                "POST", self.endpoint(), json={"message": text}
            ) as response:
                if not response.is_success:
                    consumer.fail(
                        httpx.HTTPStatusError(
                            f"Relay returned status {response.status_code}",
                            request=response.request,
                            response=response,
                        )
                    )
                else:
                    await consumer.aconsume(response.aiter_bytes())
        except httpx.HTTPError as exc:
            # Connection failed before or while opening the stream
            if not consumer.done:
                consumer.fail(exc)
        finally:
            if not consumer.done:
                # Anything else escaping must not leave the reply open
                consumer.fail()
            self.store.end_request()
        return True

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
