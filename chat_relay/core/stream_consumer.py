"""Stream consumer - turns a relayed byte stream into one growing assistant message.

The consumer is a small state machine:

    AWAITING_FIRST_CHUNK --(first non-empty text)--> ACCUMULATING --(end)--> DONE
            |                                              |
            +---------------(read/decode error)------------+--> FAILED

The first decoded text creates the assistant message; later text overwrites
that same message with the full accumulated reply. An empty stream creates
nothing. Chunk boundaries may fall inside a multi-byte character, so decoding
carries incomplete trailing bytes over to the next chunk.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable, Iterable
from enum import Enum

import httpx

from chat_relay.core.conversation import ConversationStateError, ConversationStore
from chat_relay.schemas.chat import Message

logger = logging.getLogger(__name__)

# requests.RequestException subclasses OSError, so the blocking client is covered too
READ_ERRORS = (httpx.HTTPError, OSError)


class StreamDecodeError(ValueError):
    """The stream contains bytes that are not valid UTF-8."""


class DecodeTruncation(StreamDecodeError):
    """The stream ended in the middle of a multi-byte character."""


def _complete_prefix_length(data: bytes) -> int:
    """Length of `data` up to the start of a trailing incomplete UTF-8 sequence."""
    end = len(data)
    # A sequence is at most 4 bytes, so only the last 3 can be unfinished
    for back in range(1, min(4, end + 1)):
        byte = data[end - back]
        if byte & 0xC0 == 0x80:  # continuation byte, keep looking for the lead
            continue
        if byte >= 0xF0:
            needed = 4
        elif byte >= 0xE0:
            needed = 3
        elif byte >= 0xC0:
            needed = 2
        else:
            needed = 1
        return end - back if needed > back else end
    return end


class Utf8StreamDecoder:
    """Incremental UTF-8 decoder with an explicit pending-bytes buffer."""

    def __init__(self):
        self.pending = b""

    def decode(self, chunk: bytes) -> str:
        """Decode everything up to the last complete character; hold the rest."""
        data = self.pending + bytes(chunk)
        cut = _complete_prefix_length(data)
        self.pending = data[cut:]
        try:
            return data[:cut].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StreamDecodeError(f"Invalid UTF-8 in stream: {exc.reason}") from exc

    def flush(self) -> str:
        """End of input. Leftover bytes are a truncated character, not text."""
        if self.pending:
            leftover = self.pending
            self.pending = b""
            raise DecodeTruncation(
                f"Stream ended inside a multi-byte character ({leftover!r})"
            )
        return ""


class StreamState(str, Enum):
    AWAITING_FIRST_CHUNK = "awaiting_first_chunk"
    ACCUMULATING = "accumulating"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({StreamState.DONE, StreamState.FAILED})


class StreamConsumer:
    """Projects one response stream onto a single assistant message in `store`.

    `on_text` is called with each newly decoded piece of text, e.g. to echo
    it to a terminal.
    """

    def __init__(
        self,
        store: ConversationStore,
        decoder: Utf8StreamDecoder | None = None,
        on_text: Callable[[str], None] | None = None,
    ):
        self.store = store
        self.decoder = decoder if decoder is not None else Utf8StreamDecoder()
        self.on_text = on_text
        self.state = StreamState.AWAITING_FIRST_CHUNK
        self.accumulator = ""
        self.message: Message | None = None
        self.error: BaseException | None = None

    @property
    def assistant_created(self) -> bool:
        return self.message is not None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def _ensure_active(self) -> None:
        if self.done:
            raise ConversationStateError(f"Stream already {self.state.value}")

    def _apply(self, text: str) -> None:
        if not text:
            return
        self.accumulator += text
        if self.state is StreamState.AWAITING_FIRST_CHUNK:
            self.message = self.store.begin_assistant_message(self.accumulator)
            self.state = StreamState.ACCUMULATING
        else:
            self.store.append_to_assistant_message(self.accumulator)
        if self.on_text is not None:
            self.on_text(text)

    def feed(self, chunk: bytes) -> str:
        """Decode one chunk and apply it. Returns the newly decoded text."""
        self._ensure_active()
        text = self.decoder.decode(chunk)
        self._apply(text)
        return text

    def finish(self) -> str:
        """Flush the decoder and close the stream. Returns the full reply."""
        self._ensure_active()
        self._apply(self.decoder.flush())
        self.store.complete_stream()
        self.state = StreamState.DONE
        return self.accumulator

    def fail(self, error: BaseException | None = None) -> Message:
        """Close the stream and append the terminal error message."""
        self._ensure_active()
        self.error = error
        logger.warning(
            "Stream failed after %d characters: %r", len(self.accumulator), error
        )
        self.state = StreamState.FAILED
        return self.store.fail_stream()

    def consume(self, chunks: Iterable[bytes]) -> str:
        try:
            for chunk in chunks:
                self.feed(chunk)
            self.finish()
        except (StreamDecodeError, *READ_ERRORS) as exc:
            self.fail(exc)
        except Exception as exc:
            # e.g. an on_text callback error: close the message, then propagate
            if not self.done:
                self.fail(exc)
            raise
        return self.accumulator

    async def aconsume(self, chunks: AsyncIterable[bytes]) -> str:
        try:
            async for chunk in chunks:
                self.feed(chunk)
            self.finish()
        except (StreamDecodeError, *READ_ERRORS) as exc:
            self.fail(exc)
        except Exception as exc:
            # e.g. an on_text callback error: close the message, then propagate
            if not self.done:
                self.fail(exc)
            raise
        return self.accumulator
