"""Conversation store - the client's ordered message list and view flags."""

from chat_relay.schemas.chat import Message

STREAM_ERROR_MESSAGE = "Sorry, there was an error processing your request."


class ConversationStateError(RuntimeError):
    """A transition was applied in a state that does not allow it."""


class ConversationStore:
    """Ordered messages plus the `loading` and `tool_mode` flags.

    Only the submission path (user messages) and the active stream consumer
    (assistant messages) mutate it, and `loading` keeps them from overlapping.
    At most one assistant message is open, and it is always the last one.
    """

    def __init__(self, tool_mode: bool = False):
        self._messages: list[Message] = []
        self._open: Message | None = None
        self.loading = False
        self.tool_mode = tool_mode

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def open_message(self) -> Message | None:
        return self._open

    @property
    def is_streaming(self) -> bool:
        return self._open is not None

    def __len__(self) -> int:
        return len(self._messages)

    # --- Request lifecycle ---

    def begin_request(self) -> bool:
        """Set `loading`. Returns False (reject) if a request is already in flight."""
        if self.loading:
            return False
        self.loading = True
        return True

    def end_request(self) -> None:
        self.loading = False

    def toggle_tool_mode(self) -> bool:
        self.tool_mode = not self.tool_mode
        return self.tool_mode

    def clear(self) -> None:
        if self.loading:
            raise ConversationStateError("Cannot clear while a request is in flight")
        self._messages.clear()
        self._open = None

    # --- Transitions ---

    def append_user_message(self, text: str) -> Message:
        if self._open is not None:
            raise ConversationStateError("Assistant message is still streaming")
        message = Message(role="user", content=text)
        self._messages.append(message)
        return message

    def begin_assistant_message(self, text: str) -> Message:
        if self._open is not None:
            raise ConversationStateError("An assistant message is already open")
        message = Message(role="assistant", content=text)
        self._messages.append(message)
        self._open = message
        return message

    def append_to_assistant_message(self, text: str) -> Message:
        """Overwrite the open message's content with the full accumulated text."""
        if self._open is None:
            raise ConversationStateError("No assistant message is open")
        self._open.content = text
        return self._open

    def complete_stream(self) -> None:
        self._open = None

    def fail_stream(self, error_text: str = STREAM_ERROR_MESSAGE) -> Message:
        """Close any open message and append a terminal error message."""
        self._open = None
        message = Message(role="assistant", content=error_text)
        self._messages.append(message)
        return message

    def snapshot(self) -> list[dict]:
        return [m.model_dump() for m in self._messages]
