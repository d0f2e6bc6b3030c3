"""Chat-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]


class ChatRequest(BaseModel):
    """Incoming chat message from the client."""
    message: str = Field(..., min_length=1)


class ErrorResponse(BaseModel):
    """Error envelope returned when the upstream fails before streaming."""
    error: str


class Message(BaseModel):
    """One conversation entry. Content is mutable while its stream is open."""
    role: Role
    content: str
