"""Pydantic schemas for requests, responses and conversation entries."""

from chat_relay.schemas.chat import ChatRequest, ErrorResponse, Message, Role

__all__ = ["ChatRequest", "ErrorResponse", "Message", "Role"]
