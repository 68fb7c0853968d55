"""Pydantic models for chat requests."""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class ChatMessage(BaseModel):
    """Represents a single chat message."""

    role: Literal["system", "user", "assistant", "tool"]
    content: Union[str, List[Any], None] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ChatRequest(BaseModel):
    """Incoming `/api/chat` payload.

    ``messages`` is optional at the schema level so the route can answer a
    missing conversation with a 400 instead of a validation error.
    """

    messages: Optional[List[ChatMessage]] = None

    model_config = ConfigDict(extra="ignore")

    def conversation(self) -> list[dict[str, Any]]:
        """Return the messages as plain dictionaries, dropping unset fields."""

        return [
            message.model_dump(exclude_unset=True) for message in self.messages or []
        ]


class UploadResponse(BaseModel):
    """Response body returned by the upload endpoint."""

    url: str
    type: str
    originalName: str


__all__ = ["ChatMessage", "ChatRequest", "UploadResponse"]
