"""Chat streaming API route."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ..chat import (
    ContentRewriter,
    ProviderRegistry,
    conversation_has_images,
    select_provider,
)
from ..schemas.chat import ChatRequest
from ..upstream import StreamingRelay, UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _state_attr(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{label} unavailable")
    return value


def get_providers(request: Request) -> ProviderRegistry:
    return _state_attr(request, "providers", "Provider configuration")


def get_content_rewriter(request: Request) -> ContentRewriter:
    return _state_attr(request, "content_rewriter", "Content rewriter")


def get_streaming_relay(request: Request) -> StreamingRelay:
    return _state_attr(request, "streaming_relay", "Streaming relay")


@router.post("/chat", response_model=None, status_code=200)
async def chat(
    payload: Optional[ChatRequest] = None,
    providers: ProviderRegistry = Depends(get_providers),
    rewriter: ContentRewriter = Depends(get_content_rewriter),
    relay: StreamingRelay = Depends(get_streaming_relay),
) -> StreamingResponse | JSONResponse:
    """Route a conversation to the text or vision provider and stream back."""

    if payload is None or payload.messages is None:
        return JSONResponse(status_code=400, content={"error": "Messages are required"})

    messages = payload.conversation()

    try:
        selection = select_provider(conversation_has_images(messages), providers)
        rewritten = await rewriter.rewrite(messages, selection.has_image)

        logger.info("Sending request to: %s", selection.target.model)
        response = await relay.open(selection.target, rewritten)
    except UpstreamError as exc:
        return JSONResponse(
            status_code=exc.status_code, content={"error": exc.detail}
        )
    except Exception:
        logger.exception("Chat request failed")
        return JSONResponse(
            status_code=500, content={"error": "Internal Server Error"}
        )

    return StreamingResponse(
        relay.iter_bytes(response),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


__all__ = [
    "get_content_rewriter",
    "get_providers",
    "get_streaming_relay",
    "router",
]
