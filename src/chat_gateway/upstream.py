"""Streaming relay to OpenAI-compatible chat completion providers."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncGenerator, Optional, Sequence

import httpx
from fastapi import status

from .chat.providers import ProviderTarget

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Wrap transport or API failures when communicating with a provider."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail


class StreamingRelay:
    """Open a streamed chat completion and forward its bytes untouched."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        connect_timeout: float = 10.0,
    ) -> None:
        self._owns_client = http_client is None
        if http_client is None:
            # Generations can run long; only connecting is bounded.
            timeout = httpx.Timeout(None, connect=connect_timeout)
            limits = httpx.Limits(
                max_connections=50,
                max_keepalive_connections=20,
            )
            http_client = httpx.AsyncClient(timeout=timeout, limits=limits)
        self._client = http_client

    @staticmethod
    def _headers(target: ProviderTarget) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {target.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    @staticmethod
    def build_payload(
        target: ProviderTarget, messages: Sequence[dict[str, Any]]
    ) -> dict[str, Any]:
        return {"model": target.model, "messages": list(messages), "stream": True}

    async def open(
        self, target: ProviderTarget, messages: Sequence[dict[str, Any]]
    ) -> httpx.Response:
        """Send the request and return the response once headers arrive.

        Raises :class:`UpstreamError` before any body bytes are consumed when
        the provider rejects the request or cannot be reached.
        """

        request = self._client.build_request(
            "POST",
            target.url,
            headers=self._headers(target),
            json=self.build_payload(target, messages),
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.error("Upstream %s request failed: %s", target.model, exc)
            raise UpstreamError(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
            ) from exc

        if response.status_code >= 400:
            try:
                body = await response.aread()
            except httpx.HTTPError:
                body = b""
            finally:
                await response.aclose()
            detail = self._extract_error_detail(body)
            logger.error(
                "Upstream %s returned %s: %s",
                target.model,
                response.status_code,
                detail,
            )
            raise UpstreamError(response.status_code, detail)

        return response

    async def iter_bytes(self, response: httpx.Response) -> AsyncGenerator[bytes, None]:
        """Yield upstream chunks in arrival order, closing the response after."""

        try:
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            logger.warning("Upstream stream interrupted: %s", exc)
        finally:
            await response.aclose()

    async def relay(
        self, target: ProviderTarget, messages: Sequence[dict[str, Any]]
    ) -> AsyncGenerator[bytes, None]:
        response = await self.open(target, messages)
        async for chunk in self.iter_bytes(response):
            yield chunk

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "Upstream returned an empty error response."
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="ignore")
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text


__all__ = ["StreamingRelay", "UpstreamError"]
