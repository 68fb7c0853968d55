"""Rewrite conversation content for the selected upstream provider."""

from __future__ import annotations

import asyncio
import logging
from copy import deepcopy
from typing import Any, Awaitable, Callable, Literal, Mapping, Sequence, TypeVar

from .content import (
    ContentPart,
    ImagePart,
    VideoPart,
    image_part,
    parse_part,
    text_part,
)
from .media import MediaReadError, MediaResolver

logger = logging.getLogger(__name__)

MissingImagePolicy = Literal["placeholder", "passthrough"]

T = TypeVar("T")
R = TypeVar("R")


def image_placeholder(url: str) -> str:
    return f"[User uploaded image: {url}]"


def video_placeholder(url: str) -> str:
    return f"[User uploaded video: {url}]"


def image_read_error_placeholder(url: str) -> str:
    return f"[Image read error: {url}]"


def image_missing_placeholder(url: str) -> str:
    return f"[Image not found: {url}]"


async def gather_in_order(
    func: Callable[[T], Awaitable[R]], items: Sequence[T]
) -> list[R]:
    """Run ``func`` over ``items`` concurrently, keeping input order.

    Each task writes into its own slot, so completion order never leaks into
    the result. If any call fails the remaining tasks are cancelled and the
    failures surface as an :class:`ExceptionGroup`.
    """

    results: list[Any] = [None] * len(items)

    async def _run(index: int, item: T) -> None:
        results[index] = await func(item)

    async with asyncio.TaskGroup() as group:
        for index, item in enumerate(items):
            group.create_task(_run(index, item))
    return results


class ContentRewriter:
    """Produce a provider-ready copy of a conversation."""

    def __init__(
        self,
        resolver: MediaResolver,
        *,
        missing_image_policy: MissingImagePolicy = "placeholder",
    ) -> None:
        self._resolver = resolver
        self._missing_image_policy = missing_image_policy

    async def rewrite(
        self, messages: Sequence[Mapping[str, Any]], has_image: bool
    ) -> list[dict[str, Any]]:
        """Return rewritten messages; the input is left untouched.

        ``has_image`` is the effective flag from provider selection: when
        False every image becomes a text placeholder.
        """

        layout: list[int | None] = []
        flat_parts: list[Any] = []
        for message in messages:
            content = message.get("content")
            if isinstance(content, list):
                layout.append(len(content))
                flat_parts.extend(content)
            else:
                layout.append(None)

        async def _rewrite(raw: Any) -> Any:
            return await self._rewrite_part(parse_part(raw), has_image)

        rewritten = await gather_in_order(_rewrite, flat_parts)

        output: list[dict[str, Any]] = []
        cursor = 0
        for message, count in zip(messages, layout):
            copied = deepcopy(dict(message))
            if count is not None:
                copied["content"] = rewritten[cursor : cursor + count]
                cursor += count
            output.append(copied)
        return output

    async def _rewrite_part(self, part: ContentPart, has_image: bool) -> Any:
        if isinstance(part, VideoPart):
            return text_part(video_placeholder(part.url))
        if isinstance(part, ImagePart):
            return await self._rewrite_image(part, has_image)
        return deepcopy(part.raw)

    async def _rewrite_image(self, part: ImagePart, has_image: bool) -> Any:
        if not has_image:
            return text_part(image_placeholder(part.url))
        if not self._resolver.is_local(part.url):
            return deepcopy(part.raw)

        try:
            media = await self._resolver.resolve(part.url)
        except MediaReadError as exc:
            logger.error("Error reading image %s: %s", part.url, exc.reason)
            return text_part(image_read_error_placeholder(part.url))

        if media is None:
            if self._missing_image_policy == "passthrough":
                return deepcopy(part.raw)
            logger.warning("Referenced image %s no longer exists", part.url)
            return text_part(image_missing_placeholder(part.url))

        return image_part(media.data_url)


__all__ = [
    "ContentRewriter",
    "MissingImagePolicy",
    "gather_in_order",
    "image_placeholder",
    "video_placeholder",
]
