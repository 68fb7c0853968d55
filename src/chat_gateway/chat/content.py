"""Typed views over the content parts of a chat message."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

TEXT_TYPE = "text"
IMAGE_TYPE = "image_url"
VIDEO_TYPE = "video_url"


@dataclass(frozen=True, slots=True)
class TextPart:
    raw: Mapping[str, Any]
    text: str


@dataclass(frozen=True, slots=True)
class ImagePart:
    raw: Mapping[str, Any]
    url: str


@dataclass(frozen=True, slots=True)
class VideoPart:
    raw: Mapping[str, Any]
    url: str


@dataclass(frozen=True, slots=True)
class UnknownPart:
    """Any part this gateway does not understand; forwarded untouched."""

    raw: Any


ContentPart = Union[TextPart, ImagePart, VideoPart, UnknownPart]


def _media_url(part: Mapping[str, Any], key: str) -> str | None:
    payload = part.get(key)
    if isinstance(payload, str):
        return payload
    if isinstance(payload, Mapping):
        url = payload.get("url")
        if isinstance(url, str):
            return url
    return None


def parse_part(part: Any) -> ContentPart:
    """Classify a raw content item by its ``type`` tag."""

    if not isinstance(part, Mapping):
        return UnknownPart(part)

    part_type = part.get("type")
    if part_type == TEXT_TYPE:
        text = part.get("text")
        return TextPart(part, text if isinstance(text, str) else "")
    if part_type == IMAGE_TYPE:
        url = _media_url(part, IMAGE_TYPE)
        if url is not None:
            return ImagePart(part, url)
    elif part_type == VIDEO_TYPE:
        url = _media_url(part, VIDEO_TYPE)
        if url is not None:
            return VideoPart(part, url)
    return UnknownPart(part)


def message_parts(message: Any) -> list[ContentPart]:
    """Return the parsed parts of a message, or an empty list for plain text."""

    if isinstance(message, Mapping):
        content = message.get("content")
    else:
        content = getattr(message, "content", None)
    if not isinstance(content, list):
        return []
    return [parse_part(part) for part in content]


def iter_parts(messages: Iterable[Any] | None) -> Iterable[ContentPart]:
    for message in messages or ():
        yield from message_parts(message)


def text_part(text: str) -> dict[str, Any]:
    return {"type": TEXT_TYPE, "text": text}


def image_part(url: str) -> dict[str, Any]:
    return {"type": IMAGE_TYPE, "image_url": {"url": url}}


__all__ = [
    "ContentPart",
    "IMAGE_TYPE",
    "ImagePart",
    "TEXT_TYPE",
    "TextPart",
    "UnknownPart",
    "VIDEO_TYPE",
    "VideoPart",
    "image_part",
    "iter_parts",
    "message_parts",
    "parse_part",
    "text_part",
]
