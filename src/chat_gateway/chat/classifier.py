"""Detect image content within a conversation."""

from __future__ import annotations

from typing import Any, Iterable

from .content import ImagePart, iter_parts


def conversation_has_images(messages: Iterable[Any] | None) -> bool:
    """Return True when any structured message content carries an image part.

    Messages with string, null, or missing content contribute nothing.
    """

    return any(isinstance(part, ImagePart) for part in iter_parts(messages))


__all__ = ["conversation_has_images"]
