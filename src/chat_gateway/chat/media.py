"""Resolve locally uploaded media into inline base64 payloads."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

logger = logging.getLogger(__name__)

# Only jpg needs renaming to form a valid image/* subtype.
_SUBTYPE_ALIASES = {"jpg": "jpeg"}


class MediaReadError(RuntimeError):
    """Raised when a local upload exists but cannot be read."""

    def __init__(self, reference: str, reason: str):
        super().__init__(f"Failed to read {reference}: {reason}")
        self.reference = reference
        self.reason = reason


@dataclass(frozen=True)
class EncodedMedia:
    media_subtype: str
    payload: str

    @property
    def data_url(self) -> str:
        return f"data:image/{self.media_subtype};base64,{self.payload}"


def media_subtype_for(path: Path | str) -> str:
    """Derive the image subtype from a filename extension."""

    ext = PurePosixPath(str(path)).suffix.lower().lstrip(".")
    return _SUBTYPE_ALIASES.get(ext, ext)


class MediaResolver:
    """Turn ``/uploads/...`` references into :class:`EncodedMedia`."""

    def __init__(self, uploads_dir: Path, url_prefix: str = "/uploads/") -> None:
        self._uploads_dir = Path(uploads_dir).resolve()
        self._url_prefix = url_prefix if url_prefix.endswith("/") else url_prefix + "/"

    def is_local(self, reference: str) -> bool:
        return isinstance(reference, str) and reference.startswith(self._url_prefix)

    def local_path(self, reference: str) -> Path:
        """Map a local reference onto a path inside the upload directory."""

        if not self.is_local(reference):
            raise ValueError(f"Not a local upload reference: {reference}")

        relative = unquote(reference[len(self._url_prefix) :].split("?", 1)[0])
        if "\x00" in relative:
            raise MediaReadError(reference, "embedded null byte")
        try:
            candidate = (self._uploads_dir / relative).resolve()
        except (ValueError, OSError) as exc:
            raise MediaReadError(reference, str(exc)) from exc
        if not candidate.is_relative_to(self._uploads_dir):
            raise MediaReadError(reference, "path escapes the upload directory")
        return candidate

    async def resolve(self, reference: str) -> EncodedMedia | None:
        """Load and encode a local upload.

        Returns None when the file does not exist. Raises
        :class:`MediaReadError` when it exists but cannot be read.
        """

        path = self.local_path(reference)
        try:
            exists = await asyncio.to_thread(path.is_file)
        except OSError as exc:
            raise MediaReadError(reference, str(exc)) from exc
        if not exists:
            logger.debug("Local upload %s not found at %s", reference, path)
            return None

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise MediaReadError(reference, str(exc)) from exc

        return EncodedMedia(
            media_subtype=media_subtype_for(path),
            payload=base64.b64encode(data).decode("ascii"),
        )


__all__ = ["EncodedMedia", "MediaReadError", "MediaResolver", "media_subtype_for"]
