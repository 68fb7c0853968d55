"""Disk-backed storage for chat uploads served under ``/uploads``."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class UploadError(RuntimeError):
    """Base error raised for upload failures."""


class UploadTooLarge(UploadError):
    """Raised when an uploaded file exceeds the configured limit."""


@dataclass(frozen=True)
class StoredUpload:
    url: str
    mime_type: str
    original_name: str


def build_upload_name(original_filename: str | None) -> str:
    """Return a unique stored name: ``<millis>-<random><ext>``."""

    suffix = Path(original_filename or "").suffix
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}"
    return f"{unique}{suffix}"


class UploadStore:
    """Write uploaded files into the upload directory."""

    def __init__(
        self,
        uploads_dir: Path,
        *,
        url_prefix: str = "/uploads/",
        max_size_bytes: int,
    ) -> None:
        self._uploads_dir = Path(uploads_dir)
        self._url_prefix = url_prefix if url_prefix.endswith("/") else url_prefix + "/"
        self._max_size_bytes = max_size_bytes

    async def save(self, upload: UploadFile) -> StoredUpload:
        data = await self._read_upload(upload)
        name = build_upload_name(upload.filename)
        path = self._uploads_dir / name
        await asyncio.to_thread(self._write, path, data)

        logger.info("Stored upload %s (%d bytes)", name, len(data))
        return StoredUpload(
            url=f"{self._url_prefix}{name}",
            mime_type=upload.content_type or "application/octet-stream",
            original_name=upload.filename or name,
        )

    async def _read_upload(self, upload: UploadFile) -> bytes:
        chunks: list[bytes] = []
        total = 0
        while True:
            chunk = await upload.read(_CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > self._max_size_bytes:
                raise UploadTooLarge(
                    f"File exceeds maximum size of {self._max_size_bytes} bytes"
                )
            chunks.append(chunk)
        return b"".join(chunks)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


__all__ = [
    "StoredUpload",
    "UploadError",
    "UploadStore",
    "UploadTooLarge",
    "build_upload_name",
]
