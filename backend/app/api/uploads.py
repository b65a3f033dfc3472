"""Bounded reading of multipart upload parts."""

from __future__ import annotations

from fastapi import UploadFile

READ_CHUNK = 1024 * 1024


class UploadTooLarge(Exception):
    def __init__(self, filename: str, size: int, limit: int):
        super().__init__(f"{filename}: {size} bytes exceeds {limit}")
        self.filename = filename
        self.size = size
        self.limit = limit


async def read_limited(upload: UploadFile, limit: int) -> bytes:
    """Read an uploaded part in chunks, aborting once it exceeds ``limit``."""
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(READ_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise UploadTooLarge(upload.filename or "unknown", total, limit)
        chunks.append(chunk)
    return b"".join(chunks)
