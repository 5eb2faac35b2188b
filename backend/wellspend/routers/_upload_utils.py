"""
Upload utility helpers for reading multipart files
"""
from fastapi import UploadFile
from typing import Optional

CHUNK_SIZE = 1024 * 1024  # 1MB


async def read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[bytes]:
    """
    Read an UploadFile into memory, stopping one byte past max_bytes.

    The truncated result is still longer than the limit, so the size check in
    the ingest gate rejects it without buffering an arbitrarily large body.
    """
    if upload is None:
        return None

    buffer = bytearray()
    while len(buffer) <= max_bytes:
        chunk = await upload.read(min(CHUNK_SIZE, max_bytes + 1 - len(buffer)))
        if not chunk:
            break
        buffer.extend(chunk)
    return bytes(buffer)


def declared_mime(upload: Optional[UploadFile]) -> Optional[str]:
    if upload is None:
        return None
    return upload.content_type
