"""
Blob Store
Durable storage for the raw bytes of every accepted upload
"""
from pathlib import Path
from typing import Protocol
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def write(self, path: str, data: bytes) -> None:
        """Store data at a new path; FileExistsError if the path is taken"""
        ...

    def exists(self, path: str) -> bool: ...

    def delete(self, path: str) -> None: ...


class LocalBlobStore:
    """Stores blobs as files under a root directory"""

    def __init__(self, root: str):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Blob path escapes upload directory: {path}")
        return target

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def write(self, path: str, data: bytes) -> None:
        """
        Write atomically without overwriting: temp file in the same directory,
        then hard linked to the target name (FileExistsError if it exists).
        """
        self.ensure_root()
        target = self._resolve(path)
        fd, tmp_path = tempfile.mkstemp(prefix=".upload_", dir=str(target.parent))
        try:
            with os.fdopen(fd, "wb") as out:
                out.write(data)
            os.link(tmp_path, target)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug(f"Stored {len(data)} bytes at {target}")

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target.exists():
            target.unlink()
