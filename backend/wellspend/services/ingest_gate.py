"""
Ingest Gate
Validates an incoming file, stores its raw bytes and records the Upload row
before any parsing happens.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
import logging
import re
import threading
import time

from sqlalchemy.orm import Session

from wellspend.config import Settings
from wellspend.core.errors import InfrastructureError, ValidationError
from wellspend.models.ingest_models import DataSource, Upload, UploadStatus
from wellspend.services.blob_store import BlobStore
from wellspend.services.parser import base_mime

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")
STORAGE_NAME_ATTEMPTS = 5


@dataclass
class UploadRequest:
    """What the HTTP layer hands to the pipeline for one submitted file"""
    content: Optional[bytes]
    original_name: Optional[str]
    mime_type: Optional[str]
    category: Optional[str]
    data_source: Optional[str]
    uploaded_by: str


class MonotonicMillis:
    """Millisecond timestamps that strictly increase within the process"""

    def __init__(self, source: Callable[[], float] = time.time):
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            now = int(self._source() * 1000)
            self._last = max(now, self._last + 1)
            return self._last


def sanitize_file_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name or "upload")


def parse_data_source(value: Optional[str]) -> DataSource:
    try:
        return DataSource((value or "").strip().upper())
    except ValueError:
        allowed = ", ".join(source.value for source in DataSource)
        raise ValidationError(f"Invalid dataSource '{value}'. Expected one of: {allowed}")


class IngestGate:
    def __init__(self, settings: Settings, blob_store: BlobStore,
                 stamp: Optional[MonotonicMillis] = None,
                 clock: Callable[[], datetime] = datetime.utcnow):
        self.settings = settings
        self.blob_store = blob_store
        self.stamp = stamp or MonotonicMillis()
        self.clock = clock

    def storage_name(self, original_name: str) -> str:
        return f"{self.stamp()}-{sanitize_file_name(original_name)}"

    def validate(self, request: UploadRequest) -> DataSource:
        """Reject the request without side effects; returns the parsed data source"""
        if request.content is None or not request.original_name:
            raise ValidationError("No file provided")

        if not request.category or not request.category.strip():
            raise ValidationError("Category is required")

        data_source = parse_data_source(request.data_source)

        max_size = self.settings.max_file_size
        if len(request.content) > max_size:
            raise ValidationError(f"File size exceeds {max_size / 1024 / 1024:g}MB limit")

        allowed = {mime.lower() for mime in self.settings.allowed_mime_types}
        if base_mime(request.mime_type) not in allowed:
            raise ValidationError("Invalid file type. Only CSV and JSON files are allowed.")

        return data_source

    def store_blob(self, request: UploadRequest) -> str:
        """
        Write the raw bytes under a fresh storage name and return it.

        A name that is already taken (another worker process can issue the
        same millisecond stamp) is never overwritten; the next stamp is tried.
        """
        for _ in range(STORAGE_NAME_ATTEMPTS):
            file_name = self.storage_name(request.original_name)
            try:
                self.blob_store.write(file_name, request.content)
                return file_name
            except FileExistsError:
                logger.warning(f"Storage name {file_name} already taken, retrying")
            except Exception as e:
                logger.exception(f"Failed to store upload {file_name}")
                raise InfrastructureError(f"Could not store uploaded file: {e}", cause=e)

        raise InfrastructureError(
            f"Could not find a free storage name for {request.original_name} "
            f"after {STORAGE_NAME_ATTEMPTS} attempts"
        )

    def accept(self, session: Session, request: UploadRequest) -> Upload:
        """
        Validate, write the raw bytes and commit the Upload row.

        Raises ValidationError before anything is stored, InfrastructureError
        if storage or the database fails (the blob written by this call is
        removed again when its row insert fails).
        """
        data_source = self.validate(request)
        file_name = self.store_blob(request)

        upload = Upload(
            file_name=file_name,
            original_name=request.original_name,
            file_size=len(request.content),
            mime_type=base_mime(request.mime_type),
            data_source=data_source,
            category=request.category.strip(),
            uploaded_by=request.uploaded_by,
            status=UploadStatus.CREATED,
            is_processed=False,
            created_at=self.clock(),
        )

        try:
            session.add(upload)
            session.commit()
        except Exception as e:
            session.rollback()
            logger.exception(f"Failed to record upload {file_name}")
            try:
                self.blob_store.delete(file_name)
            except Exception:
                logger.exception(f"Could not remove orphaned blob {file_name}")
            raise InfrastructureError(f"Could not record upload: {e}", cause=e)

        logger.info(
            f"Accepted upload {upload.id} ({request.original_name}, {upload.file_size} bytes, "
            f"category={upload.category}, source={data_source.value})"
        )
        return upload
