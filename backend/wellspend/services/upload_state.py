"""
Upload lifecycle: created -> processing -> processed | failed

processed and failed are terminal; re-processing needs a new upload.
"""
from datetime import datetime
from typing import Optional

from wellspend.core.errors import InvalidTransition
from wellspend.models.ingest_models import Upload, UploadStatus

ALLOWED_TRANSITIONS = {
    UploadStatus.CREATED: {UploadStatus.PROCESSING, UploadStatus.FAILED},
    UploadStatus.PROCESSING: {UploadStatus.PROCESSED, UploadStatus.FAILED},
    UploadStatus.PROCESSED: set(),
    UploadStatus.FAILED: set(),
}


def can_transition(current: UploadStatus, target: UploadStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def transition(upload: Upload, target: UploadStatus, *, at: Optional[datetime] = None,
               error: Optional[str] = None) -> Upload:
    """Move an upload to `target`, stamping processed_at / error_log as needed"""
    current = UploadStatus(upload.status or UploadStatus.CREATED)
    if not can_transition(current, target):
        raise InvalidTransition(f"Upload {upload.id} cannot move from {current.value} to {target.value}")

    upload.status = target
    if target == UploadStatus.PROCESSED:
        upload.is_processed = True
        upload.processed_at = at or datetime.utcnow()
        upload.error_log = None
    elif target == UploadStatus.FAILED:
        upload.is_processed = False
        upload.error_log = error or "Unknown processing error"
    return upload
