"""
Record Store
Persistence helpers for uploads and their data records
"""
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from wellspend.core.errors import PersistenceError
from wellspend.models.ingest_models import DataRecord, Upload
from wellspend.services.normalizer import NormalizedRow, Row


class UploadRepository:
    """Queries over uploads and data records, scoped to a session"""

    def __init__(self, session: Session):
        self.session = session

    # ============================================================================
    # uploads
    # ============================================================================

    def get_upload_for_user(self, upload_id: str, user_id: str) -> Optional[Upload]:
        stmt = select(Upload).where(Upload.id == upload_id, Upload.uploaded_by == user_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_uploads_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Upload]:
        stmt = (
            select(Upload)
            .where(Upload.uploaded_by == user_id)
            .order_by(Upload.created_at.desc(), Upload.file_name.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.execute(stmt).scalars())

    # ============================================================================
    # data records
    # ============================================================================

    def list_records(self, upload_id: str, limit: int = 500, offset: int = 0) -> List[DataRecord]:
        stmt = (
            select(DataRecord)
            .where(DataRecord.upload_id == upload_id)
            .order_by(DataRecord.record_index)
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.execute(stmt).scalars())


def build_records(upload: Upload, raw_rows: Sequence[Row], normalized: Sequence[NormalizedRow],
                  tags: Sequence[List[str]]) -> List[DataRecord]:
    """One DataRecord per input row; record_index follows input order"""
    records = []
    for index, (raw, norm, row_tags) in enumerate(zip(raw_rows, normalized, tags)):
        records.append(DataRecord(
            upload_id=upload.id,
            record_index=index,
            raw_data=dict(raw),
            processed_data=norm.processed,
            amount=norm.amount,
            date=norm.date,
            category=upload.category,
            description=norm.description,
            tags=list(row_tags),
        ))
    return records


def persist_records(session: Session, records: List[DataRecord]) -> List[DataRecord]:
    """
    Stage the whole batch and flush it in one go.

    The caller owns the transaction: it commits the records together with the
    upload's processed transition, or rolls everything back.
    """
    try:
        session.add_all(records)
        session.flush()
    except Exception as e:
        raise PersistenceError(f"Failed to store {len(records)} data records: {e}", cause=e)
    return records
