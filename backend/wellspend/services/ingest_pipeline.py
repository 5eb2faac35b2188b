"""
Ingest Pipeline
Upload -> parse -> normalize -> tag -> persist -> aggregate, with the
partial-success contract: once the Upload row exists, a failure is written to
its error_log instead of being raised, and the stored file is kept.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from wellspend.config import Settings
from wellspend.core.errors import IngestError, ParseError
from wellspend.models.ingest_models import Upload, UploadStatus
from wellspend.services.blob_store import BlobStore, LocalBlobStore
from wellspend.services.ingest_gate import IngestGate, MonotonicMillis, UploadRequest
from wellspend.services.metric_aggregator import AggregationResult, MetricAggregator
from wellspend.services.normalizer import Normalizer
from wellspend.services.parser import parse_rows
from wellspend.services.record_store import build_records, persist_records
from wellspend.services.tagging import derive_tags
from wellspend.services.upload_state import transition

logger = logging.getLogger(__name__)


@dataclass
class IngestOutcome:
    upload_id: str
    upload: Upload
    records_processed: int = 0
    error: Optional[str] = None
    aggregation: Optional[AggregationResult] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IngestPipeline:
    """Synchronous, request scoped ingestion of one uploaded file"""

    def __init__(self, settings: Settings, blob_store: Optional[BlobStore] = None,
                 clock: Callable[[], datetime] = datetime.utcnow,
                 stamp: Optional[MonotonicMillis] = None):
        self.settings = settings
        self.blob_store = blob_store or LocalBlobStore(settings.upload_dir)
        self.clock = clock
        self.gate = IngestGate(settings, self.blob_store, stamp=stamp, clock=clock)
        self.aggregator = MetricAggregator(clock=clock, unit=settings.metric_unit)

    def ingest(self, session: Session, request: UploadRequest) -> IngestOutcome:
        """Gate the request, then process it. Gate errors propagate to the caller."""
        upload = self.gate.accept(session, request)
        return self.process(session, upload, request.content)

    def process(self, session: Session, upload: Upload, content: bytes) -> IngestOutcome:
        upload_id = upload.id
        try:
            transition(upload, UploadStatus.PROCESSING)
            session.commit()

            records = self._build_batch(upload, content)
            persist_records(session, records)
            transition(upload, UploadStatus.PROCESSED, at=self.clock())
            session.commit()
        except Exception as e:
            message = str(e) or e.__class__.__name__
            if not isinstance(e, IngestError):
                logger.exception(f"Unexpected error while processing upload {upload_id}")
            else:
                logger.warning(f"Processing failed for upload {upload_id} at {e.stage}: {message}")
            self._record_failure(session, upload, upload_id, message)
            return IngestOutcome(upload_id=upload_id, upload=upload, error=message)

        logger.info(f"Upload {upload_id} processed: {len(records)} records")

        aggregation = self.aggregator.aggregate(session, upload, records)
        if not aggregation.ok:
            # Deliberately ignored: records are committed, the upload stays processed
            logger.info(f"Ignoring aggregation failure for upload {upload_id}")

        return IngestOutcome(
            upload_id=upload_id,
            upload=upload,
            records_processed=len(records),
            aggregation=aggregation,
        )

    def _build_batch(self, upload: Upload, content: bytes):
        rows = parse_rows(content, upload.mime_type, upload.original_name)
        try:
            normalized = [Normalizer.normalize_row(row, upload.category) for row in rows]
            tags = [derive_tags(row, upload.category) for row in rows]
        except Exception as e:
            raise ParseError(f"Failed to normalize rows: {e}", cause=e)
        return build_records(upload, rows, normalized, tags)

    def _record_failure(self, session: Session, upload: Upload, upload_id: str, message: str) -> None:
        try:
            session.rollback()
            transition(upload, UploadStatus.FAILED, error=message)
            session.commit()
        except Exception:
            session.rollback()
            logger.exception(f"Could not record failure on upload {upload_id}")
