"""
Metric Aggregator
Folds a committed batch of records into the monthly cost metric of its category
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from wellspend.core.errors import AggregationError
from wellspend.models.ingest_models import DataRecord, Metric, MetricType, Upload

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    """Outcome of one aggregation; failures are reported here, never raised"""
    metric: Optional[Metric] = None
    total: float = 0.0
    created: bool = False
    skipped: bool = False
    error: Optional[AggregationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def period_for(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def cost_metric_name(category: str) -> str:
    return f"{category}_costs"


class MetricAggregator:
    """
    Upserts (name, COST, period, category) with the batch total.

    Re-ingesting a category in the same month replaces the stored value with
    the new batch total instead of adding to it, and two concurrent uploads
    for the same key resolve as last-writer-wins.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow, unit: str = "USD"):
        self.clock = clock
        self.unit = unit

    @staticmethod
    def batch_total(records: Sequence[DataRecord]) -> float:
        return sum((record.amount or 0.0) for record in records)

    def aggregate(self, session: Session, upload: Upload, records: Sequence[DataRecord]) -> AggregationResult:
        total = self.batch_total(records)
        if total <= 0:
            logger.info(f"No positive cost in upload {upload.id}; skipping metric for {upload.category}")
            return AggregationResult(total=total, skipped=True)

        try:
            metric, created = self._upsert(session, upload, len(records), total)
            session.commit()
        except Exception as e:
            session.rollback()
            error = AggregationError(f"Failed to update {cost_metric_name(upload.category)}: {e}", cause=e)
            logger.warning(f"Metric aggregation failed for upload {upload.id}: {error}")
            return AggregationResult(total=total, error=error)

        logger.info(
            f"{'Created' if created else 'Updated'} metric {metric.name} "
            f"[{metric.period}] = {metric.value} {metric.unit}"
        )
        return AggregationResult(metric=metric, total=total, created=created)

    def _upsert(self, session: Session, upload: Upload, record_count: int, total: float):
        now = self.clock()
        name = cost_metric_name(upload.category)
        period = period_for(now)
        source = upload.data_source.value if upload.data_source is not None else None
        meta = {"recordCount": record_count, "source": source, "uploadId": upload.id}

        stmt = select(Metric).where(
            Metric.name == name,
            Metric.type == MetricType.COST,
            Metric.period == period,
            Metric.category == upload.category,
        )
        metric = session.execute(stmt).scalar_one_or_none()

        if metric is not None:
            metric.value = total
            metric.calculated_at = now
            metric.meta_info = meta
            session.flush()
            return metric, False

        metric = Metric(
            name=name,
            type=MetricType.COST,
            value=total,
            unit=self.unit,
            period=period,
            category=upload.category,
            meta_info=meta,
            calculated_at=now,
            created_at=now,
        )
        session.add(metric)
        session.flush()
        return metric, True
