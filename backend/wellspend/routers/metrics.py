from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List, Optional

from wellspend.database.session import get_db
from wellspend.models.ingest_models import Metric, MetricType
from wellspend.routers.auth import get_current_user, UserDep
from wellspend.schemas.upload import MetricOut

router = APIRouter()


@router.get("", response_model=List[MetricOut])
def list_metrics(
    period: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM"),
    category: Optional[str] = None,
    type: Optional[MetricType] = None,
    user: UserDep = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Aggregated metrics, optionally filtered by period, category and type"""
    stmt = select(Metric)
    if period:
        stmt = stmt.where(Metric.period == period)
    if category:
        stmt = stmt.where(Metric.category == category)
    if type:
        stmt = stmt.where(Metric.type == type)
    stmt = stmt.order_by(Metric.period.desc(), Metric.category, Metric.name)
    return list(db.execute(stmt).scalars())
