from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Dict, List, Optional

from wellspend.models.ingest_models import DataSource, MetricType, UploadStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UploadAccepted(CamelModel):
    message: str
    upload_id: str
    records_processed: int


class UploadPartial(CamelModel):
    message: str
    upload_id: str
    error: str


class UploadOut(CamelModel):
    id: str
    file_name: str
    original_name: str
    file_size: int
    mime_type: str
    data_source: DataSource
    category: str
    status: UploadStatus
    is_processed: bool
    processed_at: Optional[datetime] = None
    error_log: Optional[str] = None
    created_at: datetime


class DataRecordOut(CamelModel):
    id: str
    upload_id: str
    record_index: int
    raw_data: Dict[str, Any]
    processed_data: Dict[str, Any]
    amount: Optional[float] = None
    date: Optional[datetime] = None
    category: str
    description: Optional[str] = None
    tags: List[str]


class MetricOut(CamelModel):
    id: str
    name: str
    type: MetricType
    value: float
    unit: str
    period: str
    category: str
    meta_info: Optional[Dict[str, Any]] = None
    calculated_at: datetime
