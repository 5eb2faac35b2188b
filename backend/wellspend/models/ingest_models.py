"""
Ingestion Models
Uploads, the rows normalized from them, and the metrics derived from them
"""
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Boolean, Text, JSON, ForeignKey,
    Index, UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime
import enum
import uuid

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class DataSource(str, enum.Enum):
    CSV_UPLOAD = "CSV_UPLOAD"
    JIRA_API = "JIRA_API"
    NOTION_API = "NOTION_API"
    AWS_BILLING = "AWS_BILLING"
    MANUAL_ENTRY = "MANUAL_ENTRY"


class UploadStatus(str, enum.Enum):
    CREATED = "created"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class MetricType(str, enum.Enum):
    COST = "COST"
    PRODUCTIVITY = "PRODUCTIVITY"
    USAGE = "USAGE"
    EFFICIENCY = "EFFICIENCY"


class Upload(Base):
    """One submitted file and its processing status"""
    __tablename__ = "uploads"

    id = Column(String(36), primary_key=True, default=_uuid)
    file_name = Column(String(255), nullable=False, unique=True)  # generated storage name
    original_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    data_source = Column(SQLEnum(DataSource), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    uploaded_by = Column(String(64), nullable=False, index=True)

    status = Column(SQLEnum(UploadStatus), nullable=False, default=UploadStatus.CREATED)
    is_processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime)
    error_log = Column(Text)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    records = relationship(
        "DataRecord",
        back_populates="upload",
        order_by="DataRecord.record_index",
    )


class DataRecord(Base):
    """One normalized row of an upload"""
    __tablename__ = "data_records"
    __table_args__ = (
        Index("idx_data_records_upload_index", "upload_id", "record_index"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    upload_id = Column(String(36), ForeignKey("uploads.id"), nullable=False, index=True)
    record_index = Column(Integer, nullable=False)

    raw_data = Column(JSON, nullable=False)
    processed_data = Column(JSON, nullable=False)

    amount = Column(Float)
    date = Column(DateTime)
    category = Column(String(100), nullable=False)
    description = Column(Text)
    tags = Column(JSON, nullable=False)  # ordered list, category first

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    upload = relationship("Upload", back_populates="records")


class Metric(Base):
    """Period/category scoped aggregate"""
    __tablename__ = "metrics"
    __table_args__ = (
        UniqueConstraint("name", "type", "period", "category", name="uq_metric_name_type_period_category"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(150), nullable=False)
    type = Column(SQLEnum(MetricType), nullable=False)
    value = Column(Float, nullable=False)
    unit = Column(String(32), nullable=False)
    period = Column(String(7), nullable=False, index=True)  # YYYY-MM
    category = Column(String(100), nullable=False, default="")
    meta_info = Column(JSON)  # Additional info (renamed from metadata - SQLAlchemy reserved)

    calculated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
