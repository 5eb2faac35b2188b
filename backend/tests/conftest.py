"""
Pytest configuration and fixtures for the ingestion backend

Every test gets an in-memory SQLite database, an upload directory under
tmp_path and a fixed clock (2024-03-15 12:00 UTC).
"""
from datetime import datetime
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from wellspend.config import Settings
from wellspend.database.session import build_engine, build_session_factory, init_db
from wellspend.main import create_app
from wellspend.models.ingest_models import DataSource, Upload, UploadStatus
from wellspend.routers.auth import UserDep, get_current_user
from wellspend.services.blob_store import LocalBlobStore
from wellspend.services.ingest_pipeline import IngestPipeline

FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0)
TEST_USER = UserDep(user_id="user-1", email="user@example.com")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        upload_dir=str(tmp_path / "uploads"),
        auth_disabled=False,
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def blob_store(settings) -> LocalBlobStore:
    return LocalBlobStore(settings.upload_dir)


@pytest.fixture
def session(settings) -> Generator[Session, None, None]:
    engine = build_engine(settings)
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def pipeline(settings, blob_store, clock) -> IngestPipeline:
    return IngestPipeline(settings, blob_store, clock=clock)


@pytest.fixture
def make_upload(session):
    """Persist an Upload row in the `created` state"""
    counter = {"n": 0}

    def _make(category: str = "cloud", mime_type: str = "text/csv",
              original_name: str = "costs.csv", data_source: DataSource = DataSource.CSV_UPLOAD) -> Upload:
        counter["n"] += 1
        upload = Upload(
            file_name=f"{counter['n']}-{original_name}",
            original_name=original_name,
            file_size=0,
            mime_type=mime_type,
            data_source=data_source,
            category=category,
            uploaded_by=TEST_USER.user_id,
            status=UploadStatus.CREATED,
            is_processed=False,
            created_at=FIXED_NOW,
        )
        session.add(upload)
        session.commit()
        return upload

    return _make


@pytest.fixture
def app(settings, pipeline):
    application = create_app(settings, pipeline)
    application.dependency_overrides[get_current_user] = lambda: TEST_USER
    return application


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def app_session(app) -> Generator[Session, None, None]:
    """Session on the application's own database, for asserting on API effects"""
    db = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
