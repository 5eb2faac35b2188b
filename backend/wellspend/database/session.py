from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wellspend.config import Settings
from wellspend.models.ingest_models import Base


def build_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine described by settings.database_url"""
    url = settings.database_url
    kwargs = {"echo": settings.database_echo}
    if url.startswith("sqlite"):
        # Requests are served from a worker thread pool
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


def init_db(engine: Engine) -> None:
    """Create the upload, record and metric tables"""
    Base.metadata.create_all(engine)


def get_db(request: Request) -> Iterator[Session]:
    """Dependency for getting a request scoped database session"""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
