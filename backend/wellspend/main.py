from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging
import uvicorn

from wellspend.config import Settings, get_settings
from wellspend.database.session import build_engine, build_session_factory, init_db
from wellspend.routers import auth as auth_router
from wellspend.routers import metrics as metrics_router
from wellspend.routers import uploads as uploads_router
from wellspend.services.blob_store import LocalBlobStore
from wellspend.services.ingest_pipeline import IngestPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting WellSpend API...")

    init_db(app.state.engine)
    blob_store = app.state.pipeline.blob_store
    if isinstance(blob_store, LocalBlobStore):
        blob_store.ensure_root()
    logger.info(f"Database tables initialized; uploads stored in {settings.upload_dir}")
    yield
    app.state.engine.dispose()
    logger.info("Shutting down WellSpend API...")


def create_app(settings: Optional[Settings] = None, pipeline: Optional[IngestPipeline] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="WellSpend API",
        description="Cost and productivity analytics: file ingestion and derived metrics",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.pipeline = pipeline or IngestPipeline(settings, LocalBlobStore(settings.upload_dir))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    app.include_router(auth_router.router, prefix="/auth", tags=["Authentication"])
    app.include_router(uploads_router.router, prefix="/upload", tags=["Uploads"])
    app.include_router(metrics_router.router, prefix="/metrics", tags=["Metrics"])

    @app.get("/")
    async def root():
        return {"message": "WellSpend API is running", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


if __name__ == "__main__":
    uvicorn.run(
        "wellspend.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=get_settings().environment == "development"
    )
