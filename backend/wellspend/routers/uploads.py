from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from anyio import to_thread
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from wellspend.core.errors import InfrastructureError, ValidationError
from wellspend.database.session import get_db
from wellspend.routers._upload_utils import declared_mime, read_upload
from wellspend.routers.auth import get_current_user, UserDep
from wellspend.schemas.upload import DataRecordOut, UploadAccepted, UploadOut, UploadPartial
from wellspend.services.ingest_gate import UploadRequest
from wellspend.services.ingest_pipeline import IngestPipeline
from wellspend.services.record_store import UploadRepository

router = APIRouter()
logger = logging.getLogger(__name__)


def get_pipeline(request: Request) -> IngestPipeline:
    return request.app.state.pipeline


@router.post("", response_model=UploadAccepted, responses={206: {"model": UploadPartial}})
async def upload_file(
    file: Optional[UploadFile] = File(None),
    category: Optional[str] = Form(None),
    data_source: Optional[str] = Form(None, alias="dataSource"),
    user: UserDep = Depends(get_current_user),
    db: Session = Depends(get_db),
    pipeline: IngestPipeline = Depends(get_pipeline),
):
    """
    Upload a CSV or JSON export for ingestion

    200 when every row was stored, 206 when the file was kept but processing
    failed (see errorLog on the upload), 400 when the request is rejected.
    """
    content = await read_upload(file, pipeline.settings.max_file_size)
    upload_request = UploadRequest(
        content=content,
        original_name=file.filename if file else None,
        mime_type=declared_mime(file),
        category=category,
        data_source=data_source,
        uploaded_by=user.user_id,
    )

    try:
        outcome = await to_thread.run_sync(pipeline.ingest, db, upload_request)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except InfrastructureError as e:
        logger.error(f"Upload rejected by storage failure: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")

    if not outcome.ok:
        partial = UploadPartial(
            message="File uploaded but processing failed",
            upload_id=outcome.upload_id,
            error=outcome.error,
        )
        return JSONResponse(status_code=status.HTTP_206_PARTIAL_CONTENT, content=partial.model_dump(by_alias=True))

    return UploadAccepted(
        message="File uploaded and processed successfully",
        upload_id=outcome.upload_id,
        records_processed=outcome.records_processed,
    )


@router.get("", response_model=List[UploadOut])
def list_uploads(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: UserDep = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Uploads of the calling user, newest first"""
    return UploadRepository(db).list_uploads_for_user(user.user_id, limit=limit, offset=offset)


@router.get("/{upload_id}", response_model=UploadOut)
def get_upload(
    upload_id: str,
    user: UserDep = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Status of one upload, including errorLog when processing failed"""
    upload = UploadRepository(db).get_upload_for_user(upload_id, user.user_id)
    if not upload:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")
    return upload


@router.get("/{upload_id}/records", response_model=List[DataRecordOut])
def list_upload_records(
    upload_id: str,
    limit: int = Query(500, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    user: UserDep = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Normalized records of an upload in recordIndex order"""
    repo = UploadRepository(db)
    if not repo.get_upload_for_user(upload_id, user.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")
    return repo.list_records(upload_id, limit=limit, offset=offset)
