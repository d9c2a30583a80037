from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from shared.logging.config import bind_request_context, clear_request_context
from shared.schemas.base import ErrorResponse, HealthResponse
from upload_service.api.dependencies import get_upload_service
from upload_service.domain.exceptions import (
    DownloadFailedError,
    InvalidMimeTypeError,
    SizeExceededError,
    StorageError,
    UnknownCategoryError,
    UploadError,
)
from upload_service.domain.models import (
    FileRecord,
    FileRecordResponse,
    FileTypeCategoryResponse,
    LocalFile,
    OwnerRef,
    UrlUploadRequest,
)
from upload_service.domain.services import UploadService
from upload_service.domain.staging import staged_file

logger = structlog.get_logger(__name__)
router = APIRouter()

_STATUS_BY_ERROR: list[tuple[type[UploadError], int]] = [
    (UnknownCategoryError, 404),
    (SizeExceededError, 413),
    (InvalidMimeTypeError, 415),
    (DownloadFailedError, 502),
    (StorageError, 500),
]


def _status_for(exc: UploadError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 422


def _error_response(exc: UploadError, correlation_id: str) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("upload.request.failed", error_code=exc.error_code, error=str(exc))
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _owner(owner_type: str | None, owner_id: str | None) -> OwnerRef | None:
    if owner_type and owner_id:
        return OwnerRef(owner_type=owner_type, owner_id=owner_id)
    if owner_type or owner_id:
        raise HTTPException(status_code=422, detail="owner_type and owner_id must be given together")
    return None


def _to_response(service: UploadService, record: FileRecord) -> FileRecordResponse:
    return FileRecordResponse(**record.model_dump(), url=service.url_for(record))


def _correlation_id(request: Request) -> str:
    return request.headers.get("X-Correlation-ID", str(uuid.uuid4()))


@router.get("/health", response_model=HealthResponse, tags=["ops"])
async def health(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    return HealthResponse(
        status="ok",
        service=settings.service_name,
        version=settings.app_version,
    )


@router.post(
    "/files",
    response_model=FileRecordResponse,
    status_code=201,
    responses={413: {"model": ErrorResponse}, 415: {"model": ErrorResponse}},
    tags=["files"],
)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    file_type: str = Form("any"),
    max_size: int | None = Form(None),
    folder: str | None = Form(None),
    owner_type: str | None = Form(None),
    owner_id: str | None = Form(None),
    service: UploadService = Depends(get_upload_service),
):
    correlation_id = _correlation_id(request)
    owner = _owner(owner_type, owner_id)
    bind_request_context(correlation_id=correlation_id, owner_type=owner_type, owner_id=owner_id)
    logger.info("upload.request.received", filename=file.filename, file_type=file_type)

    content = await file.read()
    original_name = file.filename or "unknown"
    try:
        async with staged_file(content) as path:
            source = LocalFile(
                path=path,
                declared_name=original_name,
                declared_mime_type=file.content_type,
                size=len(content),
            )
            record = await service.upload(source, file_type, max_size, folder, owner)
    except UploadError as exc:
        return _error_response(exc, correlation_id)
    finally:
        clear_request_context()

    return _to_response(service, record)


@router.post(
    "/files/from-url",
    response_model=FileRecordResponse,
    status_code=201,
    responses={413: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    tags=["files"],
)
async def upload_file_from_url(
    request: Request,
    body: UrlUploadRequest,
    service: UploadService = Depends(get_upload_service),
):
    correlation_id = _correlation_id(request)
    owner = _owner(body.owner_type, body.owner_id)
    bind_request_context(correlation_id=correlation_id, owner_type=body.owner_type, owner_id=body.owner_id)
    logger.info("upload.url.request.received", source_url=body.url, file_type=body.file_type)

    try:
        record = await service.upload_from_url(
            body.url, body.file_type, body.max_size, body.folder, owner
        )
    except UploadError as exc:
        return _error_response(exc, correlation_id)
    finally:
        clear_request_context()

    return _to_response(service, record)


@router.get("/files/{file_id}", response_model=FileRecordResponse, tags=["files"])
async def get_file(
    file_id: int,
    service: UploadService = Depends(get_upload_service),
) -> FileRecordResponse:
    record = await service.repository.get_by_id(file_id)
    if record is None:
        raise HTTPException(status_code=404, detail="File not found")
    return _to_response(service, record)


@router.delete("/files/{file_id}", status_code=204, tags=["files"])
async def delete_file(
    file_id: int,
    service: UploadService = Depends(get_upload_service),
) -> None:
    record = await service.repository.get_by_id(file_id)
    if record is None:
        raise HTTPException(status_code=404, detail="File not found")
    if not await service.delete(record):
        raise HTTPException(status_code=500, detail="STORAGE_ERROR")


@router.get("/file-types/{name}", response_model=FileTypeCategoryResponse, tags=["files"])
async def get_file_type(
    name: str,
    request: Request,
    service: UploadService = Depends(get_upload_service),
):
    try:
        category = service.get_category_config(name)
    except UploadError as exc:
        return _error_response(exc, _correlation_id(request))

    return FileTypeCategoryResponse(
        name=category.name,
        mimes=list(category.mimes),
        max_size=category.max_size,
        mime_types=sorted(service.mime_table.mimes_for(category.mimes)),
    )
