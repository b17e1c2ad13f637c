from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from loguru import logger
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from app.api.deps import Pipeline
from app.core.error_codes import ErrorCode
from app.core.errors import (
    ApiError,
    AuthError,
    B2Error,
    BucketNotFoundError,
    EmptyFileError,
    NetworkError,
    TicketAcquisitionError,
    UploadError,
)
from app.schemas.b2 import ActionRequest, FileExistsResponse, FileUrlResponse, UploadRequest
from app.services.b2 import B2UploadPipeline

router = APIRouter(prefix="/api/b2", tags=["b2"])

_ERROR_CODES: list[tuple[type[B2Error], str]] = [
    (EmptyFileError, ErrorCode.EMPTY_FILE),
    (AuthError, ErrorCode.B2_AUTH_FAILED),
    (BucketNotFoundError, ErrorCode.B2_BUCKET_NOT_FOUND),
    (TicketAcquisitionError, ErrorCode.B2_UPLOAD_URL_FAILED),
    (UploadError, ErrorCode.B2_UPLOAD_FAILED),
    (NetworkError, ErrorCode.B2_NETWORK_ERROR),
]


def to_api_error(exc: B2Error) -> ApiError:
    code = next((code for cls, code in _ERROR_CODES if isinstance(exc, cls)), ErrorCode.B2_UPLOAD_FAILED)
    status_code = 400 if isinstance(exc, EmptyFileError) else 500
    return ApiError(status_code=status_code, code=code, message=exc.message)


async def _handle_file_upload(request: Request, pipeline: B2UploadPipeline) -> dict[str, Any]:
    logger.info("Processing file upload request")
    form = await request.form()
    file = form.get("file")
    if not isinstance(file, UploadFile):
        raise ApiError(status_code=400, code=ErrorCode.NO_FILE, message="No file uploaded")

    content = await file.read()
    if not content:
        raise ApiError(status_code=400, code=ErrorCode.EMPTY_FILE, message="File is empty")

    upload_request = UploadRequest(
        content=content,
        original_name=file.filename or "",
        content_type=file.content_type,
    )
    try:
        outcome = await pipeline.upload_file(upload_request)
    except B2Error as exc:
        logger.warning("Upload of {} failed: {}", file.filename, exc.message)
        raise to_api_error(exc) from exc

    return outcome.model_dump(by_alias=True, exclude_none=True)


async def _handle_action(request: Request, pipeline: B2UploadPipeline) -> dict[str, Any]:
    try:
        payload = ActionRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as exc:
        raise ApiError(
            status_code=400,
            code=ErrorCode.INVALID_REQUEST,
            message="Request body must be a JSON object with an action",
        ) from exc

    try:
        if payload.action == "authenticate":
            session = await pipeline.authenticate()
            return session.model_dump(by_alias=True)
        if payload.action == "getUploadUrl":
            _, _, ticket = await pipeline.authorize_upload()
            return ticket.model_dump(by_alias=True, exclude_none=True)
    except B2Error as exc:
        logger.warning("B2 action {} failed: {}", payload.action, exc.message)
        raise to_api_error(exc) from exc

    raise ApiError(status_code=400, code=ErrorCode.INVALID_ACTION, message="Invalid action")


@router.post("", response_model=None)
async def b2_endpoint(request: Request, pipeline: Pipeline) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        return await _handle_file_upload(request, pipeline)
    return await _handle_action(request, pipeline)


@router.get("/files/{file_name}/url", response_model=FileUrlResponse)
async def get_file_url(file_name: str, pipeline: Pipeline) -> FileUrlResponse:
    try:
        session = await pipeline.authenticate()
    except B2Error as exc:
        raise to_api_error(exc) from exc

    url = pipeline.build_download_url(session, pipeline.credentials.bucket_name, file_name)
    return FileUrlResponse(file_url=url)


@router.get("/files/{file_name}/exists", response_model=FileExistsResponse)
async def check_file_exists(file_name: str, pipeline: Pipeline) -> FileExistsResponse:
    try:
        session = await pipeline.authenticate()
    except B2Error as exc:
        raise to_api_error(exc) from exc

    exists = await pipeline.check_exists(session, pipeline.credentials.bucket_name, file_name)
    return FileExistsResponse(file_name=file_name, exists=exists)
