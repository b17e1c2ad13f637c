from fastapi import APIRouter, Request
from loguru import logger
from starlette.datastructures import UploadFile

from app.core.error_codes import ErrorCode
from app.core.errors import ApiError
from app.schemas.b2 import DebugUploadResponse, ReceivedFileInfo

router = APIRouter(prefix="/api/test", tags=["debug"])


@router.post("", response_model=DebugUploadResponse)
async def inspect_upload(request: Request) -> DebugUploadResponse:
    """Echo what the server received in a multipart upload, without contacting B2."""
    content_type = request.headers.get("content-type", "")
    logger.debug("Request content-type: {}", content_type)
    if "multipart/form-data" not in content_type:
        raise ApiError(status_code=400, code=ErrorCode.NOT_MULTIPART, message="Not a multipart request")

    try:
        form = await request.form()
    except Exception as exc:  # noqa: BLE001
        raise ApiError(status_code=400, code=ErrorCode.INVALID_REQUEST, message="Failed to parse form data") from exc

    file = form.get("file")
    if isinstance(file, UploadFile):
        content = await file.read()
        info = ReceivedFileInfo(
            exists=True,
            name=file.filename or "",
            size=len(content),
            content_type=file.content_type or "",
        )
    else:
        info = ReceivedFileInfo(exists=False, name="n/a", size=0, content_type="n/a")

    logger.info("Received file: {}", info.model_dump())
    return DebugUploadResponse(success=True, message="File received", file_info=info)
