from typing import Annotated

from fastapi import Depends

from app.core.config import Settings, get_settings
from app.core.error_codes import ErrorCode
from app.core.errors import ApiError
from app.schemas.b2 import Credentials
from app.services.b2 import B2UploadPipeline


def get_pipeline(settings: Settings = Depends(get_settings)) -> B2UploadPipeline:
    """Build a fresh pipeline for each request; nothing is shared between requests."""
    if not settings.b2_configured():
        raise ApiError(
            status_code=503,
            code=ErrorCode.SERVER_MISCONFIGURED,
            message="Missing required B2 configuration parameters",
        )

    credentials = Credentials(
        application_key_id=settings.b2_application_key_id,
        application_key=settings.b2_application_key,
        bucket_name=settings.b2_bucket_name,
    )
    return B2UploadPipeline(
        credentials,
        auth_url=settings.b2_auth_url,
        info_author=settings.b2_info_author,
    )


Pipeline = Annotated[B2UploadPipeline, Depends(get_pipeline)]
