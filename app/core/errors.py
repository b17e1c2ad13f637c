class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = str(code)
        self.message = message
        super().__init__(message)


class B2Error(Exception):
    """Base class for failures of the B2 upload pipeline."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthError(B2Error):
    """Account authorization or bucket listing was rejected."""


class BucketNotFoundError(B2Error):
    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name
        super().__init__(f'Bucket "{bucket_name}" not found')


class TicketAcquisitionError(B2Error):
    """b2_get_upload_url returned a non-2xx status."""


class EmptyFileError(B2Error):
    def __init__(self, message: str = "File is empty or invalid"):
        super().__init__(message)


class UploadError(B2Error):
    """The upload URL rejected the file payload."""


class NetworkError(B2Error):
    """Transport-level failure, as opposed to a non-2xx response."""
