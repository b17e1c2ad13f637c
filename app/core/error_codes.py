class ErrorCode:
    SERVER_MISCONFIGURED = "SERVER_MISCONFIGURED"
    NO_FILE = "NO_FILE"
    EMPTY_FILE = "EMPTY_FILE"
    INVALID_ACTION = "INVALID_ACTION"
    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_MULTIPART = "NOT_MULTIPART"
    B2_AUTH_FAILED = "B2_AUTH_FAILED"
    B2_BUCKET_NOT_FOUND = "B2_BUCKET_NOT_FOUND"
    B2_UPLOAD_URL_FAILED = "B2_UPLOAD_URL_FAILED"
    B2_UPLOAD_FAILED = "B2_UPLOAD_FAILED"
    B2_NETWORK_ERROR = "B2_NETWORK_ERROR"
