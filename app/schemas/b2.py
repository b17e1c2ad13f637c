from pydantic import BaseModel, ConfigDict, Field


class B2Model(BaseModel):
    """Provider payloads use camelCase; accept both spellings and ignore extras."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    application_key_id: str
    application_key: str
    bucket_name: str


class AuthSession(B2Model):
    account_id: str = Field(alias="accountId")
    api_url: str = Field(alias="apiUrl")
    authorization_token: str = Field(alias="authorizationToken")
    download_url: str = Field(alias="downloadUrl")


class BucketRef(B2Model):
    bucket_id: str = Field(alias="bucketId")
    bucket_name: str = Field(alias="bucketName")


class UploadTicket(B2Model):
    upload_url: str = Field(alias="uploadUrl")
    authorization_token: str = Field(alias="authorizationToken")
    bucket_id: str | None = Field(default=None, alias="bucketId")


class StoredFile(B2Model):
    file_name: str = Field(alias="fileName")
    file_id: str | None = Field(default=None, alias="fileId")
    bucket_id: str | None = Field(default=None, alias="bucketId")
    content_length: int | None = Field(default=None, alias="contentLength")
    content_sha1: str | None = Field(default=None, alias="contentSha1")
    content_type: str | None = Field(default=None, alias="contentType")
    upload_timestamp: int | None = Field(default=None, alias="uploadTimestamp")


class UploadRequest(BaseModel):
    content: bytes
    original_name: str = ""
    content_type: str | None = None


class UploadOutcome(B2Model):
    success: bool
    file_name: str | None = Field(default=None, alias="fileName")
    file_url: str | None = Field(default=None, alias="fileUrl")
    error: str | None = None


class ActionRequest(BaseModel):
    action: str = ""


class FileUrlResponse(B2Model):
    file_url: str = Field(alias="fileUrl")


class FileExistsResponse(B2Model):
    file_name: str = Field(alias="fileName")
    exists: bool


class ReceivedFileInfo(B2Model):
    exists: bool
    name: str
    size: int
    content_type: str = Field(alias="contentType")


class DebugUploadResponse(B2Model):
    success: bool
    message: str
    file_info: ReceivedFileInfo = Field(alias="fileInfo")
