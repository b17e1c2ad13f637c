"""
Backblaze B2 upload pipeline.

One upload is a strictly ordered chain of dependent calls:
authorize account -> list buckets -> get upload URL -> upload bytes.
Every call opens and closes its own HTTP client, and nothing is cached
between runs: each run re-authenticates.
"""

from __future__ import annotations

import base64
import hashlib
import time
from collections.abc import AsyncIterator, Callable
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from app.core.errors import (
    AuthError,
    BucketNotFoundError,
    EmptyFileError,
    NetworkError,
    TicketAcquisitionError,
    UploadError,
)
from app.schemas.b2 import (
    AuthSession,
    BucketRef,
    Credentials,
    StoredFile,
    UploadOutcome,
    UploadRequest,
    UploadTicket,
)

DEFAULT_AUTH_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
DEFAULT_INFO_AUTHOR = "B2UploadService"
DEFAULT_EXTENSION = "jpg"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

UPLOAD_CHUNK_SIZE = 64 * 1024
ERROR_EXCERPT_LENGTH = 200

# Progress milestones reported to on_progress, in percent.
PROGRESS_AUTHORIZED = 10
PROGRESS_TRANSFERRED = 95
PROGRESS_DONE = 100

ProgressCallback = Callable[[int], None]


def sha1_hex(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


def b2_url_encode(value: str) -> str:
    """Percent-encode a file name for the X-Bz-File-Name header and download URLs."""
    return quote(value.encode("utf-8"), safe="/")


def extension_of(original_name: str, default: str = DEFAULT_EXTENSION) -> str:
    _, sep, ext = (original_name or "").rpartition(".")
    if not sep or not ext:
        return default
    return ext


def build_stored_file_name(original_name: str, timestamp_ms: int) -> str:
    return f"file_{timestamp_ms}.{extension_of(original_name)}"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _basic_auth(key_id: str, key: str) -> str:
    token = base64.b64encode(f"{key_id}:{key}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _describe_upload_failure(response: httpx.Response) -> str:
    message = f"B2 upload failed: {response.status_code} {response.reason_phrase}"
    text = response.text

    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and (data.get("message") or data.get("code")):
        if data.get("message"):
            message += f" - {data['message']}"
        if data.get("code"):
            message += f" (code: {data['code']})"
    elif text:
        message += f" - {text[:ERROR_EXCERPT_LENGTH]}"
    return message


class B2UploadPipeline:
    """Authenticate, resolve a bucket, acquire an upload ticket and upload one file."""

    def __init__(
        self,
        credentials: Credentials,
        *,
        auth_url: str = DEFAULT_AUTH_URL,
        info_author: str = DEFAULT_INFO_AUTHOR,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.credentials = credentials
        self.auth_url = auth_url
        self.info_author = info_author
        self._transport = transport
        self._clock = clock

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                return await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

    async def authenticate(self) -> AuthSession:
        c = self.credentials
        response = await self._request(
            "GET",
            self.auth_url,
            headers={"Authorization": _basic_auth(c.application_key_id, c.application_key)},
        )
        if not _is_success(response):
            logger.warning("B2 authorization rejected: {} {}", response.status_code, response.reason_phrase)
            raise AuthError(
                f"Authentication failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            session = AuthSession.model_validate(response.json())
        except ValueError as exc:
            raise AuthError("Invalid authorization response from B2", status_code=response.status_code) from exc

        logger.info("B2 account {} authorized", session.account_id)
        return session

    async def resolve_bucket(self, session: AuthSession, bucket_name: str | None = None) -> BucketRef:
        name = bucket_name if bucket_name is not None else self.credentials.bucket_name
        response = await self._request(
            "POST",
            f"{session.api_url}/b2api/v2/b2_list_buckets",
            headers={"Authorization": session.authorization_token},
            json={"accountId": session.account_id},
        )
        if not _is_success(response):
            raise AuthError(
                f"Failed to list buckets: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            buckets = response.json().get("buckets") or []
        except (ValueError, AttributeError) as exc:
            raise AuthError("Invalid bucket listing from B2", status_code=response.status_code) from exc

        for entry in buckets:
            if isinstance(entry, dict) and entry.get("bucketName") == name:
                try:
                    bucket = BucketRef.model_validate(entry)
                except ValueError as exc:
                    raise AuthError(f'Malformed entry for bucket "{name}"', status_code=response.status_code) from exc
                logger.debug("Resolved bucket {} -> {}", name, bucket.bucket_id)
                return bucket

        raise BucketNotFoundError(name)

    async def acquire_upload_ticket(self, session: AuthSession, bucket: BucketRef) -> UploadTicket:
        response = await self._request(
            "POST",
            f"{session.api_url}/b2api/v2/b2_get_upload_url",
            headers={"Authorization": session.authorization_token},
            json={"bucketId": bucket.bucket_id},
        )
        if not _is_success(response):
            raise TicketAcquisitionError(
                f"Failed to get upload URL: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            return UploadTicket.model_validate(response.json())
        except ValueError as exc:
            raise TicketAcquisitionError(
                "Invalid upload URL response from B2", status_code=response.status_code
            ) from exc

    async def upload(
        self,
        session: AuthSession,
        bucket: BucketRef,
        ticket: UploadTicket,
        request: UploadRequest,
        on_progress: ProgressCallback | None = None,
    ) -> UploadOutcome:
        """
        Send the file bytes to the ticket's upload URL. Exactly one attempt is made.
        Raises EmptyFileError before touching the network when there is nothing to send.
        """
        content = request.content
        if not content:
            raise EmptyFileError()

        file_name = build_stored_file_name(request.original_name, self._clock())
        headers = {
            "Authorization": ticket.authorization_token,
            "X-Bz-File-Name": b2_url_encode(file_name),
            "Content-Type": request.content_type or DEFAULT_CONTENT_TYPE,
            "Content-Length": str(len(content)),
            "X-Bz-Content-Sha1": sha1_hex(content),
            "X-Bz-Info-Author": self.info_author,
        }
        logger.info("Uploading {} ({} bytes) to bucket {}", file_name, len(content), bucket.bucket_name)

        body: bytes | AsyncIterator[bytes] = content
        if on_progress is not None:
            body = self._stream_with_progress(content, on_progress)

        response = await self._request("POST", ticket.upload_url, headers=headers, content=body)
        if not _is_success(response):
            message = _describe_upload_failure(response)
            logger.warning(message)
            raise UploadError(message, status_code=response.status_code)

        try:
            stored = StoredFile.model_validate(response.json())
        except ValueError as exc:
            raise UploadError("Invalid response from server", status_code=response.status_code) from exc

        if on_progress is not None:
            on_progress(PROGRESS_DONE)

        return UploadOutcome(
            success=True,
            file_name=stored.file_name,
            file_url=self.build_download_url(session, bucket.bucket_name, stored.file_name),
        )

    async def _stream_with_progress(self, content: bytes, on_progress: ProgressCallback) -> AsyncIterator[bytes]:
        total = len(content)
        span = PROGRESS_TRANSFERRED - PROGRESS_AUTHORIZED
        for offset in range(0, total, UPLOAD_CHUNK_SIZE):
            chunk = content[offset : offset + UPLOAD_CHUNK_SIZE]
            yield chunk
            sent = offset + len(chunk)
            on_progress(PROGRESS_AUTHORIZED + round(sent / total * span))

    def build_download_url(self, session: AuthSession, bucket_name: str, file_name: str) -> str:
        return f"{session.download_url}/file/{bucket_name}/{b2_url_encode(file_name)}"

    async def check_exists(self, session: AuthSession, bucket_name: str, file_name: str) -> bool:
        url = self.build_download_url(session, bucket_name, file_name)
        try:
            response = await self._request("HEAD", url, headers={"Authorization": session.authorization_token})
        except Exception as exc:  # noqa: BLE001
            logger.debug("Existence check for {} failed: {}", url, exc)
            return False
        return _is_success(response)

    async def authorize_upload(self) -> tuple[AuthSession, BucketRef, UploadTicket]:
        session = await self.authenticate()
        bucket = await self.resolve_bucket(session)
        ticket = await self.acquire_upload_ticket(session, bucket)
        return session, bucket, ticket

    async def upload_file(self, request: UploadRequest, on_progress: ProgressCallback | None = None) -> UploadOutcome:
        """Run the whole chain for one file. Failures propagate as B2Error subclasses."""
        if not request.content:
            raise EmptyFileError()

        session, bucket, ticket = await self.authorize_upload()
        if on_progress is not None:
            on_progress(PROGRESS_AUTHORIZED)

        return await self.upload(session, bucket, ticket, request, on_progress=on_progress)
