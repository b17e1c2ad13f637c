import base64
import json
import os
from urllib.parse import unquote

import httpx
import pytest

from app.schemas.b2 import Credentials
from app.services.b2 import B2UploadPipeline


RUN_INTEGRATION = os.getenv("RUN_INTEGRATION") == "1"

AUTH_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
API_URL = "https://api001.backblazeb2.com"
DOWNLOAD_URL = "https://f001.backblazeb2.com"
UPLOAD_URL = "https://pod-000-1001-01.backblaze.com/b2api/v2/b2_upload_file/bkt-photos/c001_v0001001_t0001"

KEY_ID = "0014a2b3c4d5e6f0000000001"
KEY = "K001secretapplicationkey"
BUCKET = "photos"


class FakeB2:
    """In-memory stand-in for the B2 native API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.buckets = [
            {"bucketId": "bkt-archive", "bucketName": "archive"},
            {"bucketId": "bkt-photos", "bucketName": BUCKET},
            {"bucketId": "bkt-Photos-upper", "bucketName": "Photos"},
        ]
        self.stored: dict[str, bytes] = {}
        self.auth_status = 200
        self.list_status = 200
        self.ticket_status = 200
        self.upload_status = 200
        self.upload_error_body: bytes = b""
        self.fail_transport = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)

        url = str(request.url)
        if url == AUTH_URL:
            return self._authorize(request)
        if url == f"{API_URL}/b2api/v2/b2_list_buckets":
            return self._list_buckets(request)
        if url == f"{API_URL}/b2api/v2/b2_get_upload_url":
            return self._get_upload_url(request)
        if url == UPLOAD_URL:
            return self._upload(request)
        if url.startswith(f"{DOWNLOAD_URL}/file/") and request.method == "HEAD":
            return self._head(request)
        return httpx.Response(404, json={"status": 404, "code": "not_found", "message": url})

    def _authorize(self, request: httpx.Request) -> httpx.Response:
        expected = "Basic " + base64.b64encode(f"{KEY_ID}:{KEY}".encode()).decode()
        if self.auth_status != 200 or request.headers.get("Authorization") != expected:
            status = self.auth_status if self.auth_status != 200 else 401
            return httpx.Response(status, json={"status": status, "code": "unauthorized", "message": ""})
        return httpx.Response(
            200,
            json={
                "accountId": "4a2b3c4d5e6f",
                "apiUrl": API_URL,
                "authorizationToken": "4_session_token",
                "downloadUrl": DOWNLOAD_URL,
                "recommendedPartSize": 100000000,
            },
        )

    def _list_buckets(self, request: httpx.Request) -> httpx.Response:
        if self.list_status != 200:
            return httpx.Response(self.list_status, json={"code": "unauthorized"})
        assert request.headers["Authorization"] == "4_session_token"
        assert json.loads(request.content) == {"accountId": "4a2b3c4d5e6f"}
        return httpx.Response(200, json={"buckets": self.buckets})

    def _get_upload_url(self, request: httpx.Request) -> httpx.Response:
        if self.ticket_status != 200:
            return httpx.Response(self.ticket_status, json={"code": "service_unavailable"})
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "bucketId": body["bucketId"],
                "uploadUrl": UPLOAD_URL,
                "authorizationToken": "4_upload_token",
            },
        )

    def _upload(self, request: httpx.Request) -> httpx.Response:
        if self.upload_status != 200:
            return httpx.Response(self.upload_status, content=self.upload_error_body)
        file_name = unquote(request.headers["X-Bz-File-Name"])
        self.stored[file_name] = request.content
        return httpx.Response(
            200,
            json={
                "accountId": "4a2b3c4d5e6f",
                "bucketId": "bkt-photos",
                "contentLength": len(request.content),
                "contentSha1": request.headers["X-Bz-Content-Sha1"],
                "contentType": request.headers["Content-Type"],
                "fileId": "4_z_file_id",
                "fileName": file_name,
                "uploadTimestamp": 1700000000000,
            },
        )

    def _head(self, request: httpx.Request) -> httpx.Response:
        file_name = unquote(request.url.path.rsplit("/", 1)[-1])
        return httpx.Response(200 if file_name in self.stored else 404)


@pytest.fixture
def fake_b2() -> FakeB2:
    return FakeB2()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(application_key_id=KEY_ID, application_key=KEY, bucket_name=BUCKET)


@pytest.fixture
def pipeline(fake_b2: FakeB2, credentials: Credentials) -> B2UploadPipeline:
    return B2UploadPipeline(credentials, auth_url=AUTH_URL, transport=fake_b2.transport())


@pytest.fixture(scope="session")
def integration_enabled() -> bool:
    return RUN_INTEGRATION
