"""
Tests for the platform API client

The requests session is a Mock; presigned PUTs patch ``requests.put``.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from kusari_cli.upload.api_client import PlatformAPIClient
from kusari_cli.upload.exceptions import APIConnectionError, AuthenticationError, ConfigurationError, UploadError
from kusari_cli.upload.models import JobState, ScanType, SoftwareIds

PLATFORM_URL = "https://platform.example.com/"
TENANT_ENDPOINT = "https://demo.api.us.kusari.cloud"
BUNDLE_PRESIGN_URL = "https://platform.example.com/inspector/presign/bundle-upload"
DOCUMENT_PRESIGN_URL = "https://demo.api.us.kusari.cloud/ingestion/presign"
PRESIGNED = "https://bucket.example.com/workspace/ws-1/user/human/u-1/diff/blob/123"


def mock_response(status_code=200, json_data=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


def mock_session():
    session = Mock()
    session.headers = {}
    return session


class TestPresign:
    """Presign requests and their status code policy"""

    def setup_method(self):
        self.session = mock_session()
        self.client = PlatformAPIClient(
            access_token="test-token",
            platform_url=PLATFORM_URL,
            tenant_endpoint=TENANT_ENDPOINT,
            workspace_id="ws-1",
            session=self.session,
        )

    def test_session_headers(self):
        assert self.session.headers["Authorization"] == "Bearer test-token"
        assert self.session.headers["Accept"] == "application/json"

    def test_presign_bundle(self):
        self.session.post.return_value = mock_response(json_data={"presignedUrl": PRESIGNED})

        url = self.client.presign_bundle("kusari-inspector.tar.bz2", ScanType.FULL, 2048)

        assert url == PRESIGNED
        args, kwargs = self.session.post.call_args
        assert args[0] == BUNDLE_PRESIGN_URL
        assert kwargs["headers"] == {"X-Kusari-Workspace": "ws-1"}
        assert kwargs["json"] == {
            "filename": "kusari-inspector.tar.bz2",
            "type": "full",
            "file_size_bytes": 2048,
        }

    def test_presign_document_has_no_workspace_header(self):
        self.session.post.return_value = mock_response(json_data={"presignedUrl": "https://blob.example.com/1"})

        assert self.client.presign_document("sha256_abc") == "https://blob.example.com/1"

        args, kwargs = self.session.post.call_args
        assert args[0] == DOCUMENT_PRESIGN_URL
        assert kwargs["headers"] == {}
        assert kwargs["json"] == {"filename": "sha256_abc"}

    def test_unauthorized(self):
        self.session.post.return_value = mock_response(401)
        with pytest.raises(AuthenticationError, match="unauthorized request"):
            self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1)

    def test_forbidden_suggests_login(self):
        self.session.post.return_value = mock_response(403)
        with pytest.raises(AuthenticationError, match="kusari auth login") as exc_info:
            self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1)
        assert exc_info.value.status_code == 403

    def test_bad_request_includes_body(self):
        self.session.post.return_value = mock_response(400, text="file too large")
        with pytest.raises(APIConnectionError, match="file too large"):
            self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1)

    def test_unexpected_status(self):
        self.session.post.return_value = mock_response(502, text="bad gateway")
        with pytest.raises(APIConnectionError, match="unexpected status code: 502"):
            self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1)

    def test_missing_url_in_response(self):
        self.session.post.return_value = mock_response(json_data={})
        with pytest.raises(APIConnectionError):
            self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1)

    @patch("time.sleep")
    def test_transport_errors_are_retried(self, mock_sleep):
        self.session.post.side_effect = [
            requests.exceptions.ConnectionError("connection reset"),
            mock_response(json_data={"presignedUrl": PRESIGNED}),
        ]

        assert self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1) == PRESIGNED
        assert self.session.post.call_count == 2

    @patch("time.sleep")
    def test_transport_error_after_retries(self, mock_sleep):
        self.session.post.side_effect = requests.exceptions.ConnectionError("connection refused")

        with pytest.raises(APIConnectionError, match="GetPresignedUrl request failed"):
            self.client.presign_bundle("b.tar.bz2", ScanType.DIFF, 1)
        assert self.session.post.call_count == 3

    def test_tenant_endpoint_required(self):
        client = PlatformAPIClient(access_token="t", platform_url=PLATFORM_URL, session=mock_session())
        with pytest.raises(ConfigurationError, match="tenant endpoint"):
            client.presign_document("sha256_abc")


class TestPutBlob:

    def setup_method(self):
        self.client = PlatformAPIClient(access_token="test-token", platform_url=PLATFORM_URL, session=mock_session())

    @patch("kusari_cli.upload.api_client.requests.put")
    def test_put_sends_content_type_without_bearer(self, mock_put):
        mock_put.return_value = mock_response(200)

        self.client.put_blob("https://blob.example.com/upload", b"payload", "application/x-bzip2")

        args, kwargs = mock_put.call_args
        assert args[0] == "https://blob.example.com/upload"
        assert kwargs["data"] == b"payload"
        assert kwargs["headers"] == {"Content-Type": "application/x-bzip2"}

    @patch("kusari_cli.upload.api_client.requests.put")
    def test_no_content_is_accepted(self, mock_put):
        mock_put.return_value = mock_response(204)
        self.client.put_blob("https://blob.example.com/upload", b"payload", "multipart/form-data")

    @patch("kusari_cli.upload.api_client.requests.put")
    def test_empty_data_is_a_noop(self, mock_put):
        self.client.put_blob("https://blob.example.com/upload", b"", "application/x-bzip2")
        mock_put.assert_not_called()

    @patch("kusari_cli.upload.api_client.requests.put")
    def test_failure(self, mock_put):
        mock_put.return_value = mock_response(403, text="expired")
        with pytest.raises(UploadError, match="403") as exc_info:
            self.client.put_blob("https://blob.example.com/upload", b"payload", "application/x-bzip2")
        assert exc_info.value.status_code == 403

    @patch("kusari_cli.upload.api_client.requests.put")
    def test_transport_error(self, mock_put):
        mock_put.side_effect = requests.exceptions.Timeout("timed out")
        with pytest.raises(UploadError, match="Upload failed"):
            self.client.put_blob("https://blob.example.com/upload", b"payload", "application/x-bzip2")


class TestStatusLookups:

    def setup_method(self):
        self.session = mock_session()
        self.client = PlatformAPIClient(
            access_token="test-token",
            platform_url=PLATFORM_URL,
            tenant_endpoint=TENANT_ENDPOINT,
            workspace_id="ws-1",
            session=self.session,
        )

    def test_scan_results(self):
        self.session.get.return_value = mock_response(json_data=[{
            "statusMeta": {"status": "success", "details": "", "updatedAt": 1700000000},
            "analysis": {"proceed": True, "results": "# All good"},
        }])

        records = self.client.get_scan_results("cli-user%7Cabc%7C123")

        assert len(records) == 1
        assert records[0].state is JobState.SUCCESS
        assert records[0].analysis.results == "# All good"
        args, kwargs = self.session.get.call_args
        assert args[0] == "https://platform.example.com/inspector/result/user?sortKey=cli-user%7Cabc%7C123"
        assert kwargs["headers"] == {"X-Kusari-Workspace": "ws-1"}

    def test_scan_results_not_found(self):
        self.session.get.return_value = mock_response(404)
        assert self.client.get_scan_results("key") == []

    def test_scan_results_unauthorized(self):
        self.session.get.return_value = mock_response(401)
        with pytest.raises(AuthenticationError):
            self.client.get_scan_results("key")

    def test_scan_results_transport_error(self):
        self.session.get.side_effect = requests.exceptions.ConnectionError("connection refused")
        with pytest.raises(APIConnectionError, match="inspector/result/user"):
            self.client.get_scan_results("key")

    def test_ingestion_status_first_item(self):
        self.session.get.return_value = mock_response(json_data=[
            {"document_name": "app.cdx.json", "statusMeta": {"status": "processing", "user_message": "working"}},
            {"document_name": "app.cdx.json", "statusMeta": {"status": "started"}},
        ])

        status = self.client.get_ingestion_status("demo", "sha256_abc")

        assert status.status == "processing"
        assert status.user_message == "working"
        assert status.document_name == "app.cdx.json"
        url = self.session.get.call_args[0][0]
        assert url.startswith("https://platform.example.com/ingestion/status?")
        assert "tenantName=demo" in url
        assert "docRef=sha256_abc" in url

    def test_ingestion_status_not_ready(self):
        self.session.get.return_value = mock_response(404)
        assert self.client.get_ingestion_status("demo", "sha256_abc") is None

    def test_ingestion_status_forbidden(self):
        self.session.get.return_value = mock_response(403)
        with pytest.raises(AuthenticationError):
            self.client.get_ingestion_status("demo", "sha256_abc")

    def test_lookup_software_ids(self):
        self.session.get.return_value = mock_response(json_data={"software_id": 7, "sbom_id": 11})

        assert self.client.lookup_software_ids("my-app", "pkg:app") == SoftwareIds(software_id=7, sbom_id=11)
        url = self.session.get.call_args[0][0]
        assert url.startswith("https://demo.api.us.kusari.cloud/pico/v1/software/id?")
        assert "software_name=my-app" in url

    def test_lookup_software_ids_not_ingested(self):
        self.session.get.return_value = mock_response(404)
        assert self.client.lookup_software_ids("my-app", "") is None

    def test_lookup_software_ids_error(self):
        self.session.get.return_value = mock_response(500)
        with pytest.raises(APIConnectionError, match="500"):
            self.client.lookup_software_ids("my-app", "")

    def test_check_blocked_packages(self):
        self.session.get.return_value = mock_response(
            json_data={"blocked": True, "blocked_packages": ["pkg:npm/evil@1.0.0"]}
        )

        blocked, packages = self.client.check_blocked_packages(SoftwareIds(software_id=7, sbom_id=11))

        assert blocked is True
        assert packages == ["pkg:npm/evil@1.0.0"]
        assert self.session.get.call_args[0][0] == (
            "https://demo.api.us.kusari.cloud/pico/v1/packages/blocked/check/software/7/sbom/11"
        )
