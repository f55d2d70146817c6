"""
Kusari Platform API Client

Handles all HTTP interactions with the platform and tenant APIs:
presigned upload URLs, blob uploads, scan result and ingestion status
lookups, and the software/blocked-package queries.
"""

import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

import backoff
import requests

from kusari_cli.constants import WORKSPACE_HEADER
from kusari_cli.core.urls import UrlError, build_url

from .exceptions import APIConnectionError, AuthenticationError, ConfigurationError, UploadError
from .models import IngestionStatus, ScanStatusRecord, ScanType, SoftwareIds

logger = logging.getLogger(__name__)


class PlatformAPIClient:
    """Handles all API interactions with the Kusari platform"""

    def __init__(
        self,
        access_token: str,
        platform_url: str,
        tenant_endpoint: str = "",
        workspace_id: str = "",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.platform_url = platform_url
        self.tenant_endpoint = tenant_endpoint
        self.workspace_id = workspace_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        })

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.session.close()

    # Presigned URLs

    def presign_bundle(self, filename: str, scan_type: ScanType, size_bytes: int) -> str:
        """POST {platformUrl}/inspector/presign/bundle-upload"""
        endpoint = "inspector/presign/bundle-upload"
        payload = {
            "filename": filename,
            "type": scan_type.value,
            "file_size_bytes": size_bytes,
        }
        headers = {WORKSPACE_HEADER: self.workspace_id} if self.workspace_id else {}
        return self._presign(self._platform_url(endpoint), payload, endpoint, headers)

    def presign_document(self, doc_ref: str) -> str:
        """POST {tenantEndpoint}/ingestion/presign (no workspace header)"""
        endpoint = "ingestion/presign"
        return self._presign(self._tenant_url(endpoint), {"filename": doc_ref}, endpoint, {})

    def _presign(self, url: str, payload: dict, endpoint: str, headers: Dict[str, str]) -> str:
        logger.debug("POST %s", url)
        try:
            response = self._post_json(url, payload, headers)
        except requests.exceptions.RequestException as e:
            raise APIConnectionError(f"GetPresignedUrl request failed: {e}", endpoint=endpoint)

        if response.status_code == 401:
            raise AuthenticationError(
                "GetPresignedUrl failed with unauthorized request", status_code=401, endpoint=endpoint
            )
        if response.status_code == 403:
            raise AuthenticationError(
                "GetPresignedUrl failed with forbidden (403). Try `kusari auth login`", status_code=403, endpoint=endpoint
            )
        if response.status_code == 400:
            raise APIConnectionError(
                f"GetPresignedUrl failed with bad request (400): {response.text}",
                status_code=400,
                endpoint=endpoint,
                body=response.text,
            )
        if response.status_code != 200:
            raise APIConnectionError(
                f"GetPresignedUrl failed with unexpected status code: {response.status_code}",
                status_code=response.status_code,
                endpoint=endpoint,
                body=response.text,
            )

        try:
            presigned_url = response.json()["presignedUrl"]
        except (KeyError, TypeError, ValueError) as e:
            raise APIConnectionError(f"Failed to decode presign response: {e}", endpoint=endpoint)
        if not presigned_url:
            raise APIConnectionError("Presign response did not contain a URL", endpoint=endpoint)
        return presigned_url

    @backoff.on_exception(
        backoff.expo,
        requests.exceptions.RequestException,
        max_tries=3,
        base=1,
        max_value=60
    )
    def _post_json(self, url: str, payload: dict, headers: Dict[str, str]) -> requests.Response:
        return self.session.post(url, json=payload, headers=headers, timeout=self.timeout)

    # Blob storage

    def put_blob(self, presigned_url: str, data: bytes, content_type: str) -> None:
        """PUT the whole buffer to a presigned URL. An empty buffer is a no-op."""
        if not data:
            logger.debug("Nothing to upload, skipping PUT")
            return

        try:
            # Presigned URLs carry their own credentials; do not send the bearer token
            response = requests.put(
                presigned_url,
                data=data,
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Upload failed: {e}")

        if response.status_code not in (200, 204):
            raise UploadError(
                f"Upload failed with status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

    # Status lookups

    def get_scan_results(self, sort_key: str) -> List[ScanStatusRecord]:
        """GET {platformUrl}/inspector/result/user?sortKey=...

        ``sort_key`` is already URL-escaped. A 404 means no status row yet.
        """
        endpoint = "inspector/result/user"
        url = f"{self._platform_url(endpoint)}?sortKey={sort_key}"
        headers = {WORKSPACE_HEADER: self.workspace_id} if self.workspace_id else {}
        response = self._get(url, endpoint, headers)

        if response.status_code == 404:
            return []
        self._handle_response_errors(response, endpoint)

        data = self._decode(response, endpoint)
        if isinstance(data, dict):
            data = [data]
        return [ScanStatusRecord.from_dict(item) for item in data or []]

    def get_ingestion_status(self, tenant_name: str, doc_ref: str) -> Optional[IngestionStatus]:
        """GET {platformUrl}/ingestion/status; first element of the array is current."""
        endpoint = "ingestion/status"
        query = urlencode({"tenantName": tenant_name, "docRef": doc_ref})
        url = f"{self._platform_url(endpoint)}?{query}"
        headers = {WORKSPACE_HEADER: self.workspace_id} if self.workspace_id else {}
        response = self._get(url, endpoint, headers)

        if response.status_code in (401, 403):
            self._handle_response_errors(response, endpoint)
        if response.status_code != 200:
            logger.debug("Ingestion status for %s not available yet (status %s)", doc_ref, response.status_code)
            return None

        try:
            items = response.json()
        except ValueError:
            logger.debug("Ignoring undecodable ingestion status response for %s", doc_ref)
            return None
        if not isinstance(items, list) or not items:
            return None
        return IngestionStatus.from_dict(doc_ref, items[0])

    def lookup_software_ids(self, subject: str, uri: str) -> Optional[SoftwareIds]:
        """Resolve software/SBOM IDs; None while the SBOM has not been ingested (404)."""
        endpoint = "pico/v1/software/id"
        query = urlencode({"software_name": subject, "sbom_uri": uri})
        url = f"{self._tenant_url(endpoint)}?{query}"
        response = self._get(url, endpoint, {})

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise APIConnectionError(
                f"unexpected response status code for IDs: {response.status_code}",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        data = self._decode(response, endpoint)
        try:
            return SoftwareIds(software_id=int(data["software_id"]), sbom_id=int(data["sbom_id"]))
        except (KeyError, TypeError, ValueError) as e:
            raise APIConnectionError(f"error decoding response body for IDs: {e}", endpoint=endpoint)

    def check_blocked_packages(self, ids: SoftwareIds) -> Tuple[bool, List[str]]:
        endpoint = f"pico/v1/packages/blocked/check/software/{ids.software_id}/sbom/{ids.sbom_id}"
        response = self._get(self._tenant_url(endpoint), endpoint, {})
        if response.status_code != 200:
            raise APIConnectionError(
                f"unexpected response status code for check: {response.status_code}",
                status_code=response.status_code,
                endpoint=endpoint,
            )
        data = self._decode(response, endpoint)
        return bool(data.get("blocked")), list(data.get("blocked_packages") or [])

    # Helpers

    def _get(self, url: str, endpoint: str, headers: Dict[str, str]) -> requests.Response:
        logger.debug("GET %s", url)
        try:
            return self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise APIConnectionError(f"Request to {endpoint} failed: {e}", endpoint=endpoint)

    def _decode(self, response: requests.Response, endpoint: str):
        try:
            return response.json()
        except ValueError as e:
            raise APIConnectionError(f"Failed to decode response from {endpoint}: {e}", endpoint=endpoint)

    def _platform_url(self, endpoint: str) -> str:
        try:
            return build_url(self.platform_url, endpoint)
        except UrlError as e:
            raise ConfigurationError(f"invalid platform URL: {e}")

    def _tenant_url(self, endpoint: str) -> str:
        if not self.tenant_endpoint:
            raise ConfigurationError("tenant endpoint is not configured")
        try:
            return build_url(self.tenant_endpoint, endpoint)
        except UrlError as e:
            raise ConfigurationError(f"invalid tenant endpoint: {e}")

    def _handle_response_errors(self, response: requests.Response, endpoint: str):
        """Handle common API response errors"""
        if response.status_code == 401:
            raise AuthenticationError(
                "Unauthorized request. Your token may be invalid or expired",
                status_code=401,
                endpoint=endpoint,
            )
        elif response.status_code == 403:
            raise AuthenticationError(
                "Access forbidden. Try `kusari auth login` or select another workspace",
                status_code=403,
                endpoint=endpoint,
            )
        elif response.status_code >= 400:
            raise APIConnectionError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
                endpoint=endpoint,
                body=response.text,
            )
