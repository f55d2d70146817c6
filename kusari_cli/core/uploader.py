"""
Upload service for kusari-cli.

Handles uploading SBOM / OpenVEX documents to a Kusari tenant, then
optionally waiting for ingestion and checking for blocked packages.
"""
import logging
from typing import Optional, Tuple

import requests
from rich.console import Console

from kusari_cli.auth import AuthError, CredentialStore
from kusari_cli.auth.workspace import fetch_user_info
from kusari_cli.constants import TOKEN_PROVIDER
from kusari_cli.core.config_manager import CliConfig
from kusari_cli.core.urls import tenant_endpoint_for, tenant_name_from_endpoint
from kusari_cli.polling.blocked_packages import BlockedPackageChecker
from kusari_cli.polling.ingestion import IngestionStatusPoller
from kusari_cli.polling.pool import BoundedTaskPool
from kusari_cli.rich_utils.ui_helpers import blocked_packages_report, get_console, ingestion_table, print_error
from kusari_cli.upload.api_client import PlatformAPIClient
from kusari_cli.upload.documents import DocumentUploader
from kusari_cli.upload.exceptions import BlockedPackagesFound, ConfigurationError, KusariError
from kusari_cli.upload.models import UploadMetadata


class PlatformUploadService:
    """Service for uploading documents to the Kusari platform."""

    def __init__(
        self,
        config: CliConfig,
        store: Optional[CredentialStore] = None,
        console: Optional[Console] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.store = store or CredentialStore()
        self.console = console or get_console()
        self.session = session
        self.logger = logging.getLogger(__name__)

    def resolve_tenant_endpoint(self) -> str:
        """--tenant-endpoint, then --tenant, then the tenant stored at login."""
        if self.config.tenant_endpoint:
            return self.config.tenant_endpoint.rstrip("/")
        if self.config.tenant:
            return tenant_endpoint_for(self.config.tenant)
        stored = self.store.load_workspace(self.config.platform_url)
        if stored is not None and stored.tenant:
            return tenant_endpoint_for(stored.tenant)
        raise ConfigurationError(
            "tenant configuration missing. Please provide --tenant flag (e.g., --tenant demo), "
            "or --tenant-endpoint if working in development, or run `kusari auth login`"
        )

    def resolve_workspace(self, access_token: str) -> Tuple[str, str]:
        """Stored workspace for this platform, else the user's first workspace."""
        stored = self.store.load_workspace(self.config.platform_url)
        if stored is not None:
            return stored.id, stored.description
        try:
            info = fetch_user_info(self.config.platform_url, access_token, self.session, self.config.http_timeout)
        except KusariError as e:
            self.console.print(f"⚠️ Failed to get workspaces: {e}", style="yellow")
            return "", ""
        if not info.workspaces:
            return "", ""
        return info.workspaces[0].id, info.workspaces[0].description

    def execute_upload(
        self,
        file_path: str,
        metadata: UploadMetadata,
        is_open_vex: bool = False,
        check_blocked_packages: bool = False,
        wait: bool = False,
    ) -> int:
        """Execute upload workflow and return exit code."""
        config = self.config
        try:
            tenant_endpoint = self.resolve_tenant_endpoint()
            self.console.print(f"Using tenant endpoint: {tenant_endpoint}", highlight=False)

            token = self.store.load_valid_token(TOKEN_PROVIDER)
            workspace_id, description = self.resolve_workspace(token.access_token)
            if description:
                self.console.print(f"Using workspace: {description}", highlight=False)

            client = PlatformAPIClient(
                access_token=token.access_token,
                platform_url=config.platform_url,
                tenant_endpoint=tenant_endpoint,
                workspace_id=workspace_id,
                timeout=config.http_timeout,
                session=self.session,
            )
            with client:
                results = DocumentUploader(client, self.console).upload(file_path, is_open_vex, metadata)
                uploaded = [r for r in results if not r.skipped]
                self.console.print(f"✅ Uploaded {len(uploaded)} document(s)", style="bold green")

                tenant_name = tenant_name_from_endpoint(tenant_endpoint)
                if wait and workspace_id and tenant_name and uploaded:
                    self._wait_for_ingestion(client, tenant_name, [r.doc_ref for r in uploaded])

                if check_blocked_packages:
                    checker = BlockedPackageChecker(client, self.console, pool=self._pool())
                    summary = checker.check([r.reference for r in uploaded if r.reference is not None])
                    blocked_packages_report(self.console, summary.results)
                    if summary.blocked:
                        raise BlockedPackagesFound(summary.results)

        except (AuthError, KusariError) as e:
            print_error(self.console, str(e), e.suggested_action)
            return 1

        return 0

    def _wait_for_ingestion(self, client: PlatformAPIClient, tenant_name: str, doc_refs) -> None:
        poller = IngestionStatusPoller(
            client,
            self.console,
            tenant_name,
            interval=self.config.ingestion_poll_interval,
            max_attempts=self.config.ingestion_poll_attempts,
            pool=self._pool(),
        )
        outcome = poller.poll_all(doc_refs)
        if outcome.error is not None:
            self.console.print(f"⚠️ Error during ingestion status check: {outcome.error}", style="yellow")
        self.console.print(ingestion_table(outcome.results))

    def _pool(self) -> BoundedTaskPool:
        return BoundedTaskPool(max_workers=self.config.max_concurrency, deadline_seconds=self.config.batch_deadline)
