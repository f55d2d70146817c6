"""
Repository scan service for kusari-cli.

package -> presign -> upload -> poll, strictly in that order, for both
diff scans (``repo scan``) and full risk checks (``repo risk-check``).
"""
import contextlib
import logging
import signal
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from kusari_cli.auth import AuthError, CredentialStore, WorkspaceResolver
from kusari_cli.constants import BUNDLE_CONTENT_TYPE, TOKEN_PROVIDER
from kusari_cli.core.config_manager import CliConfig
from kusari_cli.core.urls import UrlError, console_analysis_url
from kusari_cli.polling.result_poller import ResultPoller
from kusari_cli.repo.bundle import BundleBuilder
from kusari_cli.rich_utils.ui_helpers import get_console, print_error, render_analysis
from kusari_cli.upload.api_client import PlatformAPIClient
from kusari_cli.upload.exceptions import KusariError, ScanTimeoutError
from kusari_cli.upload.models import JobReference, ScanType

OUTPUT_FORMATS = ("markdown", "json")


@contextlib.contextmanager
def terminate_as_interrupt():
    """Treat SIGTERM like Ctrl-C so cleanup paths run for both."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        raise KeyboardInterrupt()

    previous = signal.signal(signal.SIGTERM, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


class RepoScanService:
    """Service for scanning a local git repository on the platform."""

    def __init__(
        self,
        config: CliConfig,
        store: Optional[CredentialStore] = None,
        console: Optional[Console] = None,
        resolver: Optional[WorkspaceResolver] = None,
        client_factory: Callable[..., PlatformAPIClient] = PlatformAPIClient,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.store = store or CredentialStore()
        self.console = console or get_console()
        self.resolver = resolver or WorkspaceResolver(
            self.store, console=self.console, http_timeout=config.http_timeout
        )
        self.client_factory = client_factory
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    def execute_scan(
        self,
        directory: str,
        rev: str = "HEAD",
        full: bool = False,
        output_format: str = "markdown",
        wait: bool = True,
    ) -> int:
        """Execute scan workflow and return exit code."""
        if output_format not in OUTPUT_FORMATS:
            print_error(self.console, f"Unsupported output format: {output_format}", f"Use one of: {', '.join(OUTPUT_FORMATS)}")
            return 1

        config = self.config
        results_url = None
        try:
            token = self.store.load_valid_token(TOKEN_PROVIDER)
            selection = self.resolver.resolve(
                config.platform_url, config.auth_endpoint, token.access_token, non_interactive=config.non_interactive
            )
            self.console.print(f"Using workspace: {selection.description}", highlight=False)
            results_url = console_analysis_url(config.console_url, selection.id)

            with self.client_factory(
                access_token=token.access_token,
                platform_url=config.platform_url,
                workspace_id=selection.id,
                timeout=config.http_timeout,
            ) as client:
                job = self._submit(client, Path(directory), rev, full)

                if not wait:
                    self.console.print(f"✅ Scan submitted. Check results at: {results_url}", highlight=False)
                    return 0

                poller = ResultPoller(
                    client,
                    self.console,
                    interval=config.poll_interval,
                    max_attempts=config.poll_attempts,
                    sleep=self.sleep,
                )
                analysis = poller.poll(job, results_url)

        except KeyboardInterrupt:
            self.console.print("\nScan interrupted", style="yellow")
            return 130
        except ScanTimeoutError as e:
            print_error(self.console, str(e))
            if e.results_url:
                self.console.print(f"Check results later at: {e.results_url}", highlight=False)
            return 1
        except UrlError as e:
            print_error(self.console, f"Unexpected upload URL: {e}")
            return 1
        except (AuthError, KusariError) as e:
            print_error(self.console, str(e), e.suggested_action)
            return 1

        render_analysis(self.console, analysis, output_format=output_format, full=full)
        self.console.print(f"\nView the full analysis at: {results_url}", highlight=False)
        return 0

    def _submit(self, client: PlatformAPIClient, directory: Path, rev: str, full: bool) -> JobReference:
        """Package and upload; the working directory is gone when this returns."""
        scan_type = ScanType.FULL if full else ScanType.DIFF
        with terminate_as_interrupt(), BundleBuilder(directory) as builder:
            with self.console.status("Packaging repository..."):
                bundle = builder.build(rev=rev, full=full)
            self.logger.debug("Bundle %s is %d bytes", bundle.path, bundle.size)

            with self.console.status("Uploading bundle..."):
                presigned_url = client.presign_bundle(bundle.filename, scan_type, bundle.size)
                client.put_blob(presigned_url, bundle.read_bytes(), BUNDLE_CONTENT_TYPE)

        self.console.print("✅ Bundle uploaded", style="bold green")
        return JobReference.from_presigned_url(presigned_url, bundle.doc_ref, full=full)
