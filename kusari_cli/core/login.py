"""
Login service for kusari-cli.

Runs the authentication commands: login, logout and the workspace/tenant
selection prompts. Every entry point returns a process exit code.
"""
import logging
import webbrowser
from typing import Callable, Optional

from rich.console import Console

from kusari_cli.auth import AuthError, CredentialStore, SessionManager, WorkspaceResolver
from kusari_cli.auth.pkce import generate_random_port_or_default
from kusari_cli.auth.session import redirect_url_for_port
from kusari_cli.constants import TOKEN_PROVIDER
from kusari_cli.core.config_manager import CliConfig
from kusari_cli.core.urls import console_analysis_url
from kusari_cli.rich_utils.ui_helpers import get_console, print_error
from kusari_cli.upload.exceptions import KusariError


class LoginService:
    """Service for authenticating and choosing the active workspace."""

    def __init__(
        self,
        config: CliConfig,
        store: Optional[CredentialStore] = None,
        console: Optional[Console] = None,
        session_manager: Optional[SessionManager] = None,
        resolver: Optional[WorkspaceResolver] = None,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ):
        self.config = config
        self.store = store or CredentialStore()
        self.console = console or get_console()
        self.open_browser = open_browser
        self.session_manager = session_manager or SessionManager(
            self.store, console=self.console, open_browser=open_browser, http_timeout=config.http_timeout
        )
        self.resolver = resolver or WorkspaceResolver(
            self.store, console=self.console, http_timeout=config.http_timeout
        )
        self.logger = logging.getLogger(__name__)

    def execute_login(self) -> int:
        """Authenticate, pick a workspace and tenant, and persist both."""
        config = self.config
        port = generate_random_port_or_default()
        redirect_url = redirect_url_for_port(port)

        if config.verbose:
            self.console.print(f"Auth endpoint: {config.auth_endpoint}", highlight=False)
            self.console.print(f"Console URL: {config.console_url}", highlight=False)
            self.console.print(f"Platform URL: {config.platform_url}", highlight=False)
            self.console.print(f"Client ID: {config.effective_client_id}", highlight=False)
            self.console.print(f"Callback URL: {redirect_url}", highlight=False)

        try:
            token = self.session_manager.login(
                client_id=config.effective_client_id,
                client_secret=config.client_secret,
                redirect_url=redirect_url,
                auth_endpoint=config.auth_endpoint,
                redirect_port=port,
                login_timeout=config.login_timeout,
                provider=TOKEN_PROVIDER,
            )
            self.console.print("✅ Successfully logged in!", style="bold green")

            selection = self.resolver.select(
                config.platform_url,
                config.auth_endpoint,
                token.access_token,
                non_interactive=config.non_interactive,
            )
        except (AuthError, KusariError) as e:
            print_error(self.console, str(e), e.suggested_action)
            return 1

        self.console.print(f"\nUsing workspace: {selection.description}", highlight=False)
        if selection.tenant:
            self.console.print(f"Using tenant: {selection.tenant}", highlight=False)
        self.console.print(
            "To change workspace run `kusari auth select-workspace`, "
            "to change tenant run `kusari auth select-tenant`",
            style="dim",
        )

        if not config.non_interactive:
            self._open_console(console_analysis_url(config.console_url, selection.id))
        return 0

    def execute_logout(self) -> int:
        try:
            self.store.clear_tokens()
            self.store.clear_workspace()
        except AuthError as e:
            print_error(self.console, str(e), e.suggested_action)
            return 1
        self.console.print("✅ Logged out", style="bold green")
        return 0

    def execute_select_workspace(self) -> int:
        config = self.config
        try:
            token = self.store.load_valid_token(TOKEN_PROVIDER)
            selection = self.resolver.select(
                config.platform_url, config.auth_endpoint, token.access_token, non_interactive=False
            )
        except (AuthError, KusariError) as e:
            print_error(self.console, str(e), e.suggested_action)
            return 1
        self.console.print(f"✅ Workspace set to: {selection.description}", style="bold green", highlight=False)
        if selection.tenant:
            self.console.print(f"Using tenant: {selection.tenant}", highlight=False)
        return 0

    def execute_select_tenant(self) -> int:
        config = self.config
        try:
            token = self.store.load_valid_token(TOKEN_PROVIDER)
            selection = self.resolver.select_tenant(config.platform_url, config.auth_endpoint, token.access_token)
        except (AuthError, KusariError) as e:
            print_error(self.console, str(e), e.suggested_action)
            return 1
        self.console.print(f"✅ Tenant set to: {selection.tenant}", style="bold green", highlight=False)
        return 0

    def _open_console(self, url: str) -> None:
        self.console.print(f"\nView your analysis results at: {url}", highlight=False)
        try:
            self.open_browser(url)
        except webbrowser.Error as e:
            self.logger.debug("Failed to open browser: %s", e)
