"""
Workspace Resolver

Decides which workspace and tenant a command runs against. A stored
selection for the same platform/auth endpoint is reused as-is; otherwise
the user's workspaces are fetched and one is chosen automatically or by
prompting on standard input.
"""

import logging
from typing import Callable, List, Optional, Sequence

import requests
from rich.console import Console

from kusari_cli.constants import DEFAULT_CONSOLE_URL
from kusari_cli.core.urls import UrlError, build_url
from kusari_cli.upload.exceptions import APIConnectionError, AuthenticationError, WorkspaceError

from .models import UserInfo, Workspace, WorkspaceSelection
from .storage import CredentialStore

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_DESCRIPTION = "My Workspace"


def fetch_user_info(
    platform_url: str,
    access_token: str,
    session: Optional[requests.Session] = None,
    timeout: float = 30,
) -> UserInfo:
    """``GET {platformUrl}/user`` -> workspaces and tenants by workspace."""
    session = session or requests.Session()
    endpoint = "user"
    try:
        url = build_url(platform_url, endpoint)
    except UrlError as e:
        raise WorkspaceError(f"invalid platform URL: {e}")

    logger.debug("GET %s", url)
    try:
        response = session.get(url, headers={"Authorization": f"Bearer {access_token}"}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise APIConnectionError(f"Failed to fetch user workspaces: {e}", endpoint=endpoint)

    if response.status_code in (401, 403):
        raise AuthenticationError(
            f"Failed to fetch user workspaces: status {response.status_code}. Run `kusari auth login`",
            status_code=response.status_code,
            endpoint=endpoint,
        )
    if response.status_code != 200:
        raise APIConnectionError(
            f"Failed to fetch user workspaces: status {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
            endpoint=endpoint,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise APIConnectionError(f"Failed to decode user info response: {e}", endpoint=endpoint)

    try:
        workspaces = [
            Workspace(id=item["id"], description=item.get("description") or DEFAULT_WORKSPACE_DESCRIPTION)
            for item in data.get("workspaces") or []
        ]
        return UserInfo(workspaces=workspaces, workspace_tenants=data.get("workspaceTenants") or {})
    except (AttributeError, KeyError, TypeError) as e:
        raise APIConnectionError(f"error decoding user info response: {e!r}", endpoint=endpoint)


def prompt_choice(
    title: str,
    labels: Sequence[str],
    noun: str,
    console: Console,
    read_line: Callable[[str], str] = input,
) -> int:
    """Print a numbered list and read a 1-based choice until it is valid.

    Returns the zero-based index. A single option is chosen without asking.
    """
    if len(labels) == 1:
        return 0

    console.print(f"\n{title}")
    for i, label in enumerate(labels, start=1):
        console.print(f"  {i}. {label}", highlight=False)

    while True:
        try:
            answer = read_line(f"\nSelect a {noun} (1-{len(labels)}): ")
        except EOFError:
            raise WorkspaceError(f"no {noun} selected: standard input closed")
        try:
            choice = int(answer.strip())
        except ValueError:
            choice = 0
        if 1 <= choice <= len(labels):
            return choice - 1
        console.print(f"Invalid selection. Please enter a number between 1 and {len(labels)}.")


class WorkspaceResolver:
    """Resolve, prompt for and persist the active workspace selection."""

    def __init__(
        self,
        store: CredentialStore,
        console: Optional[Console] = None,
        session: Optional[requests.Session] = None,
        read_line: Callable[[str], str] = input,
        http_timeout: float = 30,
    ):
        self.store = store
        self.console = console or Console()
        self.session = session or requests.Session()
        self.read_line = read_line
        self.http_timeout = http_timeout

    def resolve(
        self,
        platform_url: str,
        auth_endpoint: str,
        access_token: str,
        non_interactive: bool = False,
    ) -> WorkspaceSelection:
        """Return the stored selection for this platform, or choose and store one."""
        stored = self.store.load_workspace(platform_url, auth_endpoint)
        if stored is not None:
            logger.debug("Using stored workspace %s", stored.id)
            return stored
        return self.select(platform_url, auth_endpoint, access_token, non_interactive)

    def select(
        self,
        platform_url: str,
        auth_endpoint: str,
        access_token: str,
        non_interactive: bool = False,
    ) -> WorkspaceSelection:
        """Fetch workspaces and pick one (and a tenant), ignoring any stored choice."""
        info = fetch_user_info(platform_url, access_token, self.session, self.http_timeout)
        if not info.workspaces:
            raise WorkspaceError(
                "no workspaces found for this user - please login to "
                f"{DEFAULT_CONSOLE_URL} to automatically create a workspace"
            )

        workspace = self._choose_workspace(info.workspaces, non_interactive)
        tenant = self._choose_tenant(info.tenants_for(workspace.id), non_interactive)

        selection = WorkspaceSelection(
            id=workspace.id,
            description=workspace.description,
            platform_url=platform_url,
            auth_endpoint=auth_endpoint,
            tenant=tenant,
        )
        self.store.save_workspace(selection)
        return selection

    def select_tenant(self, platform_url: str, auth_endpoint: str, access_token: str) -> WorkspaceSelection:
        """Prompt for a tenant of the current workspace and rewrite the selection."""
        current = self.store.load_workspace(platform_url, auth_endpoint)
        if current is None:
            raise WorkspaceError("no workspace selected. Run `kusari auth select-workspace` first")

        info = fetch_user_info(platform_url, access_token, self.session, self.http_timeout)
        tenants = info.tenants_for(current.id)
        if not tenants:
            raise WorkspaceError(f"no tenants found for workspace {current.description}")

        current.tenant = self._choose_tenant(tenants, non_interactive=False)
        self.store.save_workspace(current)
        return current

    def _choose_workspace(self, workspaces: List[Workspace], non_interactive: bool) -> Workspace:
        if non_interactive:
            return workspaces[0]
        labels = [ws.description for ws in workspaces]
        return workspaces[prompt_choice("Available workspaces:", labels, "workspace", self.console, self.read_line)]

    def _choose_tenant(self, tenants: List[str], non_interactive: bool) -> str:
        if not tenants:
            return ""
        if non_interactive:
            return tenants[0]
        return tenants[prompt_choice("Available tenants:", tenants, "tenant", self.console, self.read_line)]
