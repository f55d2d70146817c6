"""
Tests for workspace and tenant selection
"""

from unittest.mock import Mock

import pytest

from kusari_cli.auth.models import WorkspaceSelection
from kusari_cli.auth.workspace import WorkspaceResolver, fetch_user_info, prompt_choice
from kusari_cli.upload.exceptions import APIConnectionError, AuthenticationError, WorkspaceError

PLATFORM_URL = "https://platform.example.com/"
AUTH_ENDPOINT = "https://auth.example.com/"
USER_URL = "https://platform.example.com/user"

THREE_WORKSPACES = {
    "workspaces": [
        {"id": "ws-1", "description": "Personal"},
        {"id": "ws-2", "description": "Team"},
        {"id": "ws-3", "description": ""},
    ],
    "workspaceTenants": {
        "ws-1": ["alpha"],
        "ws-2": ["beta", "gamma"],
    },
}


def user_session(payload=None, status_code=200, text=""):
    """Mock session whose GET returns one /user response"""
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload
    session = Mock()
    session.get.return_value = response
    return session


class ScriptedInput:
    """Stand-in for ``input`` that replays answers and records prompts"""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


class TestFetchUserInfo:

    def test_parses_workspaces_and_tenants(self):
        session = user_session(THREE_WORKSPACES)

        info = fetch_user_info(PLATFORM_URL, "token", session=session)

        assert [ws.id for ws in info.workspaces] == ["ws-1", "ws-2", "ws-3"]
        assert info.workspaces[2].description == "My Workspace"
        assert info.tenants_for("ws-2") == ["beta", "gamma"]
        assert info.tenants_for("ws-3") == []
        args, kwargs = session.get.call_args
        assert args[0] == USER_URL
        assert kwargs["headers"] == {"Authorization": "Bearer token"}

    def test_unauthorized(self):
        with pytest.raises(AuthenticationError):
            fetch_user_info(PLATFORM_URL, "token", session=user_session(status_code=401))

    def test_server_error(self):
        with pytest.raises(APIConnectionError, match="status 500"):
            fetch_user_info(PLATFORM_URL, "token", session=user_session(status_code=500, text="boom"))

    def test_body_not_an_object(self):
        with pytest.raises(APIConnectionError, match="error decoding user info response"):
            fetch_user_info(PLATFORM_URL, "token", session=user_session(["ws-1"]))

    def test_workspace_without_id(self):
        with pytest.raises(APIConnectionError, match="error decoding user info response"):
            fetch_user_info(PLATFORM_URL, "token", session=user_session({"workspaces": [{"description": "x"}]}))


class TestPromptChoice:

    def test_single_option_is_not_prompted(self, console):
        read_line = ScriptedInput()
        assert prompt_choice("Available workspaces:", ["Only"], "workspace", console, read_line) == 0
        assert read_line.prompts == []

    def test_reprompts_until_valid(self, console):
        read_line = ScriptedInput("abc", "5", "0", "2")

        index = prompt_choice("Available workspaces:", ["A", "B", "C"], "workspace", console, read_line)

        assert index == 1
        assert len(read_line.prompts) == 4
        assert "Select a workspace (1-3): " in read_line.prompts[0]
        output = console.file.getvalue()
        assert output.count("Invalid selection. Please enter a number between 1 and 3.") == 3
        assert "  1. A" in output

    def test_closed_input(self, console):
        with pytest.raises(WorkspaceError):
            prompt_choice("Available tenants:", ["a", "b"], "tenant", console, ScriptedInput())


class TestWorkspaceResolver:
    """Test cases for resolve/select and persistence"""

    def resolver(self, store, console, session=None, read_line=None):
        return WorkspaceResolver(
            store,
            console=console,
            session=session or user_session(THREE_WORKSPACES),
            read_line=read_line or ScriptedInput(),
        )

    def test_stored_selection_short_circuits(self, store, console):
        stored = WorkspaceSelection("ws-9", "Stored", PLATFORM_URL, AUTH_ENDPOINT, "delta")
        store.save_workspace(stored)
        session = user_session(THREE_WORKSPACES)

        assert self.resolver(store, console, session).resolve(PLATFORM_URL, AUTH_ENDPOINT, "token") == stored
        session.get.assert_not_called()

    def test_interactive_selection_is_persisted(self, store, console):
        resolver = self.resolver(store, console, read_line=ScriptedInput("2", "2"))

        selection = resolver.resolve(PLATFORM_URL, AUTH_ENDPOINT, "token")

        assert selection.id == "ws-2"
        assert selection.description == "Team"
        assert selection.tenant == "gamma"
        assert store.load_workspace(PLATFORM_URL, AUTH_ENDPOINT) == selection

    def test_non_interactive_picks_first(self, store, console):
        read_line = ScriptedInput()
        resolver = self.resolver(store, console, read_line=read_line)

        selection = resolver.resolve(PLATFORM_URL, AUTH_ENDPOINT, "token", non_interactive=True)

        assert selection.id == "ws-1"
        assert selection.tenant == "alpha"
        assert read_line.prompts == []

    def test_single_workspace_single_tenant(self, store, console):
        session = user_session({
            "workspaces": [{"id": "ws-1", "description": "Solo"}],
            "workspaceTenants": {"ws-1": ["alpha"]},
        })
        read_line = ScriptedInput()

        selection = self.resolver(store, console, session, read_line).select(PLATFORM_URL, AUTH_ENDPOINT, "token")

        assert (selection.id, selection.tenant) == ("ws-1", "alpha")
        assert read_line.prompts == []

    def test_workspace_without_tenants(self, store, console):
        session = user_session({"workspaces": [{"id": "ws-3", "description": "No tenants"}]})

        assert self.resolver(store, console, session).select(PLATFORM_URL, AUTH_ENDPOINT, "token").tenant == ""

    def test_no_workspaces(self, store, console):
        resolver = self.resolver(store, console, user_session({"workspaces": []}))

        with pytest.raises(WorkspaceError, match="no workspaces found for this user"):
            resolver.select(PLATFORM_URL, AUTH_ENDPOINT, "token")
        assert not store.workspace_path.exists()

    def test_select_tenant_rewrites_selection(self, store, console):
        store.save_workspace(WorkspaceSelection("ws-2", "Team", PLATFORM_URL, AUTH_ENDPOINT, "beta"))
        resolver = self.resolver(store, console, read_line=ScriptedInput("2"))

        selection = resolver.select_tenant(PLATFORM_URL, AUTH_ENDPOINT, "token")

        assert selection.tenant == "gamma"
        assert store.load_workspace(PLATFORM_URL, AUTH_ENDPOINT).tenant == "gamma"

    def test_select_tenant_requires_workspace(self, store, console):
        with pytest.raises(WorkspaceError, match="select-workspace"):
            self.resolver(store, console).select_tenant(PLATFORM_URL, AUTH_ENDPOINT, "token")
