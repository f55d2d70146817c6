"""
Shared fixtures for kusari-cli tests.
"""

import io
import shutil
import subprocess
from datetime import datetime, timedelta, timezone

import pytest
from rich.console import Console

from kusari_cli.auth.models import Token, WorkspaceSelection
from kusari_cli.auth.storage import CredentialStore
from kusari_cli.core.config_manager import CliConfig

PLATFORM_URL = "https://platform.example.com/"
CONSOLE_URL = "https://console.example.com/"
AUTH_ENDPOINT = "https://auth.example.com/"


@pytest.fixture
def console():
    """Console that records plain text output in ``console.file``"""
    return Console(file=io.StringIO(), force_terminal=False, no_color=True, width=200)


@pytest.fixture
def store(tmp_path):
    return CredentialStore(tmp_path / ".kusari")


@pytest.fixture
def logged_in_store(store):
    """Store holding a valid token and a workspace with tenant 'demo'"""
    store.save_token(
        Token(access_token="test-token", expiry=datetime.now(timezone.utc) + timedelta(hours=1)),
        "kusari",
    )
    store.save_workspace(WorkspaceSelection(
        id="ws-1",
        description="Test Workspace",
        platform_url=PLATFORM_URL,
        auth_endpoint=AUTH_ENDPOINT,
        tenant="demo",
    ))
    return store


@pytest.fixture
def cli_config():
    return CliConfig(
        console_url=CONSOLE_URL,
        platform_url=PLATFORM_URL,
        auth_endpoint=AUTH_ENDPOINT,
        client_id="test-client",
        poll_interval=0,
        poll_attempts=5,
        ingestion_poll_interval=0,
        ingestion_poll_attempts=5,
        batch_deadline=30,
    )


def _git(repo, *args):
    subprocess.run(["git", *args], cwd=str(repo), check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path):
    """A committed repository with a tracked file and a .gitignore for *.log"""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "project"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "commit.gpgsign", "false")

    (repo / ".gitignore").write_text("*.log\n")
    (repo / "test.txt").write_text("test content\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "-q", "-m", "initial commit")
    return repo
