"""
Credential Store

Persists the bearer token map and the active workspace selection under
``~/.kusari``. The directory is created with mode 0700 and every file is
written with mode 0600.

Saving a token is a read-modify-write of the whole token map. Nothing here
locks the files against a second CLI process writing at the same time.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from kusari_cli.constants import CONFIG_DIR_NAME, TOKEN_FILE_NAME, WORKSPACE_FILE_NAME

from .exceptions import InvalidTokenError, TokenExpiredError, TokenStorageError
from .models import Token, WorkspaceSelection

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    """Return ``~/.kusari`` for the current user."""
    try:
        return Path.home() / CONFIG_DIR_NAME
    except RuntimeError as e:
        raise TokenStorageError("failed to get user home directory", cause=e)


def check_token_expiry(token: Token, now: Optional[datetime] = None) -> None:
    """Raise TokenExpiredError when the token cannot be used any more.

    A token without an expiry is treated as expired; there is no refresh flow.
    """
    now = now or datetime.now(timezone.utc)
    if token.expiry is None or token.expiry <= now:
        raise TokenExpiredError("Token is expired. Re-run `kusari auth login`")


def _normalize_url(url: str) -> str:
    return (url or "").rstrip("/")


class CredentialStore:
    """Token and workspace files for one user"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()

    @property
    def token_path(self) -> Path:
        return self.config_dir / TOKEN_FILE_NAME

    @property
    def workspace_path(self) -> Path:
        return self.config_dir / WORKSPACE_FILE_NAME

    # Tokens

    def save_token(self, token: Token, provider: str) -> None:
        """Store ``token`` under ``provider``, keeping the other entries."""
        tokens = self._read_token_map(missing_ok=True)
        tokens[provider] = token.to_dict()
        self._write_json(self.token_path, tokens)
        logger.debug("Saved token for provider %s to %s", provider, self.token_path)

    def load_token(self, provider: str) -> Token:
        tokens = self._read_token_map(missing_ok=False)
        data = tokens.get(provider)
        if data is None:
            raise InvalidTokenError(f"no token found for provider: {provider}")
        try:
            return Token.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError(f"stored token for provider {provider} is unreadable", cause=e)

    def clear_tokens(self) -> None:
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise TokenStorageError("failed to remove token file", cause=e)

    def load_valid_token(self, provider: str) -> Token:
        """Load a token and check its expiry in one step."""
        token = self.load_token(provider)
        check_token_expiry(token)
        return token

    # Workspace selection

    def save_workspace(self, selection: WorkspaceSelection) -> None:
        self._write_json(self.workspace_path, selection.to_dict())
        logger.debug("Saved workspace %s to %s", selection.id, self.workspace_path)

    def load_workspace(self, platform_url: str, auth_endpoint: str = "") -> Optional[WorkspaceSelection]:
        """Return the stored selection if it belongs to the same platform and auth endpoint.

        An empty ``auth_endpoint`` matches any stored auth endpoint.
        """
        try:
            data = json.loads(self.workspace_path.read_text())
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable workspace file %s: %s", self.workspace_path, e)
            return None

        try:
            selection = WorkspaceSelection.from_dict(data)
        except (KeyError, TypeError) as e:
            logger.warning("Ignoring malformed workspace file %s: %s", self.workspace_path, e)
            return None

        if _normalize_url(selection.platform_url) != _normalize_url(platform_url):
            logger.debug("Stored workspace is for %s, not %s", selection.platform_url, platform_url)
            return None
        if auth_endpoint and _normalize_url(selection.auth_endpoint) != _normalize_url(auth_endpoint):
            logger.debug("Stored workspace is for auth endpoint %s, not %s", selection.auth_endpoint, auth_endpoint)
            return None
        return selection

    def clear_workspace(self) -> None:
        try:
            self.workspace_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise TokenStorageError("failed to remove workspace file", cause=e)

    # Helpers

    def _read_token_map(self, missing_ok: bool) -> Dict[str, dict]:
        try:
            raw = self.token_path.read_text()
        except FileNotFoundError:
            if missing_ok:
                return {}
            raise InvalidTokenError("no stored tokens found. Run `kusari auth login`.")
        except OSError as e:
            raise TokenStorageError("failed to read token file", cause=e)

        try:
            tokens = json.loads(raw)
        except ValueError as e:
            raise TokenStorageError("found token file, but could not parse it", cause=e)
        if not isinstance(tokens, dict):
            raise TokenStorageError("token file does not contain a JSON object")
        return tokens

    def _write_json(self, path: Path, data: dict) -> None:
        try:
            self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise TokenStorageError("failed to create config directory", cause=e)

        payload = json.dumps(data, indent=2)
        # Write to a sibling temp file and rename so readers never see half a file
        fd, tmp_name = tempfile.mkstemp(dir=str(self.config_dir), prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise TokenStorageError(f"failed to write {path.name}", cause=e)
