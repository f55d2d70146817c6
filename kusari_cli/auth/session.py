"""
Session Manager

Top-level authentication entry point. Two flows are supported:

1. Interactive PKCE login: start the local callback listener, open the
   browser on the authorize URL, wait for the redirect (bounded by a
   timeout), then exchange the code using the PKCE verifier.
2. Client credentials: when a client secret is configured the browser is
   skipped and the token endpoint is called directly.

The resulting token is persisted through the CredentialStore.
"""

import logging
import webbrowser
from typing import Callable, Dict, Optional
from urllib.parse import urlencode

import requests
from rich.console import Console

from kusari_cli.constants import CALLBACK_PATH, OAUTH_SCOPES, TOKEN_PROVIDER
from kusari_cli.core.urls import UrlError, build_url

from .callback import CallbackListener
from .exceptions import AuthFlowError, AuthNetworkError
from .models import Token
from .pkce import PkceChallenge
from .storage import CredentialStore

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_TIMEOUT = 300


def redirect_url_for_port(port: str) -> str:
    return f"http://localhost:{port}{CALLBACK_PATH}"


def authorize_url(auth_endpoint: str, client_id: str, redirect_url: str, pkce: PkceChallenge) -> str:
    """Build ``{authEndpoint}/oauth2/authorize`` carrying the state and S256 challenge."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_url,
        "scope": " ".join(OAUTH_SCOPES),
        "state": pkce.state,
        "code_challenge": pkce.challenge,
        "code_challenge_method": pkce.challenge_method,
    }
    return f"{_oauth_url(auth_endpoint, 'authorize')}?{urlencode(params)}"


def _oauth_url(auth_endpoint: str, action: str) -> str:
    try:
        return build_url(auth_endpoint, "oauth2", action)
    except UrlError as e:
        raise AuthFlowError("invalid auth endpoint", cause=e)


class SessionManager:
    """Obtain and persist a bearer token for the platform."""

    def __init__(
        self,
        store: CredentialStore,
        console: Optional[Console] = None,
        session: Optional[requests.Session] = None,
        open_browser: Callable[[str], bool] = webbrowser.open,
        http_timeout: float = 30,
    ):
        self.store = store
        self.console = console or Console()
        self.session = session or requests.Session()
        self.open_browser = open_browser
        self.http_timeout = http_timeout
        self.logger = logging.getLogger(__name__)

    def login(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        auth_endpoint: str,
        redirect_port: str,
        console_url: str = "",
        login_timeout: float = DEFAULT_LOGIN_TIMEOUT,
        provider: str = TOKEN_PROVIDER,
    ) -> Token:
        """Authenticate and store the token under ``provider``.

        ``console_url`` is where the browser is sent after a successful
        redirect; when empty a static success page is shown instead.
        """
        if client_secret:
            token = self.client_credentials_login(client_id, client_secret, auth_endpoint)
        else:
            token = self.pkce_login(client_id, redirect_url, auth_endpoint, redirect_port, console_url, login_timeout)

        self.store.save_token(token, provider)
        return token

    def pkce_login(
        self,
        client_id: str,
        redirect_url: str,
        auth_endpoint: str,
        redirect_port: str,
        console_url: str = "",
        login_timeout: float = DEFAULT_LOGIN_TIMEOUT,
    ) -> Token:
        pkce = PkceChallenge()
        redirect_url = redirect_url or redirect_url_for_port(redirect_port)
        url = authorize_url(auth_endpoint, client_id, redirect_url, pkce)

        with CallbackListener(redirect_port, pkce.state, redirect_url=console_url) as listener:
            self._launch_browser(url)
            self.logger.debug("Waiting up to %ss for the OAuth callback", login_timeout)
            code = listener.wait_for_code(timeout=login_timeout)

        return self.exchange_code(auth_endpoint, client_id, code, pkce.verifier, redirect_url)

    def exchange_code(self, auth_endpoint: str, client_id: str, code: str, verifier: str, redirect_url: str) -> Token:
        """Trade the authorization code for a token, proving possession of the verifier."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_url,
            "client_id": client_id,
            "code_verifier": verifier,
        }
        return self._request_token(auth_endpoint, data)

    def client_credentials_login(self, client_id: str, client_secret: str, auth_endpoint: str) -> Token:
        self.logger.debug("Client secret configured, using client credentials grant")
        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        return self._request_token(auth_endpoint, data)

    def _request_token(self, auth_endpoint: str, data: Dict[str, str]) -> Token:
        token_url = _oauth_url(auth_endpoint, "token")
        self.logger.debug("POST %s (grant_type=%s)", token_url, data["grant_type"])
        try:
            response = self.session.post(
                token_url,
                data=data,
                headers={"Accept": "application/json"},
                timeout=self.http_timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthNetworkError("failed to reach token endpoint", cause=e)

        if response.status_code != 200:
            raise AuthFlowError(f"failed to exchange token: status {response.status_code}: {response.text[:200]}")

        try:
            return Token.from_token_response(response.json())
        except (KeyError, TypeError, ValueError) as e:
            raise AuthFlowError("failed to exchange token: malformed token response", cause=e)

    def _launch_browser(self, url: str) -> None:
        self.console.print("Opening browser for authentication...")
        self.console.print("If the browser doesn't open, visit this URL:")
        self.console.print(url, soft_wrap=True, highlight=False)
        try:
            opened = self.open_browser(url)
        except webbrowser.Error as e:
            self.logger.debug("Failed to open browser: %s", e)
            opened = False
        if not opened:
            self.console.print("Could not open a browser automatically; use the URL above.", style="yellow")
