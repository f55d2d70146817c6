"""
OAuth redirect listener.

A one-shot HTTP server bound to ``localhost:{port}`` that waits for the
identity provider to redirect the browser to ``/callback``. The handler
validates the request and hands either the authorization code or an
AuthFlowError to the waiting login through a single-slot queue.
"""

import hmac
import html
import logging
import queue
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from kusari_cli.constants import CALLBACK_PATH

from .exceptions import AuthError, AuthFlowError, AuthNetworkError, LoginTimeoutError

logger = logging.getLogger(__name__)

SUCCESS_HTML = """<!DOCTYPE html>
<html>
  <head>
    <title>Authentication Successful</title>
    <style>
      body {
        font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
        display: flex;
        justify-content: center;
        align-items: center;
        height: 100vh;
        margin: 0;
        background-color: #f5f5f5;
      }
      .container {
        text-align: center;
        padding: 2rem;
        background: white;
        border-radius: 8px;
        box-shadow: 0 2px 8px rgba(0,0,0,0.1);
      }
      h1 { color: #2d3748; margin-bottom: 1rem; }
      p { color: #4a5568; }
    </style>
  </head>
  <body>
    <div class="container">
      <h1>Authentication Successful!</h1>
      <p>You can close this window and return to the CLI.</p>
    </div>
  </body>
</html>
"""

REDIRECT_HTML = """<!DOCTYPE html>
<html>
  <head>
    <meta http-equiv="refresh" content="0;url={url}" />
    <title></title>
  </head>
  <body></body>
</html>
"""


def success_page(redirect_url: str = "") -> str:
    """Static page shown in the browser once the code has been received."""
    if not redirect_url:
        return SUCCESS_HTML
    return REDIRECT_HTML.format(url=html.escape(redirect_url, quote=True))


@dataclass
class CallbackResult:
    """What the callback handler hands back to the login flow"""
    code: Optional[str] = None
    error: Optional[AuthError] = None
    # Short plain-text body for the browser when the callback is rejected
    browser_message: str = ""


def validate_callback(params: dict, expected_state: str) -> CallbackResult:
    """Check the redirect query parameters in order: provider error, state, code."""

    def first(name: str) -> str:
        values = params.get(name) or [""]
        return values[0]

    error_param = first("error")
    if error_param:
        return CallbackResult(error=AuthFlowError(f"OAuth error: {error_param}"), browser_message="Authentication failed")

    state = first("state")
    if not hmac.compare_digest(state.encode(), expected_state.encode()):
        return CallbackResult(error=AuthFlowError("invalid state parameter (possible CSRF)"), browser_message="Invalid state")

    code = first("code")
    if not code:
        return CallbackResult(error=AuthFlowError("no authorization code received"), browser_message="No code received")

    return CallbackResult(code=code)


class _CallbackHandler(BaseHTTPRequestHandler):
    server: "_CallbackServer"

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self._respond(404, "Not found", "text/plain")
            return

        listener = self.server.listener
        if listener.result_delivered:
            self._respond(400, "Login already completed", "text/plain")
            return

        result = validate_callback(parse_qs(parsed.query), listener.expected_state)
        if result.error is not None:
            self._respond(400, result.browser_message, "text/plain")
        else:
            self._respond(200, success_page(listener.redirect_url), "text/html; charset=utf-8")

        listener.deliver(result)

    def _respond(self, status: int, body: str, content_type: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        logger.debug("callback listener: " + format, *args)


class _CallbackServer(HTTPServer):
    def __init__(self, address, listener: "CallbackListener"):
        self.listener = listener
        super().__init__(address, _CallbackHandler)


class CallbackListener:
    """Serve ``/callback`` once and hand the result to :meth:`wait_for_code`.

    Usage::

        with CallbackListener(port, state) as listener:
            ...open the browser...
            code = listener.wait_for_code(timeout=300)
    """

    POLL_INTERVAL = 0.25

    def __init__(self, port: str, expected_state: str, redirect_url: str = "", host: str = "localhost"):
        self.host = host
        self.port = int(port)
        self.expected_state = expected_state
        self.redirect_url = redirect_url
        self._results: "queue.Queue[CallbackResult]" = queue.Queue(maxsize=1)
        self._stop = threading.Event()
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def result_delivered(self) -> bool:
        return self._results.full() or self._stop.is_set()

    @property
    def server_port(self) -> int:
        """Port actually bound, useful when started with port 0."""
        return self._server.server_address[1] if self._server else self.port

    def start(self) -> "CallbackListener":
        try:
            self._server = _CallbackServer((self.host, self.port), self)
        except OSError as e:
            raise AuthNetworkError(f"failed to listen on {self.host}:{self.port}", cause=e)
        self._server.timeout = self.POLL_INTERVAL
        self._thread = threading.Thread(target=self._serve, name="kusari-oauth-callback", daemon=True)
        self._thread.start()
        logger.debug("Callback listener started on %s:%s", self.host, self.server_port)
        return self

    def _serve(self) -> None:
        try:
            while not self._stop.is_set():
                self._server.handle_request()
        finally:
            self._server.server_close()
            logger.debug("Callback listener stopped")

    def deliver(self, result: CallbackResult) -> None:
        try:
            self._results.put_nowait(result)
        except queue.Full:
            logger.debug("Dropping extra callback result")
            return
        self._stop.set()

    def wait_for_code(self, timeout: Optional[float] = None) -> str:
        """Block until the callback arrives; return the code or raise its error."""
        try:
            result = self._results.get(timeout=timeout)
        except queue.Empty:
            raise LoginTimeoutError(timeout)
        if result.error is not None:
            raise result.error
        return result.code

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
