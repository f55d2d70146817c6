"""
Tests for the OAuth redirect listener

The listener is started on an ephemeral port and driven with real HTTP
requests, the same way a browser would be redirected to it.
"""

import pytest
import requests

from kusari_cli.auth.callback import CallbackListener, success_page, validate_callback
from kusari_cli.auth.exceptions import AuthFlowError, LoginTimeoutError


class TestValidateCallback:
    """Parameter checks run in order: provider error, state, code"""

    def test_provider_error_wins(self):
        result = validate_callback({"error": ["access_denied"], "state": ["s1"], "code": ["c"]}, "s1")
        assert result.code is None
        assert "access_denied" in str(result.error)

    def test_state_mismatch(self):
        result = validate_callback({"state": ["other"], "code": ["c"]}, "s1")
        assert isinstance(result.error, AuthFlowError)
        assert "invalid state" in str(result.error)
        assert result.browser_message == "Invalid state"

    def test_missing_state(self):
        result = validate_callback({"code": ["c"]}, "s1")
        assert "invalid state" in str(result.error)

    def test_missing_code(self):
        result = validate_callback({"state": ["s1"]}, "s1")
        assert "no authorization code" in str(result.error)

    def test_success(self):
        result = validate_callback({"state": ["s1"], "code": ["abc"]}, "s1")
        assert result.error is None
        assert result.code == "abc"


class TestCallbackListener:
    """End-to-end tests against a running listener"""

    def setup_method(self):
        self.listener = CallbackListener("0", "expected-state", host="127.0.0.1").start()
        self.base = f"http://127.0.0.1:{self.listener.server_port}"

    def teardown_method(self):
        self.listener.stop()

    def test_successful_callback(self):
        response = requests.get(f"{self.base}/callback", params={"code": "abc", "state": "expected-state"}, timeout=5)

        assert response.status_code == 200
        assert "Authentication Successful" in response.text
        assert self.listener.wait_for_code(timeout=5) == "abc"

    def test_state_mismatch_is_rejected(self):
        response = requests.get(f"{self.base}/callback", params={"code": "abc", "state": "forged"}, timeout=5)

        assert response.status_code == 400
        with pytest.raises(AuthFlowError, match="invalid state"):
            self.listener.wait_for_code(timeout=5)

    def test_provider_error_is_rejected(self):
        response = requests.get(f"{self.base}/callback", params={"error": "access_denied"}, timeout=5)

        assert response.status_code == 400
        with pytest.raises(AuthFlowError, match="access_denied"):
            self.listener.wait_for_code(timeout=5)

    def test_other_paths_do_not_complete_login(self):
        response = requests.get(f"{self.base}/favicon.ico", timeout=5)
        assert response.status_code == 404

        response = requests.get(f"{self.base}/callback", params={"code": "xyz", "state": "expected-state"}, timeout=5)
        assert response.status_code == 200
        assert self.listener.wait_for_code(timeout=5) == "xyz"

    def test_timeout(self):
        with pytest.raises(LoginTimeoutError):
            self.listener.wait_for_code(timeout=0.1)


class TestSuccessPage:

    def test_static_page(self):
        assert "Authentication Successful!" in success_page()

    def test_redirect_page_escapes_url(self):
        page = success_page('https://console.example.com/?a=1&b="2"')
        assert 'http-equiv="refresh"' in page
        assert "&amp;b=&quot;2&quot;" in page
