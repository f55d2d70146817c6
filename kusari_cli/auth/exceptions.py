"""
Authentication exceptions for kusari-cli.

Every authentication failure carries:
- A machine readable error code
- A human readable message
- The original exception, when one was caught
- A suggested action for the user, when one exists
"""

from enum import Enum
from typing import Optional

LOGIN_AGAIN = "Run `kusari auth login`"


class ErrorCode(Enum):
    """Authentication error codes."""
    UNSUPPORTED_PROVIDER = 0
    TOKEN_STORAGE = 1
    AUTH_FLOW = 2
    TOKEN_EXPIRED = 3
    INVALID_TOKEN = 4
    NETWORK_ERROR = 5


class AuthError(Exception):
    """
    Base exception for authentication errors.

    The string form follows ``auth error [code]: message: cause`` so that a
    single printed line is enough to diagnose most failures.
    """

    code = ErrorCode.AUTH_FLOW

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        suggested_action: Optional[str] = None,
    ):
        self.message = message
        self.cause = cause
        self.suggested_action = suggested_action

        text = f"auth error [{self.code.name.lower()}]: {message}"
        if cause is not None:
            text += f": {cause}"
        super().__init__(text)


class AuthFlowError(AuthError):
    """The browser or token exchange part of the login failed."""
    code = ErrorCode.AUTH_FLOW


class LoginTimeoutError(AuthFlowError):
    """Nobody completed the login in the browser before the deadline."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"timed out after {timeout_seconds:g}s waiting for the browser login to complete",
            suggested_action=LOGIN_AGAIN,
        )


class TokenStorageError(AuthError):
    """Reading or writing the local credential files failed."""
    code = ErrorCode.TOKEN_STORAGE


class TokenExpiredError(AuthError):
    """Stored token is past its expiry."""
    code = ErrorCode.TOKEN_EXPIRED

    def __init__(self, message: str = "Token is expired"):
        super().__init__(message, suggested_action=LOGIN_AGAIN)


class InvalidTokenError(AuthError):
    """No usable token was found."""
    code = ErrorCode.INVALID_TOKEN

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause, suggested_action=LOGIN_AGAIN)


class AuthNetworkError(AuthError):
    """The local listener or the identity provider could not be reached."""
    code = ErrorCode.NETWORK_ERROR
