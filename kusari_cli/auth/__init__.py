"""
Authentication for the Kusari platform: browser PKCE login, local token
storage and workspace selection.
"""

from .exceptions import (
    AuthError,
    AuthFlowError,
    AuthNetworkError,
    ErrorCode,
    InvalidTokenError,
    LoginTimeoutError,
    TokenExpiredError,
    TokenStorageError,
)
from .models import Token, UserInfo, Workspace, WorkspaceSelection
from .session import SessionManager
from .storage import CredentialStore, check_token_expiry
from .workspace import WorkspaceResolver

__all__ = [
    'AuthError',
    'AuthFlowError',
    'AuthNetworkError',
    'ErrorCode',
    'InvalidTokenError',
    'LoginTimeoutError',
    'TokenExpiredError',
    'TokenStorageError',
    'Token',
    'UserInfo',
    'Workspace',
    'WorkspaceSelection',
    'SessionManager',
    'CredentialStore',
    'check_token_expiry',
    'WorkspaceResolver',
]
