"""
Data models for authentication state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional


@dataclass
class Token:
    """OAuth2 bearer token as persisted in the token store"""
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expiry": self.expiry.isoformat() if self.expiry else None,
        }
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        expiry = data.get("expiry")
        parsed_expiry = None
        if expiry:
            parsed_expiry = datetime.fromisoformat(expiry.replace("Z", "+00:00"))
            if parsed_expiry.tzinfo is None:
                parsed_expiry = parsed_expiry.replace(tzinfo=timezone.utc)
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token"),
            expiry=parsed_expiry,
        )

    @classmethod
    def from_token_response(cls, data: Dict[str, Any]) -> "Token":
        """Build a token from an OAuth2 token endpoint response body"""
        expiry = None
        expires_in = data.get("expires_in")
        if expires_in:
            expiry = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token"),
            expiry=expiry,
        )


@dataclass
class Workspace:
    """Workspace as returned by the platform user endpoint"""
    id: str
    description: str


@dataclass
class UserInfo:
    """Workspaces and their tenants for the authenticated user"""
    workspaces: List[Workspace]
    workspace_tenants: Dict[str, List[str]] = field(default_factory=dict)

    def tenants_for(self, workspace_id: str) -> List[str]:
        return self.workspace_tenants.get(workspace_id) or []


@dataclass
class WorkspaceSelection:
    """The single active workspace/tenant selection"""
    id: str
    description: str
    platform_url: str
    auth_endpoint: str
    tenant: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "description": self.description,
            "tenant": self.tenant,
            "platform_url": self.platform_url,
            "auth_endpoint": self.auth_endpoint,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkspaceSelection":
        return cls(
            id=data["id"],
            description=data.get("description", ""),
            platform_url=data.get("platform_url", ""),
            auth_endpoint=data.get("auth_endpoint", ""),
            tenant=data.get("tenant", ""),
        )
