"""
Auth command implementations.

Thin wrappers around LoginService that handle CLI argument parsing
and delegate business logic to the service layer.
"""
from typing import Optional

import typer

from kusari_cli.cli.options import build_config, exit_with
from kusari_cli.core.login import LoginService


def login_command(
    ctx: typer.Context,
    auth_endpoint: Optional[str] = typer.Option(None, "-p", "--auth-endpoint", help="Authentication endpoint URL"),
    client_id: Optional[str] = typer.Option(None, "-c", "--client-id", help="OAuth2 client ID"),
    client_secret: Optional[str] = typer.Option(
        None, "-s", "--client-secret", help="OAuth2 client secret (non-interactive login)"
    ),
    use_sso: bool = typer.Option(False, "--use-sso", help="Use SSO (SAML) authentication"),
):
    """Log in to the Kusari platform."""
    config = build_config(
        ctx,
        auth_endpoint=auth_endpoint,
        client_id=client_id,
        client_secret=client_secret,
        use_sso=use_sso or None,
    )
    exit_with(LoginService(config).execute_login())


def logout_command(ctx: typer.Context):
    """Remove stored tokens and the workspace selection."""
    exit_with(LoginService(build_config(ctx)).execute_logout())


def select_workspace_command(ctx: typer.Context):
    """Choose a different workspace."""
    exit_with(LoginService(build_config(ctx)).execute_select_workspace())


def select_tenant_command(ctx: typer.Context):
    """Choose a different tenant of the current workspace."""
    exit_with(LoginService(build_config(ctx)).execute_select_tenant())
