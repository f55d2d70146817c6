"""
Main CLI application for kusari-cli.

Defines the Typer application structure and command routing,
with a thin CLI layer over the core services.
"""
import logging
from typing import Optional

import typer

from kusari_cli.cli.commands.auth import (
    login_command,
    logout_command,
    select_tenant_command,
    select_workspace_command,
)
from kusari_cli.cli.commands.platform import upload_command
from kusari_cli.cli.commands.repo import risk_check_command, scan_command
from kusari_cli.cli.options import GlobalOptions


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # urllib3 debug output would echo presigned URLs
    logging.getLogger("urllib3").setLevel(logging.INFO if verbose else logging.WARNING)


# Initialize Typer apps
app = typer.Typer(help="Kusari CLI - secure code review and supply chain checks on the Kusari platform")
auth_app = typer.Typer(help="Log in and choose the active workspace and tenant.")
repo_app = typer.Typer(help="Scan git repositories.")
platform_app = typer.Typer(help="Upload documents to the Kusari platform.")

app.add_typer(auth_app, name="auth")
app.add_typer(repo_app, name="repo")
app.add_typer(platform_app, name="platform")

# Register commands
auth_app.command("login", help="Authenticate with the Kusari platform.")(login_command)
auth_app.command("logout", help="Remove stored credentials.")(logout_command)
auth_app.command("select-workspace", help="Select the active workspace.")(select_workspace_command)
auth_app.command("select-tenant", help="Select the active tenant.")(select_tenant_command)

repo_app.command("scan", help="Scan the diff of a repository against a git revision.")(scan_command)
repo_app.command("risk-check", help="Run a full risk check of a repository.")(risk_check_command)

platform_app.command("upload", help="Upload SBOM or OpenVEX files.")(upload_command)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to config YAML"),
    console_url: Optional[str] = typer.Option(None, "--console-url", help="Console URL"),
    platform_url: Optional[str] = typer.Option(None, "--platform-url", help="Platform URL"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
):
    """Kusari CLI.

    Run 'kusari auth login' first, then 'kusari repo scan <dir> <rev>'.
    """
    configure_logging(verbose)
    ctx.obj = GlobalOptions(
        config_path=config_path,
        console_url=console_url,
        platform_url=platform_url,
        verbose=verbose or None,
    )
