"""
Repo command implementations.

Thin wrappers around RepoScanService.
"""
import typer

from kusari_cli.cli.options import build_config, exit_with
from kusari_cli.core.scanner import RepoScanService


def scan_command(
    ctx: typer.Context,
    directory: str = typer.Argument(..., help="Git repository directory"),
    rev: str = typer.Argument(..., help="Git revision to diff against (e.g. HEAD, main, HEAD~3)"),
    output_format: str = typer.Option("markdown", "-o", "--output-format", help="markdown or json"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for analysis results"),
):
    """Scan the changes in a repository against a git revision."""
    config = build_config(ctx)
    service = RepoScanService(config)
    exit_with(service.execute_scan(directory, rev=rev, full=False, output_format=output_format, wait=wait))


def risk_check_command(
    ctx: typer.Context,
    directory: str = typer.Argument(..., help="Git repository directory"),
    output_format: str = typer.Option("markdown", "-o", "--output-format", help="markdown or json"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for analysis results"),
):
    """Run a full risk check of a repository."""
    config = build_config(ctx)
    service = RepoScanService(config)
    exit_with(service.execute_scan(directory, rev="HEAD", full=True, output_format=output_format, wait=wait))
