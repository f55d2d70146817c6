"""
Shared option handling for CLI commands.

Global options are collected once by the root callback and merged with each
command's own options into a single CliConfig.
"""
from dataclasses import dataclass
from typing import Any, Optional

import typer

from kusari_cli.core.config_manager import CliConfig, ConfigManager
from kusari_cli.rich_utils.ui_helpers import get_console, print_error
from kusari_cli.upload.exceptions import ConfigurationError


@dataclass
class GlobalOptions:
    config_path: Optional[str] = None
    console_url: Optional[str] = None
    platform_url: Optional[str] = None
    verbose: Optional[bool] = None


def build_config(ctx: typer.Context, **overrides: Any) -> CliConfig:
    """Merge global and command options into a CliConfig, exiting 1 on bad config."""
    options = ctx.obj if isinstance(ctx.obj, GlobalOptions) else GlobalOptions()
    try:
        return ConfigManager().build_config(
            options.config_path,
            console_url=options.console_url,
            platform_url=options.platform_url,
            verbose=options.verbose,
            **overrides,
        )
    except ConfigurationError as e:
        print_error(get_console(), str(e))
        raise typer.Exit(1)


def exit_with(code: int) -> None:
    if code != 0:
        raise typer.Exit(code)
