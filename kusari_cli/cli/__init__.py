"""
CLI module for kusari-cli.

Provides the command-line interface on top of the core services.
"""
from kusari_cli.cli.app import app as _app

# Export app function for pyproject.toml entry point
def app():
    """Entry point function for pyproject.toml scripts."""
    _app()

__all__ = ['app']
