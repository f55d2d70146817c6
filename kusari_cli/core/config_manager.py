"""
Configuration management for kusari-cli.

Builds one immutable CliConfig per invocation. Sources, lowest priority
first: packaged default.yaml, a user YAML file, KUSARI_* environment
variables, explicit command-line options.
"""
import importlib.resources as importlib_resources
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from kusari_cli.constants import SSO_CLIENT_ID
from kusari_cli.upload.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

USER_CONFIG_FILE = "kusari.config.yaml"

# environment variable -> (section, key); section None means top level
ENV_VARS = {
    "KUSARI_CONSOLE_URL": ("platform", "console_url"),
    "KUSARI_PLATFORM_URL": ("platform", "platform_url"),
    "KUSARI_TENANT": ("platform", "tenant"),
    "KUSARI_TENANT_ENDPOINT": ("platform", "tenant_endpoint"),
    "KUSARI_AUTH_ENDPOINT": ("auth", "endpoint"),
    "KUSARI_CLIENT_ID": ("auth", "client_id"),
    "KUSARI_CLIENT_SECRET": ("auth", "client_secret"),
    "KUSARI_VERBOSE": (None, "verbose"),
}

# CliConfig field -> (section, key)
FIELD_SOURCES = {
    "console_url": ("platform", "console_url"),
    "platform_url": ("platform", "platform_url"),
    "tenant": ("platform", "tenant"),
    "tenant_endpoint": ("platform", "tenant_endpoint"),
    "auth_endpoint": ("auth", "endpoint"),
    "client_id": ("auth", "client_id"),
    "client_secret": ("auth", "client_secret"),
    "use_sso": ("auth", "use_sso"),
    "login_timeout": ("auth", "login_timeout"),
    "poll_interval": ("polling", "interval"),
    "poll_attempts": ("polling", "attempts"),
    "ingestion_poll_interval": ("polling", "ingestion_interval"),
    "ingestion_poll_attempts": ("polling", "ingestion_attempts"),
    "batch_deadline": ("polling", "batch_deadline"),
    "max_concurrency": ("polling", "max_concurrency"),
    "http_timeout": ("http", "timeout"),
    "verbose": (None, "verbose"),
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CliConfig:
    """Settings for one CLI invocation, passed explicitly to every service."""
    console_url: str
    platform_url: str
    auth_endpoint: str
    client_id: str
    client_secret: str = ""
    use_sso: bool = False
    tenant: str = ""
    tenant_endpoint: str = ""
    verbose: bool = False
    login_timeout: float = 300
    poll_interval: float = 5
    poll_attempts: int = 180
    ingestion_poll_interval: float = 2
    ingestion_poll_attempts: int = 450
    batch_deadline: float = 900
    max_concurrency: int = 5
    http_timeout: float = 30

    @property
    def effective_client_id(self) -> str:
        return SSO_CLIENT_ID if self.use_sso else self.client_id

    @property
    def non_interactive(self) -> bool:
        """A client secret means machine credentials and no prompts."""
        return bool(self.client_secret)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


class ConfigManager:
    """Manages kusari-cli configuration loading and merging operations."""

    def load_config(self, path: str) -> dict:
        """Load configuration from YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def deep_merge(self, default: dict, user: dict) -> dict:
        """Deep merge user config into default config."""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def load_package_default_config(self) -> dict:
        """Load default config from package."""
        import kusari_cli.config
        config_files = importlib_resources.files(kusari_cli.config)
        with (config_files / 'default.yaml').open('r') as f:
            return yaml.safe_load(f)

    def discover_and_load_config(self, config_arg: Optional[str]) -> dict:
        """Discover config file with priority order."""
        default_config = self.load_package_default_config()

        # Priority 1: --config argument
        if config_arg:
            if not os.path.exists(config_arg):
                raise ConfigurationError(f"Config file not found: {config_arg}")
            logger.debug("Loading config from %s", config_arg)
            return self.deep_merge(default_config, self.load_config(config_arg))

        # Priority 2: kusari.config.yaml in current directory
        if os.path.exists(USER_CONFIG_FILE):
            logger.debug("Loading config from %s", USER_CONFIG_FILE)
            return self.deep_merge(default_config, self.load_config(USER_CONFIG_FILE))

        # Priority 3: Package default config
        return default_config

    def apply_environment(self, config: dict, environ: Optional[Dict[str, str]] = None) -> dict:
        """Overlay KUSARI_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for name, (section, key) in ENV_VARS.items():
            value = environ.get(name)
            if value is None or value == "":
                continue
            if section is None:
                overrides[key] = value
            else:
                overrides.setdefault(section, {})[key] = value
        return self.deep_merge(config, overrides)

    def build_config(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Dict[str, str]] = None,
        **cli_options: Any,
    ) -> CliConfig:
        """Merge every source into a CliConfig.

        ``cli_options`` use CliConfig field names; None means "not given".
        """
        config = self.apply_environment(self.discover_and_load_config(config_path), environ)

        values: Dict[str, Any] = {}
        for field_name, (section, key) in FIELD_SOURCES.items():
            source = config if section is None else (config.get(section) or {})
            if key in source and source[key] is not None:
                values[field_name] = source[key]

        for field_name, value in cli_options.items():
            if field_name not in FIELD_SOURCES:
                raise ConfigurationError(f"Unknown option: {field_name}")
            if value is not None:
                values[field_name] = value

        return self._coerce(values)

    def _coerce(self, values: Dict[str, Any]) -> CliConfig:
        try:
            for name in ("use_sso", "verbose"):
                if name in values:
                    values[name] = _parse_bool(values[name])
            for name in ("poll_attempts", "ingestion_poll_attempts", "max_concurrency"):
                if name in values:
                    values[name] = int(values[name])
            for name in ("login_timeout", "poll_interval", "ingestion_poll_interval", "batch_deadline", "http_timeout"):
                if name in values:
                    values[name] = float(values[name])
            for name in ("console_url", "platform_url", "auth_endpoint", "client_id", "client_secret", "tenant", "tenant_endpoint"):
                if name in values:
                    values[name] = str(values[name])
            return CliConfig(**values)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}")
