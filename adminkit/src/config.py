"""
Admin client configuration module.

Manages the server URL, API token, permission grants and UI tuning
(page size, lookup limits). Configuration is loaded from a YAML file in
the platform config directory, with environment variable overrides.
"""

import os
import re
from pathlib import Path
from typing import List, Optional

import yaml
from platformdirs import user_config_dir

from adminkit.src.auth import AuthorizationContext, PermissionSet


# ============================================================================
# Constants
# ============================================================================

APP_NAME = "adminkit"
APP_AUTHOR = "adminkit"
CONFIG_FILENAME = "adminkit.yaml"

# Environment variable names
ENV_SERVER_URL = "ADMINKIT_SERVER_URL"
ENV_API_TOKEN = "ADMINKIT_API_TOKEN"
ENV_LOG_LEVEL = "ADMINKIT_LOG_LEVEL"
ENV_CONFIG_PATH = "ADMINKIT_CONFIG_PATH"

# Default values
DEFAULT_PAGE_SIZE = 20
DEFAULT_LOOKUP_LIMIT = 10
DEFAULT_LOOKUP_DEBOUNCE_MS = 300
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
DEFAULT_LOG_LEVEL = "INFO"

URL_PATTERN = re.compile(
    r"^https?://"
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,6}\.?|"
    r"localhost|"
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"
    r"(?::\d+)?"
    r"(?:/?|[/?]\S+)$",
    re.IGNORECASE,
)


# ============================================================================
# Exceptions
# ============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    pass


def get_default_config_path() -> Path:
    """
    Get the default configuration file path for the current platform.

    Returns:
        Path to the default config file
    """
    return Path(user_config_dir(APP_NAME, APP_AUTHOR)) / CONFIG_FILENAME


# ============================================================================
# AdminConfig Class
# ============================================================================


class AdminConfig:
    """
    Admin client configuration manager.

    Configuration sources (in priority order):
    1. Environment variables (server URL, token, log level)
    2. Configuration file
    3. Default values

    Attributes:
        server_url: API server URL
        api_token: Session token sent as bearer token
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        page_size: Rows per list page
        lookup_limit: Options returned per linked-record search
        lookup_debounce_ms: Debounce before a linked-record search runs
        request_timeout: HTTP timeout in seconds
        permissions: Grant strings ("service:entity:operation")
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Explicit path to config file (takes precedence)
        """
        if config_path:
            self._config_path = Path(config_path)
        elif os.environ.get(ENV_CONFIG_PATH):
            self._config_path = Path(os.environ[ENV_CONFIG_PATH])
        else:
            self._config_path = get_default_config_path()

        self._server_url: str = ""
        self._api_token: str = ""
        self._log_level: str = DEFAULT_LOG_LEVEL
        self.page_size: int = DEFAULT_PAGE_SIZE
        self.lookup_limit: int = DEFAULT_LOOKUP_LIMIT
        self.lookup_debounce_ms: int = DEFAULT_LOOKUP_DEBOUNCE_MS
        self.request_timeout: float = DEFAULT_REQUEST_TIMEOUT
        self.permissions: List[str] = []

        self._load()

    @property
    def config_path(self) -> Path:
        """Get the configuration file path."""
        return self._config_path

    # -------------------------------------------------------------------------
    # Properties with environment overrides
    # -------------------------------------------------------------------------

    @property
    def server_url(self) -> str:
        return os.environ.get(ENV_SERVER_URL, self._server_url)

    @server_url.setter
    def server_url(self, value: str) -> None:
        self._server_url = value

    @property
    def api_token(self) -> str:
        return os.environ.get(ENV_API_TOKEN, self._api_token)

    @api_token.setter
    def api_token(self, value: str) -> None:
        self._api_token = value

    @property
    def log_level(self) -> str:
        return os.environ.get(ENV_LOG_LEVEL, self._log_level)

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._log_level = value

    @property
    def is_configured(self) -> bool:
        """Check if a server URL is set."""
        return bool(self.server_url)

    # -------------------------------------------------------------------------
    # Configuration Management
    # -------------------------------------------------------------------------

    def _load(self) -> None:
        """Load configuration from file."""
        if not self._config_path.exists():
            return

        try:
            with open(self._config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {self._config_path}")

        self._server_url = data.get("server_url", "")
        self._api_token = data.get("api_token", "")
        self._log_level = data.get("log_level", DEFAULT_LOG_LEVEL)
        self.page_size = data.get("page_size", DEFAULT_PAGE_SIZE)
        self.lookup_limit = data.get("lookup_limit", DEFAULT_LOOKUP_LIMIT)
        self.lookup_debounce_ms = data.get("lookup_debounce_ms", DEFAULT_LOOKUP_DEBOUNCE_MS)
        self.request_timeout = data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        self.permissions = list(data.get("permissions") or [])

    def save(self) -> None:
        """Save configuration to file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "server_url": self._server_url,
            "api_token": self._api_token,
            "log_level": self._log_level,
            "page_size": self.page_size,
            "lookup_limit": self.lookup_limit,
            "lookup_debounce_ms": self.lookup_debounce_ms,
            "request_timeout": self.request_timeout,
            "permissions": self.permissions,
        }

        with open(self._config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def validate(self) -> None:
        """
        Validate the current configuration.

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        if self.server_url and not URL_PATTERN.match(self.server_url):
            raise ConfigValidationError(f"Invalid server_url format: {self.server_url}")

        if self.page_size <= 0:
            raise ConfigValidationError(f"page_size must be positive, got: {self.page_size}")

        if self.lookup_limit <= 0:
            raise ConfigValidationError(
                f"lookup_limit must be positive, got: {self.lookup_limit}"
            )

        if self.lookup_debounce_ms < 0:
            raise ConfigValidationError(
                f"lookup_debounce_ms must be non-negative, got: {self.lookup_debounce_ms}"
            )

        if self.request_timeout <= 0:
            raise ConfigValidationError(
                f"request_timeout must be positive, got: {self.request_timeout}"
            )

        for grant in self.permissions:
            try:
                PermissionSet.parse(grant)
            except ValueError as e:
                raise ConfigValidationError(str(e))

    def authorization_context(self) -> AuthorizationContext:
        """Build the authorization context for the configured session."""
        return AuthorizationContext(
            session_token=self.api_token or None,
            checker=PermissionSet(self.permissions),
        )
