"""Server configuration loader and validation.

This module loads server settings from a YAML configuration file. Values
not present in the file fall back to built-in defaults.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from mcp_stdio_server.protocol.jsonrpc import MAX_MESSAGE_SIZE
from mcp_stdio_server.protocol.lifecycle import SUPPORTED_PROTOCOL_VERSIONS
from mcp_stdio_server.protocol.transport import LOG_LEVELS


class ConfigLoadError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports ${VAR_NAME} syntax. Unknown variables are left unchanged.

    Args:
        value: String potentially containing environment variable references.

    Returns:
        String with known environment variables expanded.
    """
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        # Special handling for HOME
        if var_name == "HOME":
            return os.path.expanduser("~")
        return match.group(0)  # Return unchanged if not found

    return pattern.sub(replacer, value)


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration.

    Immutable settings loaded from server.yaml that control identity,
    transport limits, dispatch timeouts and logging.
    """

    version: str = "1.0"

    # Server identity
    server_name: str = "mcp-stdio-server"
    server_version: str = "1.0.0"

    # Protocol settings
    supported_versions: tuple[str, ...] = tuple(SUPPORTED_PROTOCOL_VERSIONS)

    # Transport settings
    max_message_size: int = MAX_MESSAGE_SIZE

    # Tool settings
    tool_timeout: float = 30

    # Logging settings
    log_level: str = "INFO"
    audit_log_file: str = ""

    # Resource settings
    data_dir: str = "./data"

    # Security settings
    session_token: str = ""

    @classmethod
    def defaults(cls) -> ServerConfig:
        """Configuration used when no file is supplied."""
        return cls()

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ServerConfig:
        """Create a ServerConfig from a configuration dictionary.

        Args:
            config: Dictionary parsed from YAML configuration.

        Returns:
            ServerConfig instance with all settings populated.

        Raises:
            ConfigLoadError: If a value is out of range or has the wrong type.
        """
        sections = (
            "server",
            "protocol",
            "transport",
            "tools",
            "logging",
            "audit",
            "resources",
            "security",
        )
        for section in sections:
            if not isinstance(config.get(section, {}), dict):
                raise ConfigLoadError(f"Config section '{section}' must be a mapping")

        server = config.get("server", {})
        protocol = config.get("protocol", {})
        transport = config.get("transport", {})
        tools = config.get("tools", {})
        logging = config.get("logging", {})
        audit = config.get("audit", {})
        resources = config.get("resources", {})
        security = config.get("security", {})

        defaults = cls.defaults()

        supported = protocol.get("supported_versions", list(defaults.supported_versions))
        if not isinstance(supported, list) or not supported:
            raise ConfigLoadError("protocol.supported_versions must be a non-empty list")

        max_message_size = transport.get("max_message_size", defaults.max_message_size)
        if not isinstance(max_message_size, int) or max_message_size <= 0:
            raise ConfigLoadError("transport.max_message_size must be a positive integer")

        tool_timeout = tools.get("timeout", defaults.tool_timeout)
        if isinstance(tool_timeout, bool) or not isinstance(tool_timeout, int | float):
            raise ConfigLoadError("tools.timeout must be a number")
        if tool_timeout <= 0:
            raise ConfigLoadError("tools.timeout must be positive")

        log_level = str(logging.get("level", defaults.log_level)).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigLoadError(f"Unknown log level: {log_level}")

        return cls(
            version=str(config.get("version", "")),
            server_name=str(server.get("name", defaults.server_name)),
            server_version=str(server.get("version", defaults.server_version)),
            supported_versions=tuple(str(v) for v in supported),
            max_message_size=max_message_size,
            tool_timeout=tool_timeout,
            log_level=log_level,
            audit_log_file=expand_env_vars(audit.get("log_file", "") or ""),
            data_dir=expand_env_vars(str(resources.get("data_dir", defaults.data_dir))),
            session_token=expand_env_vars(str(security.get("session_token", "") or "")),
        )

    @property
    def server_info(self) -> dict[str, str]:
        """Server identity sent in the initialize response."""
        return {"name": self.server_name, "version": self.server_version}

    @property
    def requires_session_token(self) -> bool:
        """Whether the launcher must present a matching session token."""
        return bool(self.session_token)


def load_config(path: Path) -> ServerConfig:
    """Load server configuration from a YAML file.

    Args:
        path: Path to the configuration YAML file.

    Returns:
        ServerConfig instance.

    Raises:
        ConfigLoadError: If the file cannot be found, parsed, or validated.
    """
    if not path.exists():
        raise ConfigLoadError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse config YAML: {e}") from e

    if not isinstance(config, dict):
        raise ConfigLoadError("Config must be a YAML mapping")

    if "version" not in config:
        raise ConfigLoadError("Config must include 'version' field")

    return ServerConfig.from_dict(config)
