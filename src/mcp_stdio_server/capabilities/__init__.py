"""Default capability set served by the stdio server.

To expose another capability, add its definition and handler to
``build_default_registries``. Registration only happens here, at startup;
the resulting registries are frozen.
"""

from __future__ import annotations

from pathlib import Path

from mcp_stdio_server.capabilities.prompts import CODE_REVIEW_PROMPT, review_code
from mcp_stdio_server.capabilities.resources import (
    CONFIG_RESOURCE,
    DATA_FILE_RESOURCE,
    ConfigResource,
    DataFileResource,
)
from mcp_stdio_server.capabilities.tools import (
    BMI_TOOL,
    GREET_TOOL,
    WEATHER_TOOL,
    calculate_bmi,
    fetch_weather,
    greet,
)
from mcp_stdio_server.config import ServerConfig
from mcp_stdio_server.registry.registry import Registries, RegistryBuilder


def build_default_registries(config: ServerConfig | None = None) -> Registries:
    """Assemble the built-in tools, resources and prompts.

    Args:
        config: Server configuration (identity and data directory).

    Returns:
        Frozen registries.
    """
    config = config or ServerConfig.defaults()

    builder = RegistryBuilder()
    builder.add_tool(GREET_TOOL, greet)
    builder.add_tool(BMI_TOOL, calculate_bmi)
    builder.add_tool(WEATHER_TOOL, fetch_weather)

    builder.add_resource(CONFIG_RESOURCE, ConfigResource(config.server_name, config.server_version))
    builder.add_resource_template(DATA_FILE_RESOURCE, DataFileResource(Path(config.data_dir)))

    builder.add_prompt(CODE_REVIEW_PROMPT, review_code)
    return builder.build()


__all__ = ["build_default_registries"]
