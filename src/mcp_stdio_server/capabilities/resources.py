"""Built-in resources: application configuration and sandboxed data files."""

from __future__ import annotations

import json
from pathlib import Path

from mcp_stdio_server.protocol.errors import DomainError
from mcp_stdio_server.registry.base import (
    ResourceContents,
    ResourceDefinition,
    ResourceTemplateDefinition,
)

CONFIG_URI = "config://app"
DATA_FILE_TEMPLATE = "file:///data/{filename}"

MIME_TYPES = {
    ".txt": "text/plain",
    ".json": "application/json",
}

CONFIG_RESOURCE = ResourceDefinition(
    uri=CONFIG_URI,
    name="Application Configuration",
    description="Current application configuration",
    mime_type="application/json",
)

DATA_FILE_RESOURCE = ResourceTemplateDefinition(
    uri_template=DATA_FILE_TEMPLATE,
    name="Data Files",
    description="Text files from the server's data directory",
)


class ConfigResource:
    """Serves a static description of the running application."""

    def __init__(self, app_name: str, version: str, environment: str = "development") -> None:
        self._document = {
            "appName": app_name,
            "version": version,
            "environment": environment,
            "features": {
                "tools": True,
                "resources": True,
                "prompts": True,
            },
        }

    def __call__(self, uri: str, variables: dict[str, str]) -> list[ResourceContents]:
        return [
            ResourceContents(
                uri=uri,
                mime_type="application/json",
                text=json.dumps(self._document, indent=2),
            )
        ]


class DataFileResource:
    """Reads files from a base directory, refusing paths that escape it."""

    def __init__(self, base_dir: Path) -> None:
        """Initialize the resource.

        Args:
            base_dir: Directory that holds the readable files.
        """
        self._base_dir = base_dir

    def _resolve(self, filename: str) -> Path:
        """Resolve a filename inside the base directory.

        Raises:
            DomainError: If the path escapes the base directory.
        """
        if "\x00" in filename:
            raise DomainError("Invalid file name")

        base = self._base_dir.resolve()
        try:
            resolved = (base / filename).resolve()
            resolved.relative_to(base)
        except (OSError, ValueError):
            raise DomainError("Access denied: path traversal attempt") from None
        return resolved

    def __call__(self, uri: str, variables: dict[str, str]) -> list[ResourceContents]:
        filename = variables.get("filename", "")
        path = self._resolve(filename)

        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DomainError(f"File not found: {filename}") from None
        except (OSError, UnicodeDecodeError):
            raise DomainError(f"Failed to read file: {filename}") from None

        mime_type = MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")
        return [ResourceContents(uri=uri, mime_type=mime_type, text=text)]
