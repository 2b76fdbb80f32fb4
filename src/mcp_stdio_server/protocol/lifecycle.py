"""MCP lifecycle management.

Handles the initialize handshake and tracks session state for the lifetime
of the connection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcp_stdio_server.protocol.errors import (
    InvalidParamsError,
    InvalidRequestError,
    NotInitializedError,
)

# Supported MCP protocol versions (preferred first)
SUPPORTED_PROTOCOL_VERSIONS = ["2025-03-26", "2024-11-05"]
# Default version to advertise
MCP_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]


class LifecycleState(Enum):
    """MCP session lifecycle states."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


@dataclass
class LifecycleManager:
    """Manages the MCP session lifecycle.

    The only transition into INITIALIZED is a successful ``initialize``
    request. A repeated ``initialize`` is rejected rather than renegotiated.
    """

    server_info: dict[str, str] = field(
        default_factory=lambda: {"name": "mcp-stdio-server", "version": "1.0.0"}
    )
    capabilities: dict[str, Any] = field(default_factory=dict)
    supported_versions: list[str] = field(
        default_factory=lambda: list(SUPPORTED_PROTOCOL_VERSIONS)
    )
    state: LifecycleState = LifecycleState.UNINITIALIZED
    protocol_version: str | None = None
    client_info: dict[str, Any] | None = None
    client_capabilities: dict[str, Any] | None = None

    @property
    def is_initialized(self) -> bool:
        """Check if the handshake has completed."""
        return self.state == LifecycleState.INITIALIZED

    @property
    def connected_client(self) -> dict[str, Any] | None:
        """Get information about the connected client.

        Returns:
            Client info dict with 'name' and 'version', or None if not initialized.
        """
        return self.client_info

    @property
    def client_caps(self) -> dict[str, Any]:
        """Get the connected client's capabilities.

        Returns:
            Client capabilities dict, or empty dict if not initialized.
        """
        return self.client_capabilities or {}

    @property
    def negotiated_version(self) -> str | None:
        """Protocol version agreed during the handshake."""
        return self.protocol_version

    def require_initialized(self) -> None:
        """Assert that the session may serve capability methods.

        Raises:
            NotInitializedError: If the handshake has not completed.
        """
        if self.state != LifecycleState.INITIALIZED:
            raise NotInitializedError("Server not initialized")

    def negotiate_version(self, requested: str | None) -> str:
        """Pick the protocol version to answer with.

        Args:
            requested: Version the client asked for, if any.

        Returns:
            The requested version when supported, else the preferred one.
        """
        if requested in self.supported_versions:
            return requested
        return self.supported_versions[0]

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle initialize request.

        Args:
            params: Initialize request parameters.

        Returns:
            Initialize response result.

        Raises:
            InvalidRequestError: If the session is not uninitialized.
            InvalidParamsError: If the parameters have the wrong shape.
        """
        if self.state == LifecycleState.CLOSED:
            raise InvalidRequestError("Session closed")
        if self.state != LifecycleState.UNINITIALIZED:
            raise InvalidRequestError("Server already initialized")

        requested_version = params.get("protocolVersion")
        if requested_version is not None and not isinstance(requested_version, str):
            raise InvalidParamsError("protocolVersion must be a string")

        client_info = params.get("clientInfo")
        if client_info is not None and not isinstance(client_info, dict):
            raise InvalidParamsError("clientInfo must be an object")

        client_capabilities = params.get("capabilities", {})
        if not isinstance(client_capabilities, dict):
            raise InvalidParamsError("capabilities must be an object")

        self.protocol_version = self.negotiate_version(requested_version)
        self.client_info = client_info
        self.client_capabilities = client_capabilities
        self.state = LifecycleState.INITIALIZED

        return {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info,
        }

    def close(self) -> None:
        """Mark the session closed (stream ended or became unwritable)."""
        self.state = LifecycleState.CLOSED
