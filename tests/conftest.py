"""Shared fixtures for server tests."""

import json
from typing import Any

import pytest

from mcp_stdio_server.protocol.errors import DomainError
from mcp_stdio_server.protocol.lifecycle import MCP_PROTOCOL_VERSION
from mcp_stdio_server.registry.base import (
    PromptArgument,
    PromptDefinition,
    PromptMessage,
    PromptResult,
    ResourceContents,
    ResourceDefinition,
    ToolDefinition,
    ToolResult,
)
from mcp_stdio_server.registry.registry import Registries, RegistryBuilder
from mcp_stdio_server.server import MCPServer

INIT_PARAMS = {
    "protocolVersion": MCP_PROTOCOL_VERSION,
    "capabilities": {},
    "clientInfo": {"name": "test-client", "version": "1.0"},
}


class CallCounter:
    """Echo tool that records how often it ran."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, arguments: dict[str, Any]) -> ToolResult:
        self.calls += 1
        return ToolResult.text(arguments["message"])


def _fail_domain(arguments: dict[str, Any]) -> ToolResult:
    raise DomainError("Quota exceeded", data={"limit": 3})


def _fail_internal(arguments: dict[str, Any]) -> ToolResult:
    raise KeyError("secret_column")


def _memo(uri: str, variables: dict[str, str]) -> list[ResourceContents]:
    return [ResourceContents(uri=uri, mime_type="text/plain", text="remember this")]


def _summarize(arguments: dict[str, str]) -> PromptResult:
    message = PromptMessage(role="user", text=f"Summarize: {arguments['text']}")
    return PromptResult(messages=[message])


def _schema(**properties: dict) -> dict:
    return {"type": "object", "properties": properties, "required": list(properties)}


@pytest.fixture
def echo_tool() -> CallCounter:
    """Echo handler with a call counter."""
    return CallCounter()


@pytest.fixture
def registries(echo_tool: CallCounter) -> Registries:
    """A small capability set covering every collection."""
    builder = RegistryBuilder()
    builder.add_tool(
        ToolDefinition(
            name="echo",
            description="Echoes input",
            input_schema=_schema(message={"type": "string"}),
        ),
        echo_tool,
    )
    builder.add_tool(
        ToolDefinition(name="quota", description="Always over quota", input_schema=_schema()),
        _fail_domain,
    )
    builder.add_tool(
        ToolDefinition(name="broken", description="Always crashes", input_schema=_schema()),
        _fail_internal,
    )
    builder.add_resource(ResourceDefinition(uri="memo://today", name="Today"), _memo)
    builder.add_prompt(
        PromptDefinition(
            name="summarize",
            description="Summarize text",
            arguments=(PromptArgument(name="text", required=True),),
        ),
        _summarize,
    )
    return builder.build()


@pytest.fixture
def server(registries: Registries) -> MCPServer:
    """Create a server over the test capabilities."""
    return MCPServer(registries=registries)


@pytest.fixture
def initialized_server(server: MCPServer) -> MCPServer:
    """Create a server that has completed the handshake."""
    server.handle_message(rpc("initialize", INIT_PARAMS, msg_id=0))
    server.handle_message(json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}))
    return server


def rpc(method: str, params: dict | None = None, msg_id: Any = 1) -> str:
    """Encode a request frame."""
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": msg_id, "method": method}
    if params is not None:
        message["params"] = params
    return json.dumps(message)


def notification(method: str, params: dict | None = None) -> str:
    """Encode a notification frame."""
    message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    return json.dumps(message)
