"""MCP tools/*, resources/* and prompts/* handlers.

Each handler looks up the requested capability, validates its arguments and
runs it through the server-supplied invocation runner, then formats the
result in the MCP wire format.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mcp_stdio_server.protocol.errors import CapabilityNotFoundError, InvalidParamsError
from mcp_stdio_server.registry.base import PromptEntry, PromptResult, ResourceContents, ToolResult
from mcp_stdio_server.registry.invocation import DEFAULT_TIMEOUT, Invocation
from mcp_stdio_server.registry.registry import CapabilityRegistry, ResourceRegistry
from mcp_stdio_server.registry.validation import ArgumentValidator

Runner = Callable[[Invocation], Any]


def run_with_default_timeout(invocation: Invocation) -> Any:
    """Runner used when the server does not supply its own policy."""
    return invocation.run(DEFAULT_TIMEOUT)


def _require_string(params: dict[str, Any], key: str, what: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidParamsError(f"Missing {what}")
    return value


@dataclass
class ToolsListResult:
    """Result of tools/list request."""

    tools: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP result format.

        Returns:
            Dictionary in MCP tools/list result format.
        """
        return {"tools": self.tools}


@dataclass
class ToolsCallResult:
    """Result of tools/call request."""

    content: list[dict[str, Any]]
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP result format.

        Returns:
            Dictionary in MCP tools/call result format.
        """
        return {
            "content": self.content,
            "isError": self.is_error,
        }


class ToolsHandler:
    """Handles tools/list and tools/call MCP requests."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        validator: ArgumentValidator,
        runner: Runner = run_with_default_timeout,
    ) -> None:
        """Initialize the handler.

        Args:
            registry: Tool registry.
            validator: Validator applied to arguments before invocation.
            runner: Runs an invocation under the server's timeout policy.
        """
        self._registry = registry
        self._validator = validator
        self._runner = runner

    def handle_list(self) -> ToolsListResult:
        """Handle tools/list request.

        Returns:
            ToolsListResult with all registered tools.
        """
        return ToolsListResult(tools=self._registry.definitions())

    def handle_call(self, params: dict[str, Any]) -> ToolsCallResult:
        """Handle tools/call request.

        Args:
            params: Request params with 'name' and optional 'arguments'.

        Returns:
            ToolsCallResult with execution result.

        Raises:
            InvalidParamsError: If the name is missing or arguments fail validation.
            CapabilityNotFoundError: If no tool has that name.
        """
        name = _require_string(params, "name", "tool name")
        entry = self._registry.get(name)
        if entry is None:
            raise CapabilityNotFoundError(f"Tool not found: {name}")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        arguments = self._validator.validate_tool_arguments(
            name, entry.definition.input_schema, arguments
        )

        result = self._runner(Invocation(entry.handler, arguments))
        if not isinstance(result, ToolResult):
            raise TypeError(f"Tool '{name}' returned {type(result).__name__}, not ToolResult")
        return ToolsCallResult(content=result.content, is_error=result.is_error)


class ResourcesHandler:
    """Handles resources/list, resources/templates/list and resources/read."""

    def __init__(
        self, registry: ResourceRegistry, runner: Runner = run_with_default_timeout
    ) -> None:
        self._registry = registry
        self._runner = runner

    def handle_list(self) -> dict[str, Any]:
        return {"resources": self._registry.definitions()}

    def handle_templates_list(self) -> dict[str, Any]:
        return {"resourceTemplates": self._registry.templates.definitions()}

    def handle_read(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle resources/read request.

        Args:
            params: Request params with 'uri'.

        Returns:
            Dictionary in MCP resources/read result format.

        Raises:
            InvalidParamsError: If the URI is missing.
            CapabilityNotFoundError: If no resource or template matches the URI.
        """
        uri = _require_string(params, "uri", "resource URI")
        found = self._registry.match(uri)
        if found is None:
            raise CapabilityNotFoundError(f"Resource not found: {uri}")
        entry, variables = found

        contents = self._runner(Invocation(entry.handler, uri, variables))
        if not isinstance(contents, list) or not all(
            isinstance(item, ResourceContents) for item in contents
        ):
            raise TypeError(f"Resource handler for '{uri}' must return list[ResourceContents]")
        return {"contents": [item.to_dict() for item in contents]}


class PromptsHandler:
    """Handles prompts/list and prompts/get."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        validator: ArgumentValidator,
        runner: Runner = run_with_default_timeout,
    ) -> None:
        self._registry = registry
        self._validator = validator
        self._runner = runner

    def handle_list(self) -> dict[str, Any]:
        return {"prompts": self._registry.definitions()}

    def handle_get(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle prompts/get request.

        Args:
            params: Request params with 'name' and optional 'arguments'.

        Returns:
            Dictionary in MCP prompts/get result format.

        Raises:
            InvalidParamsError: If the name is missing or arguments are invalid.
            CapabilityNotFoundError: If no prompt has that name.
        """
        name = _require_string(params, "name", "prompt name")
        entry: PromptEntry | None = self._registry.get(name)
        if entry is None:
            raise CapabilityNotFoundError(f"Prompt not found: {name}")

        arguments = self._validator.validate_prompt_arguments(
            entry.definition, params.get("arguments")
        )

        result = self._runner(Invocation(entry.handler, arguments))
        if not isinstance(result, PromptResult):
            raise TypeError(f"Prompt '{name}' returned {type(result).__name__}, not PromptResult")
        return result.to_dict()
