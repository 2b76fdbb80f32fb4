"""Argument validation for capability invocations.

Tool arguments are checked against the tool's JSON Schema and prompt
arguments against the prompt's declared argument list, so a handler is never
invoked with missing or mistyped input.
"""

from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from mcp_stdio_server.protocol.errors import InvalidParamsError
from mcp_stdio_server.registry.base import PromptDefinition


class InvalidSchemaError(ValueError):
    """Raised when a tool declares an input schema that is not valid JSON Schema."""

    pass


def check_schema(name: str, schema: dict[str, Any]) -> None:
    """Verify a tool input schema at registration time.

    Args:
        name: Tool name (for error messages).
        schema: JSON Schema to check.

    Raises:
        InvalidSchemaError: If the schema is not a valid Draft 2020-12 schema.
    """
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise InvalidSchemaError(f"Invalid input schema for tool {name}: {e.message}") from e


def _error_path(error: Any) -> str:
    """Render a jsonschema error location as a dotted path."""
    return ".".join(str(p) for p in error.path) if error.path else "root"


class ArgumentValidator:
    """Validates capability arguments before handlers see them.

    Compiled tool validators are cached per tool name; the registries are
    immutable so the cache never goes stale.
    """

    def __init__(self) -> None:
        """Initialize the validator."""
        self._validators: dict[str, Draft202012Validator] = {}

    def _validator_for(self, tool_name: str, schema: dict[str, Any]) -> Draft202012Validator:
        validator = self._validators.get(tool_name)
        if validator is None:
            validator = Draft202012Validator(schema)
            self._validators[tool_name] = validator
        return validator

    def validate_tool_arguments(
        self, tool_name: str, schema: dict[str, Any], arguments: Any
    ) -> dict[str, Any]:
        """Validate tool input against its schema.

        Args:
            tool_name: Name of the tool (for error messages).
            schema: JSON Schema for the tool's input.
            arguments: Arguments to validate.

        Returns:
            The validated arguments.

        Raises:
            InvalidParamsError: If validation fails.
        """
        if not isinstance(arguments, dict):
            raise InvalidParamsError("Tool arguments must be an object")

        validator = self._validator_for(tool_name, schema)
        errors = sorted(
            validator.iter_errors(arguments),
            key=lambda e: [str(p) for p in e.path],
        )
        if errors:
            # Report first error
            error = errors[0]
            path = _error_path(error)
            raise InvalidParamsError(
                f"Invalid arguments for tool {tool_name}",
                data={"path": path, "reason": error.message},
            )
        return arguments

    def validate_prompt_arguments(
        self, definition: PromptDefinition, arguments: Any
    ) -> dict[str, str]:
        """Validate prompt arguments against the declared argument list.

        Args:
            definition: Prompt definition with its declared arguments.
            arguments: Arguments supplied by the client (None means none).

        Returns:
            The validated arguments.

        Raises:
            InvalidParamsError: If arguments are not strings or a required one is missing.
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("Prompt arguments must be an object")

        for key, value in arguments.items():
            if not isinstance(value, str):
                raise InvalidParamsError(
                    f"Invalid arguments for prompt {definition.name}",
                    data={"path": key, "reason": "prompt arguments must be strings"},
                )

        for arg in definition.arguments:
            if arg.required and arg.name not in arguments:
                raise InvalidParamsError(
                    f"Invalid arguments for prompt {definition.name}",
                    data={"path": arg.name, "reason": f"'{arg.name}' is a required argument"},
                )
        return arguments
