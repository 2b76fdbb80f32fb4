"""Capability registries for tools, resources and prompts."""

from mcp_stdio_server.registry.base import (
    PromptArgument,
    PromptDefinition,
    PromptEntry,
    PromptMessage,
    PromptResult,
    ResourceContents,
    ResourceDefinition,
    ResourceEntry,
    ResourceTemplateDefinition,
    ResourceTemplateEntry,
    ToolDefinition,
    ToolEntry,
    ToolResult,
    text_content,
)
from mcp_stdio_server.registry.invocation import (
    Invocation,
    InvocationCancelledError,
    InvocationTimeoutError,
)
from mcp_stdio_server.registry.registry import (
    CapabilityRegistry,
    DuplicateCapabilityError,
    Registries,
    RegistryBuilder,
    ResourceRegistry,
)
from mcp_stdio_server.registry.validation import ArgumentValidator, InvalidSchemaError

__all__ = [
    "ArgumentValidator",
    "CapabilityRegistry",
    "DuplicateCapabilityError",
    "InvalidSchemaError",
    "Invocation",
    "InvocationCancelledError",
    "InvocationTimeoutError",
    "PromptArgument",
    "PromptDefinition",
    "PromptEntry",
    "PromptMessage",
    "PromptResult",
    "Registries",
    "RegistryBuilder",
    "ResourceContents",
    "ResourceDefinition",
    "ResourceEntry",
    "ResourceRegistry",
    "ResourceTemplateDefinition",
    "ResourceTemplateEntry",
    "ToolDefinition",
    "ToolEntry",
    "ToolResult",
    "text_content",
]
