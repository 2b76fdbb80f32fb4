"""Capability descriptors, results and registry entries.

Defines the shapes every tool, resource and prompt implementation exchanges
with the server. Handlers may be plain functions or coroutine functions; a
handler reports a domain failure by raising ``DomainError``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

ToolHandler = Callable[[dict[str, Any]], "ToolResult | Awaitable[ToolResult]"]
ResourceHandler = Callable[
    [str, dict[str, str]], "list[ResourceContents] | Awaitable[list[ResourceContents]]"
]
PromptHandler = Callable[[dict[str, str]], "PromptResult | Awaitable[PromptResult]"]


def text_content(text: str) -> dict[str, Any]:
    """Build a text content block."""
    return {"type": "text", "text": text}


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool."""

    name: str
    description: str
    input_schema: dict[str, Any]
    annotations: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP tool format.

        Returns:
            Dictionary in MCP tools/list format.
        """
        tool: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.annotations is not None:
            tool["annotations"] = self.annotations
        return tool


@dataclass
class ToolResult:
    """Result of a tool execution."""

    content: list[dict[str, Any]]
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> ToolResult:
        """Successful result with a single text block."""
        return cls(content=[text_content(text)])

    @classmethod
    def error(cls, text: str) -> ToolResult:
        """In-band tool failure the model should see."""
        return cls(content=[text_content(text)], is_error=True)


@dataclass(frozen=True)
class ResourceDefinition:
    """Definition of a concrete resource addressed by URI."""

    uri: str
    name: str
    description: str = ""
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP resources/list format."""
        resource: dict[str, Any] = {"uri": self.uri, "name": self.name}
        if self.description:
            resource["description"] = self.description
        if self.mime_type:
            resource["mimeType"] = self.mime_type
        return resource


@dataclass(frozen=True)
class ResourceTemplateDefinition:
    """Definition of a family of resources addressed by a URI template."""

    uri_template: str
    name: str
    description: str = ""
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP resources/templates/list format."""
        template: dict[str, Any] = {"uriTemplate": self.uri_template, "name": self.name}
        if self.description:
            template["description"] = self.description
        if self.mime_type:
            template["mimeType"] = self.mime_type
        return template


@dataclass
class ResourceContents:
    """One content item returned from reading a resource."""

    uri: str
    mime_type: str
    text: str | None = None
    blob: str | None = None  # base64 encoded

    def to_dict(self) -> dict[str, Any]:
        contents: dict[str, Any] = {"uri": self.uri, "mimeType": self.mime_type}
        if self.text is not None:
            contents["text"] = self.text
        if self.blob is not None:
            contents["blob"] = self.blob
        return contents


@dataclass(frozen=True)
class PromptArgument:
    """An argument accepted by a prompt."""

    name: str
    description: str = ""
    required: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }


@dataclass(frozen=True)
class PromptDefinition:
    """Definition of a parameterized prompt."""

    name: str
    description: str
    arguments: tuple[PromptArgument, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP prompts/list format."""
        prompt: dict[str, Any] = {"name": self.name, "description": self.description}
        if self.arguments:
            prompt["arguments"] = [arg.to_dict() for arg in self.arguments]
        return prompt


@dataclass
class PromptMessage:
    """A single message in a rendered prompt."""

    role: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": text_content(self.text)}


@dataclass
class PromptResult:
    """Result of rendering a prompt."""

    messages: list[PromptMessage] = field(default_factory=list)
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP prompts/get result format."""
        result: dict[str, Any] = {"messages": [m.to_dict() for m in self.messages]}
        if self.description is not None:
            result["description"] = self.description
        return result


@dataclass(frozen=True)
class ToolEntry:
    """A registered tool: descriptor plus handler."""

    definition: ToolDefinition
    handler: ToolHandler

    @property
    def key(self) -> str:
        return self.definition.name


@dataclass(frozen=True)
class ResourceEntry:
    """A registered resource: descriptor plus handler."""

    definition: ResourceDefinition
    handler: ResourceHandler

    @property
    def key(self) -> str:
        return self.definition.uri


@dataclass(frozen=True)
class ResourceTemplateEntry:
    """A registered resource template: descriptor plus handler."""

    definition: ResourceTemplateDefinition
    handler: ResourceHandler

    @property
    def key(self) -> str:
        return self.definition.uri_template


@dataclass(frozen=True)
class PromptEntry:
    """A registered prompt: descriptor plus handler."""

    definition: PromptDefinition
    handler: PromptHandler

    @property
    def key(self) -> str:
        return self.definition.name
