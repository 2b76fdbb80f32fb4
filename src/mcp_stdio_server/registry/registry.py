"""Capability registries - immutable lookup tables for tools, resources and prompts.

Registries are assembled once at startup by ``RegistryBuilder`` and handed
to the server read-only; nothing can be added or removed afterwards.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from mcp_stdio_server.registry.base import (
    PromptDefinition,
    PromptEntry,
    PromptHandler,
    ResourceDefinition,
    ResourceEntry,
    ResourceHandler,
    ResourceTemplateDefinition,
    ResourceTemplateEntry,
    ToolDefinition,
    ToolEntry,
    ToolHandler,
)
from mcp_stdio_server.registry.validation import check_schema

EntryT = TypeVar("EntryT", ToolEntry, ResourceEntry, PromptEntry, ResourceTemplateEntry)

_TEMPLATE_VAR = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class DuplicateCapabilityError(ValueError):
    """Raised when two capabilities share an identifier in one collection."""

    pass


class CapabilityRegistry(Generic[EntryT]):
    """Read-only, registration-ordered mapping from identifier to entry."""

    def __init__(self, entries: list[EntryT] | tuple[EntryT, ...] = ()) -> None:
        """Build the registry.

        Args:
            entries: Entries in registration order.

        Raises:
            DuplicateCapabilityError: If two entries share a key.
        """
        table: dict[str, EntryT] = {}
        for entry in entries:
            if entry.key in table:
                raise DuplicateCapabilityError(f"Duplicate capability identifier: {entry.key}")
            table[entry.key] = entry
        self._entries = MappingProxyType(table)

    def get(self, key: str) -> EntryT | None:
        """Look up an entry by identifier."""
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def entries(self) -> list[EntryT]:
        """All entries in registration order."""
        return list(self._entries.values())

    def definitions(self) -> list[dict[str, Any]]:
        """All descriptors in MCP list format, in registration order."""
        return [entry.definition.to_dict() for entry in self._entries.values()]


def compile_uri_template(template: str) -> re.Pattern[str]:
    """Compile a URI template with ``{name}`` placeholders into a regex.

    Each placeholder matches a single non-empty path segment.
    """
    parts: list[str] = []
    pos = 0
    for match in _TEMPLATE_VAR.finditer(template):
        parts.append(re.escape(template[pos : match.start()]))
        parts.append(f"(?P<{match.group(1)}>[^/]+)")
        pos = match.end()
    parts.append(re.escape(template[pos:]))
    return re.compile("".join(parts))


class ResourceRegistry(CapabilityRegistry[ResourceEntry]):
    """Resource registry with URI-template fallback."""

    def __init__(
        self,
        entries: list[ResourceEntry] | tuple[ResourceEntry, ...] = (),
        templates: list[ResourceTemplateEntry] | tuple[ResourceTemplateEntry, ...] = (),
    ) -> None:
        super().__init__(entries)
        self._templates = CapabilityRegistry(templates)
        self._patterns = tuple(
            (compile_uri_template(t.key), t) for t in self._templates.entries()
        )

    @property
    def templates(self) -> CapabilityRegistry[ResourceTemplateEntry]:
        """Registered resource templates."""
        return self._templates

    def match(
        self, uri: str
    ) -> tuple[ResourceEntry | ResourceTemplateEntry, dict[str, str]] | None:
        """Resolve a URI to an entry.

        Exact URIs win; templates are tried in registration order.

        Returns:
            The entry and the extracted template variables, or None.
        """
        entry = self.get(uri)
        if entry is not None:
            return entry, {}
        for pattern, template in self._patterns:
            found = pattern.fullmatch(uri)
            if found:
                return template, found.groupdict()
        return None


@dataclass(frozen=True)
class Registries:
    """The three capability collections the server exposes."""

    tools: CapabilityRegistry[ToolEntry] = field(default_factory=CapabilityRegistry)
    resources: ResourceRegistry = field(default_factory=ResourceRegistry)
    prompts: CapabilityRegistry[PromptEntry] = field(default_factory=CapabilityRegistry)


class RegistryBuilder:
    """Collects capabilities at startup and freezes them into ``Registries``."""

    def __init__(self) -> None:
        """Initialize the builder."""
        self._tools: list[ToolEntry] = []
        self._resources: list[ResourceEntry] = []
        self._templates: list[ResourceTemplateEntry] = []
        self._prompts: list[PromptEntry] = []
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("Registries are frozen; register capabilities before build()")

    def add_tool(self, definition: ToolDefinition, handler: ToolHandler) -> RegistryBuilder:
        """Register a tool.

        Raises:
            InvalidSchemaError: If the input schema is not valid JSON Schema.
        """
        self._check_open()
        check_schema(definition.name, definition.input_schema)
        self._tools.append(ToolEntry(definition, handler))
        return self

    def add_resource(
        self, definition: ResourceDefinition, handler: ResourceHandler
    ) -> RegistryBuilder:
        """Register a resource at a fixed URI."""
        self._check_open()
        self._resources.append(ResourceEntry(definition, handler))
        return self

    def add_resource_template(
        self, definition: ResourceTemplateDefinition, handler: ResourceHandler
    ) -> RegistryBuilder:
        """Register a family of resources behind a URI template."""
        self._check_open()
        self._templates.append(ResourceTemplateEntry(definition, handler))
        return self

    def add_prompt(self, definition: PromptDefinition, handler: PromptHandler) -> RegistryBuilder:
        """Register a prompt."""
        self._check_open()
        self._prompts.append(PromptEntry(definition, handler))
        return self

    def build(self) -> Registries:
        """Freeze everything registered so far.

        Raises:
            DuplicateCapabilityError: If an identifier repeats within a collection.
        """
        self._check_open()
        registries = Registries(
            tools=CapabilityRegistry(self._tools),
            resources=ResourceRegistry(self._resources, self._templates),
            prompts=CapabilityRegistry(self._prompts),
        )
        self._built = True
        return registries
