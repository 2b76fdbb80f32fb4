"""The closed set of protocol methods the server routes."""

from __future__ import annotations

from enum import Enum


class Method(Enum):
    """Request methods known to the server."""

    INITIALIZE = "initialize"
    PING = "ping"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"

    @classmethod
    def lookup(cls, name: str) -> Method | None:
        """Return the method for a wire name, or None if unknown."""
        try:
            return cls(name)
        except ValueError:
            return None


class Notification(Enum):
    """Notification methods the server reacts to."""

    INITIALIZED = "notifications/initialized"
    CANCELLED = "notifications/cancelled"

    @classmethod
    def lookup(cls, name: str) -> Notification | None:
        """Return the notification for a wire name, or None if unknown."""
        # Older clients send the bare form
        if name == "initialized":
            return cls.INITIALIZED
        try:
            return cls(name)
        except ValueError:
            return None
