"""MCP stdio server - tools, resources and prompts over newline-delimited JSON-RPC."""

__version__ = "1.0.0"
