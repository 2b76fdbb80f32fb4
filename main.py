#!/usr/bin/env python3
"""MCP stdio server - Main entry point.

Serves a fixed set of tools, resources and prompts to a single client over
newline-delimited JSON-RPC 2.0 on stdin/stdout. Diagnostics go to stderr.

================================================================================
DEVELOPER GUIDE: Adding a Capability
================================================================================

1. WRITE THE HANDLER
   A tool handler takes the validated arguments dict and returns a
   ToolResult. It may be a plain function or an async function. Raise
   DomainError for failures the client should see; anything else is
   reported as an internal error without detail.

2. DESCRIBE IT
   Give it a ToolDefinition with a JSON Schema for its input. The schema
   is enforced before the handler runs, so required fields are always
   present.

3. REGISTER IT
   Add it in mcp_stdio_server/capabilities/__init__.py:

    builder.add_tool(
        ToolDefinition(
            name="word-count",
            description="Counts words in a text",
            input_schema={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        ),
        lambda args: ToolResult.text(str(len(args["text"].split()))),
    )

   Resources (add_resource / add_resource_template) and prompts
   (add_prompt) follow the same pattern. Registries are frozen once the
   server starts; there is no runtime registration.

SESSION TOKEN
-------------
If config sets security.session_token, the launching process must export a
matching MCP_SESSION_TOKEN or the server refuses to start.

================================================================================
"""

from __future__ import annotations

import argparse
import hmac
import os
import sys
from pathlib import Path

from mcp_stdio_server import __version__
from mcp_stdio_server.capabilities import build_default_registries
from mcp_stdio_server.config import ConfigLoadError, ServerConfig, load_config
from mcp_stdio_server.protocol.transport import StdioTransport, TransportWriteError
from mcp_stdio_server.server import MCPServer

SESSION_TOKEN_ENV = "MCP_SESSION_TOKEN"


def check_session_token(config: ServerConfig, environ: dict[str, str] | None = None) -> bool:
    """Check the out-of-band session token.

    Args:
        config: Server configuration.
        environ: Environment to read the presented token from (defaults to os.environ).

    Returns:
        True if no token is required or the presented token matches.
    """
    if not config.requires_session_token:
        return True
    environ = os.environ if environ is None else environ
    presented = environ.get(SESSION_TOKEN_ENV, "")
    return hmac.compare_digest(presented.encode(), config.session_token.encode())


def main(argv: list[str] | None = None) -> int:
    """Run the MCP server.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description="MCP stdio server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config/server.yaml"),
        help="Path to server configuration YAML file (default: config/server.yaml)",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"mcp-stdio-server {__version__}",
    )

    args = parser.parse_args(argv)

    # Load configuration, falling back to defaults when no file exists
    if args.config.exists():
        try:
            config = load_config(args.config)
        except ConfigLoadError as e:
            print(f"Error loading config: {e}", file=sys.stderr)
            return 1
    else:
        config = ServerConfig.defaults()

    transport = StdioTransport(
        max_message_size=config.max_message_size,
        log_level=config.log_level,
    )
    if not args.config.exists():
        transport.log(f"Config file not found: {args.config}, using defaults", "WARNING")

    if not check_session_token(config):
        transport.log("Session token rejected, refusing to serve", "ERROR")
        return 2

    try:
        registries = build_default_registries(config)
        server = MCPServer(registries=registries, config=config, log=transport.log)
    except Exception as e:
        transport.log(f"Error starting server: {e}", "ERROR")
        return 1

    transport.log(f"{config.server_name} {config.server_version} started")

    with server:
        try:
            server.serve(transport)
        except TransportWriteError:
            return 1
        except KeyboardInterrupt:
            transport.log("Interrupted, shutting down")
            return 130  # Standard exit code for SIGINT

    return 0


if __name__ == "__main__":
    sys.exit(main())
