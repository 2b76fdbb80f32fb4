"""MCP Server - request dispatcher.

Integrates framing, validation, session lifecycle and the capability
registries into a complete single-client MCP server.
"""

from __future__ import annotations

import time
import traceback
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcp_stdio_server.audit import AuditLogger
from mcp_stdio_server.config import ServerConfig
from mcp_stdio_server.protocol.capabilities import PromptsHandler, ResourcesHandler, ToolsHandler
from mcp_stdio_server.protocol.errors import (
    DomainError,
    InternalError,
    InvalidNotificationError,
    JsonRpcError,
    MethodNotFoundError,
    to_jsonrpc_error,
)
from mcp_stdio_server.protocol.jsonrpc import (
    JsonRpcNotification,
    JsonRpcRequest,
    MessageId,
    format_error,
    format_response,
    parse_message,
)
from mcp_stdio_server.protocol.lifecycle import LifecycleManager
from mcp_stdio_server.protocol.methods import Method, Notification
from mcp_stdio_server.protocol.transport import StdioTransport, TransportWriteError
from mcp_stdio_server.registry.invocation import (
    Invocation,
    InvocationCancelledError,
    InvocationTimeoutError,
)
from mcp_stdio_server.registry.registry import Registries
from mcp_stdio_server.registry.validation import ArgumentValidator

LogFn = Callable[[str, str], None]

# Cancellations remembered for requests that have not arrived yet
MAX_PENDING_CANCELLATIONS = 64

# Recently answered request ids, used to drop late cancellations
MAX_ANSWERED_IDS = 64

# Methods whose invocations are recorded in the audit log, with the param naming the target
AUDITED_METHODS = {
    Method.TOOLS_CALL: "name",
    Method.RESOURCES_READ: "uri",
    Method.PROMPTS_GET: "name",
}


def _discard_log(message: str, level: str = "INFO") -> None:
    """Log sink used when no diagnostic channel is configured."""


class MCPServer:
    """MCP Server implementation.

    Processes one frame at a time, strictly in arrival order:
    - Lifecycle management (initialize, initialized acknowledgment)
    - Tool, resource and prompt listing and invocation
    - Error mapping for every failure path
    """

    def __init__(
        self,
        registries: Registries | None = None,
        config: ServerConfig | None = None,
        log: LogFn | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        """Initialize the server.

        Args:
            registries: Frozen capability registries to serve.
            config: Server configuration (defaults when omitted).
            log: Diagnostic log sink, called as log(message, level).
            audit_logger: Audit log; opened from config.audit_log_file when omitted.
        """
        self._config = config or ServerConfig.defaults()
        self._registries = registries or Registries()
        self._log_fn = log or _discard_log

        if audit_logger is None and self._config.audit_log_file:
            audit_logger = AuditLogger(Path(self._config.audit_log_file))
        self._audit = audit_logger

        # Initialize components
        self._lifecycle = LifecycleManager(
            server_info=self._config.server_info,
            capabilities=self._advertised_capabilities(),
            supported_versions=list(self._config.supported_versions),
        )
        validator = ArgumentValidator()
        self._tools_handler = ToolsHandler(self._registries.tools, validator, self._run_invocation)
        self._resources_handler = ResourcesHandler(self._registries.resources, self._run_invocation)
        self._prompts_handler = PromptsHandler(
            self._registries.prompts, validator, self._run_invocation
        )

        self._routes: dict[Method, Callable[[dict[str, Any]], Any]] = {
            Method.TOOLS_LIST: lambda params: self._tools_handler.handle_list().to_dict(),
            Method.TOOLS_CALL: lambda params: self._tools_handler.handle_call(params).to_dict(),
            Method.RESOURCES_LIST: lambda params: self._resources_handler.handle_list(),
            Method.RESOURCES_TEMPLATES_LIST: (
                lambda params: self._resources_handler.handle_templates_list()
            ),
            Method.RESOURCES_READ: self._resources_handler.handle_read,
            Method.PROMPTS_LIST: lambda params: self._prompts_handler.handle_list(),
            Method.PROMPTS_GET: self._prompts_handler.handle_get,
        }

        self._pending_cancellations: deque[MessageId] = deque(maxlen=MAX_PENDING_CANCELLATIONS)
        self._answered_ids: deque[MessageId] = deque(maxlen=MAX_ANSWERED_IDS)
        self._cancel_current = False

    @property
    def lifecycle(self) -> LifecycleManager:
        """Session state for this connection."""
        return self._lifecycle

    def _advertised_capabilities(self) -> dict[str, Any]:
        """Capability flags for the initialize response."""
        capabilities: dict[str, Any] = {}
        if len(self._registries.tools):
            capabilities["tools"] = {"listChanged": False}
        resources = self._registries.resources
        if len(resources) or len(resources.templates):
            capabilities["resources"] = {"subscribe": False, "listChanged": False}
        if len(self._registries.prompts):
            capabilities["prompts"] = {"listChanged": False}
        return capabilities

    def _log(self, message: str, level: str = "INFO") -> None:
        """Emit a diagnostic; a failing sink must not affect the protocol."""
        try:
            self._log_fn(message, level)
        except Exception:
            pass

    def handle_message(self, raw_message: str) -> str | None:
        """Handle an incoming JSON-RPC message.

        Args:
            raw_message: Raw JSON-RPC message string.

        Returns:
            Response string, or None for notifications.
        """
        try:
            message = parse_message(raw_message, self._config.max_message_size)
        except InvalidNotificationError as e:
            self._log(f"Dropping malformed notification: {e.message}", "WARNING")
            return None
        except JsonRpcError as e:
            return self.error_response(e.msg_id, e)

        if isinstance(message, JsonRpcNotification):
            self._handle_notification(message)
            return None
        return self._handle_request(message)

    def error_response(self, msg_id: MessageId, exc: BaseException) -> str:
        """Map a failure to an error response, logging the full detail.

        Args:
            msg_id: Request id, or None when it could not be recovered.
            exc: The failure.

        Returns:
            JSON-RPC error response string.
        """
        error = to_jsonrpc_error(exc)
        if error is exc:
            detail = str(exc)
            self._log(f"Request {msg_id!r} failed: {error.code} {error.message}", "DEBUG")
        else:
            detail = "".join(traceback.format_exception(exc)).rstrip()
            self._log(f"Unhandled error in request {msg_id!r}: {detail}", "ERROR")

        if self._audit:
            self._audit.log_error(msg_id, error.code, error.message, detail)

        try:
            return format_error(msg_id, error.code, error.message, error.data)
        except (TypeError, ValueError):
            # Unserializable error data
            return format_error(msg_id, error.code, error.message)

    def _handle_notification(self, notification: JsonRpcNotification) -> None:
        """Handle a notification (never produces a response).

        Args:
            notification: The notification to handle.
        """
        try:
            kind = Notification.lookup(notification.method)
            if kind is Notification.INITIALIZED:
                self._log("Client acknowledged initialization", "INFO")
            elif kind is Notification.CANCELLED:
                self._record_cancellation((notification.params or {}).get("requestId"))
            else:
                # Other notifications are silently ignored
                self._log(f"Ignoring notification: {notification.method}", "DEBUG")
        except Exception as e:
            self._log(f"Error while handling notification {notification.method}: {e}", "ERROR")

    def _record_cancellation(self, request_id: MessageId) -> None:
        """Remember a cancellation for a request that has not arrived yet.

        Cancellations naming an already answered request are dropped.
        """
        if request_id is None:
            return
        if request_id in self._answered_ids:
            self._log(f"Request {request_id!r} already answered, ignoring cancellation", "DEBUG")
            return
        self._pending_cancellations.append(request_id)
        self._log(f"Cancellation recorded for request {request_id!r}", "DEBUG")

    def _take_cancellation(self, request_id: MessageId) -> bool:
        """Consume the pending cancellation for a request being dispatched."""
        if request_id in self._pending_cancellations:
            self._pending_cancellations.remove(request_id)
            return True
        return False

    def _handle_request(self, request: JsonRpcRequest) -> str:
        """Handle a request and return exactly one response.

        Args:
            request: The request to handle.

        Returns:
            JSON-RPC response string.
        """
        method = Method.lookup(request.method)
        params = request.params or {}
        target = AUDITED_METHODS.get(method) if method else None
        audited = self._audit is not None and target is not None
        if audited:
            name = params.get(target)
            arguments = params.get("arguments")
            self._audit.log_request(
                request.id,
                request.method,
                name if isinstance(name, str) else "",
                arguments if isinstance(arguments, dict) else {},
            )

        started = time.monotonic()
        self._cancel_current = self._take_cancellation(request.id)
        status = "success"
        try:
            result = self._dispatch(method, request.method, params)
            return format_response(request.id, result)
        except Exception as e:
            status = self._outcome(e)
            return self.error_response(request.id, e)
        finally:
            self._cancel_current = False
            self._answered_ids.append(request.id)
            if audited:
                duration_ms = (time.monotonic() - started) * 1000
                self._audit.log_response(request.id, status, round(duration_ms, 3))

    @staticmethod
    def _outcome(exc: BaseException) -> str:
        if isinstance(exc, DomainError):
            return "domain_error"
        if isinstance(exc.__cause__, InvocationTimeoutError):
            return "timeout"
        return "error"

    def _dispatch(self, method: Method | None, name: str, params: dict[str, Any]) -> Any:
        """Route a request to its handler.

        Raises:
            MethodNotFoundError: If the method is unknown.
            NotInitializedError: If a capability method arrives before initialize.
        """
        if method is None:
            raise MethodNotFoundError(f"Method not found: {name}")

        # Initialize is special - allowed before the session is ready
        if method is Method.INITIALIZE:
            result = self._lifecycle.handle_initialize(params)
            client = self._lifecycle.connected_client or {}
            self._log(
                f"Initialized session with {client.get('name', 'unknown client')} "
                f"(protocol {self._lifecycle.negotiated_version})",
                "INFO",
            )
            return result

        if method is Method.PING:
            return {}

        # All capability methods require an initialized session
        self._lifecycle.require_initialized()
        self._log(f"Handling {name}", "DEBUG")
        return self._routes[method](params)

    def _run_invocation(self, invocation: Invocation) -> Any:
        """Run a handler invocation under the server's timeout policy.

        Raises:
            InternalError: If the invocation timed out or was cancelled.
        """
        if self._cancel_current:
            invocation.cancel()

        try:
            return invocation.run(self._config.tool_timeout)
        except InvocationTimeoutError as e:
            raise InternalError("Request timed out") from e
        except InvocationCancelledError as e:
            raise InternalError("Request cancelled") from e

    def serve(self, transport: StdioTransport) -> None:
        """Run the read-dispatch-write loop until the stream ends.

        Args:
            transport: Frame transport connected to the client.

        Raises:
            TransportWriteError: If a response could not be written.
        """
        self._log("Server ready, waiting for messages", "INFO")
        try:
            while True:
                try:
                    message = transport.read_message()
                except JsonRpcError as e:
                    # Unreadable frame: the request id cannot be recovered
                    transport.write_message(self.error_response(None, e))
                    continue

                if message is None:
                    self._log("EOF received, shutting down", "INFO")
                    break

                response = self.handle_message(message)
                if response is not None:
                    transport.write_message(response)
        except TransportWriteError as e:
            self._log(f"Fatal transport error, closing session: {e}", "ERROR")
            raise
        finally:
            self._lifecycle.close()

    def close(self) -> None:
        """Close the session and release the audit log."""
        self._lifecycle.close()
        if self._audit:
            self._audit.close()

    def __enter__(self) -> MCPServer:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
