"""MCP Protocol layer for JSON-RPC communication."""

from mcp_stdio_server.protocol.errors import (
    CAPABILITY_NOT_FOUND,
    DOMAIN_ERROR,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    NOT_INITIALIZED,
    PARSE_ERROR,
    CapabilityNotFoundError,
    DomainError,
    FrameTooLargeError,
    InternalError,
    InvalidNotificationError,
    InvalidParamsError,
    InvalidRequestError,
    JsonRpcError,
    MethodNotFoundError,
    NotInitializedError,
    ParseError,
    to_jsonrpc_error,
)
from mcp_stdio_server.protocol.jsonrpc import (
    JsonRpcNotification,
    JsonRpcRequest,
    format_error,
    format_response,
    parse_message,
)
from mcp_stdio_server.protocol.lifecycle import (
    MCP_PROTOCOL_VERSION,
    LifecycleManager,
    LifecycleState,
)
from mcp_stdio_server.protocol.methods import Method, Notification
from mcp_stdio_server.protocol.transport import StdioTransport, TransportWriteError

__all__ = [
    "CAPABILITY_NOT_FOUND",
    "DOMAIN_ERROR",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "MCP_PROTOCOL_VERSION",
    "NOT_INITIALIZED",
    "PARSE_ERROR",
    "CapabilityNotFoundError",
    "DomainError",
    "FrameTooLargeError",
    "InternalError",
    "InvalidNotificationError",
    "InvalidParamsError",
    "InvalidRequestError",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "LifecycleManager",
    "LifecycleState",
    "Method",
    "MethodNotFoundError",
    "NotInitializedError",
    "Notification",
    "ParseError",
    "StdioTransport",
    "TransportWriteError",
    "format_error",
    "format_response",
    "parse_message",
    "to_jsonrpc_error",
]
