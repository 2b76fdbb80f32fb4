"""JSON-RPC 2.0 envelope validation and response formatting.

Every inbound frame passes through ``parse_message`` before any routing or
capability lookup takes place.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from mcp_stdio_server.protocol.errors import (
    InvalidNotificationError,
    InvalidRequestError,
    ParseError,
)

JSONRPC_VERSION = "2.0"

# Maximum message size (1 MB)
MAX_MESSAGE_SIZE = 1_048_576

MessageId = int | str | None


@dataclass(frozen=True)
class JsonRpcRequest:
    """Represents a JSON-RPC request (has an id member, possibly null)."""

    id: MessageId
    method: str
    params: dict[str, Any] | None = None


@dataclass(frozen=True)
class JsonRpcNotification:
    """Represents a JSON-RPC notification (no id member)."""

    method: str
    params: dict[str, Any] | None = None


def _is_valid_id(value: Any) -> bool:
    """Check that a value is usable as a request id."""
    if isinstance(value, bool):
        return False
    return value is None or isinstance(value, int | str)


def parse_message(
    raw: str, max_size: int = MAX_MESSAGE_SIZE
) -> JsonRpcRequest | JsonRpcNotification:
    """Parse a JSON-RPC message from a string.

    Args:
        raw: Raw JSON string.
        max_size: Maximum accepted message length.

    Returns:
        Parsed request or notification.

    Raises:
        ParseError: If the text is too large or not valid JSON.
        InvalidRequestError: If the envelope is not a valid JSON-RPC request.
        InvalidNotificationError: If a notification carries non-object params.
    """
    # Check message size before parsing to prevent DoS
    if len(raw) > max_size:
        raise ParseError(f"Message too large: {len(raw)} bytes exceeds {max_size} limit")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError("Parse error: invalid JSON") from e

    # Must be an object (batches are not supported)
    if not isinstance(data, dict):
        raise InvalidRequestError("Invalid Request: message must be an object")

    # Recover the id early so envelope errors can still be correlated
    has_id = "id" in data
    msg_id = data.get("id")
    if has_id and not _is_valid_id(msg_id):
        raise InvalidRequestError("Invalid Request: id must be a string, integer or null")

    if data.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError("Invalid Request: jsonrpc must be '2.0'", msg_id=msg_id)

    method = data.get("method")
    if not isinstance(method, str):
        raise InvalidRequestError("Invalid Request: method must be a string", msg_id=msg_id)

    params = data.get("params")
    if params is not None and not isinstance(params, dict):
        if not has_id:
            raise InvalidNotificationError(f"Notification {method} has non-object params")
        raise InvalidRequestError("Invalid Request: params must be an object", msg_id=msg_id)

    if has_id:
        return JsonRpcRequest(id=msg_id, method=method, params=params)
    return JsonRpcNotification(method=method, params=params)


def format_response(msg_id: MessageId, result: Any) -> str:
    """Format a successful JSON-RPC response.

    Args:
        msg_id: Request ID to echo back.
        result: Result payload.

    Returns:
        JSON string on a single line.
    """
    response = {
        "jsonrpc": JSONRPC_VERSION,
        "id": msg_id,
        "result": result,
    }
    return json.dumps(response, ensure_ascii=False)


def format_error(
    msg_id: MessageId,
    code: int,
    message: str,
    data: Any | None = None,
) -> str:
    """Format a JSON-RPC error response.

    Args:
        msg_id: Request ID (or None for parse errors).
        code: Error code.
        message: Error message.
        data: Optional error data.

    Returns:
        JSON string on a single line.
    """
    error_obj: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if data is not None:
        error_obj["data"] = data

    response = {
        "jsonrpc": JSONRPC_VERSION,
        "id": msg_id,
        "error": error_obj,
    }
    return json.dumps(response, ensure_ascii=False)
