"""JSON-RPC error codes and the exception hierarchy that maps onto them.

Every failure in the pipeline is funnelled through ``to_jsonrpc_error`` before
it reaches a response, so internal exception text never leaks to the client.
"""

from __future__ import annotations

from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Application-defined error codes
NOT_INITIALIZED = -32001
CAPABILITY_NOT_FOUND = -32002
DOMAIN_ERROR = -32003


class JsonRpcError(Exception):
    """JSON-RPC error with code and message."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
        msg_id: int | str | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            code: JSON-RPC error code.
            message: Human-readable error message (sent to the client).
            data: Optional additional error data.
            msg_id: Request id to correlate the error with, when known.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data
        self.msg_id = msg_id


class _CodedError(JsonRpcError):
    """Base for errors whose code is fixed by their class."""

    default_code: int = INTERNAL_ERROR

    def __init__(
        self, message: str, data: Any | None = None, msg_id: int | str | None = None
    ) -> None:
        super().__init__(self.default_code, message, data, msg_id)


class ParseError(_CodedError):
    """Raised when a frame is not valid JSON or cannot be read as a frame."""

    default_code = PARSE_ERROR


class FrameTooLargeError(ParseError):
    """Raised when a frame exceeds the configured maximum size."""

    pass


class InvalidRequestError(_CodedError):
    """Raised when the envelope is not a valid JSON-RPC request."""

    default_code = INVALID_REQUEST


class InvalidNotificationError(InvalidRequestError):
    """Raised for a notification whose body is malformed.

    Notifications are never answered, so this is logged and dropped.
    """

    pass


class MethodNotFoundError(_CodedError):
    """Raised when the method is not one the server knows."""

    default_code = METHOD_NOT_FOUND


class InvalidParamsError(_CodedError):
    """Raised when method parameters or capability arguments are invalid."""

    default_code = INVALID_PARAMS


class InternalError(_CodedError):
    """Raised for failures whose detail must not reach the client."""

    default_code = INTERNAL_ERROR


class NotInitializedError(_CodedError):
    """Raised when a capability method arrives before the handshake."""

    default_code = NOT_INITIALIZED


class CapabilityNotFoundError(_CodedError):
    """Raised when a tool, resource or prompt identifier is not registered."""

    default_code = CAPABILITY_NOT_FOUND


class DomainError(_CodedError):
    """Raised by capability handlers to report a domain failure.

    The message is authored by the handler and is safe to show the client.
    """

    default_code = DOMAIN_ERROR


def to_jsonrpc_error(exc: BaseException) -> JsonRpcError:
    """Map any exception onto a JSON-RPC error.

    Args:
        exc: The exception raised somewhere in the pipeline.

    Returns:
        The exception itself if it is already a JsonRpcError, otherwise a
        generic InternalError that carries no internal detail.
    """
    if isinstance(exc, JsonRpcError):
        return exc
    return InternalError("Internal error")
