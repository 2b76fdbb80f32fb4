"""Audit logging for MCP server operations.

Provides append-only audit logging in JSON Lines format for capability
invocations and protocol errors. Audit logging is best effort: a failed
write never disturbs request handling.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Patterns for sensitive argument keys
SENSITIVE_PATTERNS = [
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"api[_-]?key", re.IGNORECASE),
    re.compile(r"token", re.IGNORECASE),
    re.compile(r"auth", re.IGNORECASE),
    re.compile(r"credential", re.IGNORECASE),
    re.compile(r"private[_-]?key", re.IGNORECASE),
]


def _is_sensitive_key(key: str) -> bool:
    """Check if a key name indicates sensitive data."""
    return any(pattern.search(key) for pattern in SENSITIVE_PATTERNS)


def _sanitize_arguments(arguments: dict[str, Any]) -> dict[str, Any]:
    """Sanitize arguments by redacting sensitive values.

    Args:
        arguments: Original arguments dictionary.

    Returns:
        New dictionary with sensitive values redacted.
    """
    sanitized = {}
    for key, value in arguments.items():
        if _is_sensitive_key(key):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_arguments(value)
        else:
            sanitized[key] = value
    return sanitized


def _get_timestamp() -> str:
    """Get current UTC timestamp in ISO 8601 format."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class AuditLogger:
    """Append-only audit logger with JSON Lines format.

    Every event is timestamped and the file is flushed after each write.
    """

    def __init__(self, log_path: Path) -> None:
        """Initialize the audit logger.

        Args:
            log_path: Path to the audit log file.
        """
        self._log_path = log_path
        self._ensure_directory()
        self._file = open(log_path, "a", encoding="utf-8")  # noqa: SIM115

    @property
    def path(self) -> Path:
        return self._log_path

    def _ensure_directory(self) -> None:
        """Create log directory if it doesn't exist."""
        self._log_path.parent.mkdir(parents=True, exist_ok=True)

    def _write_line(self, data: dict[str, Any]) -> None:
        """Write a JSON line to the log file and flush.

        Serialization and I/O failures are dropped.
        """
        try:
            line = json.dumps(data, default=str)
            self._file.write(line + "\n")
            self._file.flush()
        except (OSError, ValueError, TypeError):
            pass

    def log_request(
        self, request_id: str | int | None, method: str, target: str, arguments: dict[str, Any]
    ) -> None:
        """Log an incoming capability invocation.

        Args:
            request_id: JSON-RPC id of the request.
            method: Protocol method (tools/call, resources/read, prompts/get).
            target: Tool name, resource URI or prompt name.
            arguments: Invocation arguments (will be sanitized).
        """
        event = {
            "type": "request",
            "timestamp": _get_timestamp(),
            "request_id": request_id,
            "method": method,
            "target": target,
            "arguments": _sanitize_arguments(arguments),
        }
        self._write_line(event)

    def log_response(self, request_id: str | int | None, status: str, duration_ms: float) -> None:
        """Log the outcome of a request.

        Args:
            request_id: Request identifier to correlate with.
            status: Result status (success, error, domain_error, timeout).
            duration_ms: Execution time in milliseconds.
        """
        event = {
            "type": "response",
            "timestamp": _get_timestamp(),
            "request_id": request_id,
            "result_status": status,
            "execution_time_ms": duration_ms,
        }
        self._write_line(event)

    def log_error(
        self, request_id: str | int | None, code: int, message: str, detail: str = ""
    ) -> None:
        """Log a protocol error, including internal detail hidden from the client.

        Args:
            request_id: Request identifier (None for unparseable frames).
            code: JSON-RPC error code sent to the client.
            message: Error message sent to the client.
            detail: Full internal description of the failure.
        """
        event = {
            "type": "error",
            "timestamp": _get_timestamp(),
            "request_id": request_id,
            "code": code,
            "message": message,
            "detail": detail,
        }
        self._write_line(event)

    def close(self) -> None:
        """Close the log file."""
        if self._file and not self._file.closed:
            self._file.close()

    def __enter__(self) -> AuditLogger:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
