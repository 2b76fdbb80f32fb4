"""STDIO transport layer for MCP communication.

Handles reading/writing newline-delimited JSON-RPC frames over stdin/stdout.
Diagnostics go to stderr so the protocol stream only ever carries frames.
"""

from __future__ import annotations

import sys
from typing import BinaryIO, TextIO

from mcp_stdio_server.protocol.errors import FrameTooLargeError, ParseError
from mcp_stdio_server.protocol.jsonrpc import MAX_MESSAGE_SIZE

LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class TransportWriteError(Exception):
    """Raised when a frame cannot be written; the session cannot continue."""

    pass


class StdioTransport:
    """STDIO transport for MCP communication.

    Reads JSON-RPC frames from stdin and writes responses to stdout.
    Logging goes to stderr to avoid corrupting the protocol stream.
    """

    def __init__(
        self,
        stdin: BinaryIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        max_message_size: int = MAX_MESSAGE_SIZE,
        log_level: str = "INFO",
    ) -> None:
        """Initialize the transport.

        Args:
            stdin: Binary input stream (defaults to sys.stdin.buffer).
            stdout: Output stream (defaults to sys.stdout).
            stderr: Log stream (defaults to sys.stderr).
            max_message_size: Longest accepted frame, in bytes.
            log_level: Minimum level written to the log stream.
        """
        self._stdin = stdin if stdin is not None else sys.stdin.buffer
        self._stdout = stdout or sys.stdout
        self._stderr = stderr or sys.stderr
        self._max_message_size = max_message_size
        self._log_threshold = LOG_LEVELS.get(log_level.upper(), LOG_LEVELS["INFO"])

    @property
    def max_message_size(self) -> int:
        """Longest accepted frame, in bytes."""
        return self._max_message_size

    def _readline(self) -> bytes | None:
        """Read one raw line, or None when the stream is gone."""
        try:
            # One extra byte tells an oversized line from one at the limit
            return self._stdin.readline(self._max_message_size + 2)
        except (OSError, ValueError) as e:
            self.log(f"Read failed, treating as end of stream: {e}", "WARNING")
            return None

    def _discard_rest_of_line(self) -> None:
        """Drop input up to and including the next line terminator."""
        while True:
            chunk = self._readline()
            if not chunk or chunk.endswith(b"\n"):
                return

    def read_message(self) -> str | None:
        """Read the next frame from stdin.

        Blank lines are skipped. A trailing line without a terminator at end
        of stream is not a frame and is discarded. Each line is decoded on its
        own, so a bad line never takes its neighbours with it.

        Returns:
            Frame text (stripped), or None on end of stream.

        Raises:
            FrameTooLargeError: If the line exceeds the maximum frame size.
            ParseError: If the line is not valid UTF-8.
        """
        while True:
            raw = self._readline()
            if not raw:  # EOF
                return None

            if not raw.endswith(b"\n"):
                if len(raw) > self._max_message_size + 1:
                    self._discard_rest_of_line()
                    raise FrameTooLargeError(
                        f"Message too large: exceeds {self._max_message_size} limit"
                    )
                self.log("Discarding unterminated trailing line at end of stream", "DEBUG")
                return None

            raw = raw.strip()
            if len(raw) > self._max_message_size:
                raise FrameTooLargeError(
                    f"Message too large: exceeds {self._max_message_size} limit"
                )
            if not raw:  # Skip empty lines
                continue

            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError("Parse error: frame is not valid UTF-8") from e

    def write_message(self, message: str) -> None:
        """Write a frame to stdout and flush it.

        Args:
            message: JSON string to write.

        Raises:
            ValueError: If the message contains a line terminator.
            TransportWriteError: If the output stream fails.
        """
        if "\n" in message or "\r" in message:
            raise ValueError("Frame must not contain a line terminator")
        try:
            self._stdout.write(message + "\n")
            self._stdout.flush()
        except (OSError, ValueError) as e:
            raise TransportWriteError(f"Failed to write frame: {e}") from e

    def log(self, message: str, level: str = "INFO") -> None:
        """Write a log message to stderr.

        Failures to log are ignored so they cannot disturb protocol output.

        Args:
            message: Log message.
            level: Severity name (DEBUG, INFO, WARNING, ERROR).
        """
        if LOG_LEVELS.get(level, LOG_LEVELS["INFO"]) < self._log_threshold:
            return
        try:
            self._stderr.write(f"[MCP] {level} {message}\n")
            self._stderr.flush()
        except (OSError, ValueError):
            pass
