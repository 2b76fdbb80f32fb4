"""Tests for STDIO transport and MCP lifecycle management."""

import io
from unittest.mock import MagicMock

import pytest

from mcp_stdio_server.protocol.errors import (
    FrameTooLargeError,
    InvalidParamsError,
    InvalidRequestError,
    NotInitializedError,
    ParseError,
)
from mcp_stdio_server.protocol.lifecycle import (
    MCP_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    LifecycleManager,
    LifecycleState,
)
from mcp_stdio_server.protocol.transport import StdioTransport, TransportWriteError

INIT_PARAMS = {
    "protocolVersion": MCP_PROTOCOL_VERSION,
    "capabilities": {},
    "clientInfo": {"name": "test", "version": "1.0"},
}


class TestStdioTransport:
    """Tests for STDIO transport layer."""

    def test_reads_line_from_stdin(self):
        """Should read a line from stdin."""
        mock_stdin = io.BytesIO(b'{"jsonrpc":"2.0","id":1,"method":"test"}\n')
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO())

        line = transport.read_message()
        assert line == '{"jsonrpc":"2.0","id":1,"method":"test"}'

    def test_reads_frames_in_order(self):
        """Consecutive reads return consecutive lines."""
        mock_stdin = io.BytesIO(b"first\nsecond\n")
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO())

        assert transport.read_message() == "first"
        assert transport.read_message() == "second"
        assert transport.read_message() is None

    def test_writes_line_to_stdout(self):
        """Should write a line to stdout with newline."""
        mock_stdout = io.StringIO()
        transport = StdioTransport(stdin=io.BytesIO(), stdout=mock_stdout)

        transport.write_message('{"jsonrpc":"2.0","id":1,"result":{}}')

        assert mock_stdout.getvalue() == '{"jsonrpc":"2.0","id":1,"result":{}}\n'

    def test_write_flushes_immediately(self):
        """Every frame is flushed as soon as it is written."""
        mock_stdout = MagicMock()
        transport = StdioTransport(stdin=io.BytesIO(), stdout=mock_stdout)

        transport.write_message("{}")

        mock_stdout.write.assert_called_once_with("{}\n")
        mock_stdout.flush.assert_called_once()

    def test_rejects_embedded_line_terminator(self):
        """A frame may not span lines."""
        transport = StdioTransport(stdin=io.BytesIO(), stdout=io.StringIO())

        with pytest.raises(ValueError):
            transport.write_message('{"a":\n1}')

    def test_write_failure_is_fatal(self):
        """Write errors surface as TransportWriteError."""
        mock_stdout = MagicMock()
        mock_stdout.write.side_effect = BrokenPipeError("closed")
        transport = StdioTransport(stdin=io.BytesIO(), stdout=mock_stdout)

        with pytest.raises(TransportWriteError):
            transport.write_message("{}")

    def test_returns_none_on_eof(self):
        """Should return None when stdin is exhausted."""
        transport = StdioTransport(stdin=io.BytesIO(b""), stdout=io.StringIO())

        assert transport.read_message() is None

    def test_discards_unterminated_final_line(self):
        """A partial line at end of stream is not a frame."""
        mock_stdin = io.BytesIO(b'{"complete": true}\n{"partial": tr')
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO())

        assert transport.read_message() == '{"complete": true}'
        assert transport.read_message() is None

    def test_strips_whitespace(self):
        """Should strip leading/trailing whitespace from messages."""
        mock_stdin = io.BytesIO(b'  {"test": true}  \n')
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO())

        assert transport.read_message() == '{"test": true}'

    def test_skips_empty_lines(self):
        """Should skip empty lines."""
        mock_stdin = io.BytesIO(b'\n\n{"valid": true}\n\n')
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO())

        assert transport.read_message() == '{"valid": true}'

    def test_oversized_line_raises_and_resyncs(self):
        """An oversized line fails alone; the next frame still reads."""
        mock_stdin = io.BytesIO(b"x" * 100 + b"\n" + b'{"ok": 1}\n')
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO(), max_message_size=20)

        with pytest.raises(FrameTooLargeError):
            transport.read_message()
        assert transport.read_message() == '{"ok": 1}'

    def test_line_at_limit_is_accepted(self):
        """A frame exactly at the size limit is fine."""
        frame = "y" * 20
        transport = StdioTransport(
            stdin=io.BytesIO(frame.encode() + b"\n"), stdout=io.StringIO(), max_message_size=20
        )

        assert transport.read_message() == frame

    def test_line_just_over_limit_is_rejected(self):
        """One byte over the limit is rejected."""
        transport = StdioTransport(
            stdin=io.BytesIO(b"z" * 21 + b"\n"), stdout=io.StringIO(), max_message_size=20
        )

        with pytest.raises(FrameTooLargeError):
            transport.read_message()

    def test_invalid_utf8_line_is_parse_error(self):
        """A line that is not UTF-8 fails alone; its neighbours still read."""
        mock_stdin = io.BytesIO(b'{"before": 1}\n\xff\xfe garbage\n{"after": 2}\n')
        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO())

        assert transport.read_message() == '{"before": 1}'
        with pytest.raises(ParseError, match="UTF-8"):
            transport.read_message()
        assert transport.read_message() == '{"after": 2}'

    def test_decodes_multibyte_text(self):
        """Non-ASCII frames are decoded as UTF-8."""
        transport = StdioTransport(
            stdin=io.BytesIO('{"city": "Zürich"}\n'.encode()), stdout=io.StringIO()
        )

        assert transport.read_message() == '{"city": "Zürich"}'

    def test_logs_to_stderr(self):
        """Should write logs to stderr, never stdout."""
        mock_stdout = io.StringIO()
        mock_stderr = io.StringIO()
        transport = StdioTransport(
            stdin=io.BytesIO(),
            stdout=mock_stdout,
            stderr=mock_stderr,
        )

        transport.log("Test message")

        assert "Test message" in mock_stderr.getvalue()
        assert mock_stdout.getvalue() == ""

    def test_log_level_filters(self):
        """Messages below the configured level are dropped."""
        mock_stderr = io.StringIO()
        transport = StdioTransport(
            stdin=io.BytesIO(), stdout=io.StringIO(), stderr=mock_stderr, log_level="WARNING"
        )

        transport.log("quiet", "DEBUG")
        transport.log("loud", "ERROR")

        assert "quiet" not in mock_stderr.getvalue()
        assert "loud" in mock_stderr.getvalue()

    def test_log_failure_is_swallowed(self):
        """A broken log stream does not raise."""
        mock_stderr = MagicMock()
        mock_stderr.write.side_effect = OSError("stderr gone")
        transport = StdioTransport(stdin=io.BytesIO(), stdout=io.StringIO(), stderr=mock_stderr)

        transport.log("ignored")

    def test_returns_none_on_read_exception(self):
        """Should return None when read raises an exception."""
        mock_stdin = MagicMock()
        mock_stdin.readline.side_effect = OSError("Pipe broken")

        transport = StdioTransport(stdin=mock_stdin, stdout=io.StringIO(), stderr=io.StringIO())

        assert transport.read_message() is None


class TestLifecycleManager:
    """Tests for MCP lifecycle management."""

    def test_starts_in_uninitialized_state(self):
        """Should start in UNINITIALIZED state."""
        manager = LifecycleManager()
        assert manager.state == LifecycleState.UNINITIALIZED
        assert manager.is_initialized is False

    def test_handles_initialize_request(self):
        """Should handle initialize request correctly."""
        manager = LifecycleManager()

        result = manager.handle_initialize(INIT_PARAMS)

        assert manager.state == LifecycleState.INITIALIZED
        assert result["protocolVersion"] == MCP_PROTOCOL_VERSION
        assert "capabilities" in result
        assert "serverInfo" in result

    def test_rejects_initialize_when_already_initialized(self):
        """A second initialize is an invalid request and changes nothing."""
        manager = LifecycleManager()
        manager.handle_initialize(INIT_PARAMS)

        with pytest.raises(InvalidRequestError, match="already initialized"):
            manager.handle_initialize(
                {**INIT_PARAMS, "clientInfo": {"name": "other", "version": "9"}}
            )

        assert manager.state == LifecycleState.INITIALIZED
        assert manager.connected_client == {"name": "test", "version": "1.0"}

    def test_echoes_supported_protocol_version(self):
        """A supported requested version is echoed back."""
        manager = LifecycleManager()

        result = manager.handle_initialize({**INIT_PARAMS, "protocolVersion": "2024-11-05"})

        assert result["protocolVersion"] == "2024-11-05"
        assert manager.negotiated_version == "2024-11-05"

    def test_offers_preferred_version_when_unsupported(self):
        """An unknown version is answered with the preferred one."""
        manager = LifecycleManager()

        result = manager.handle_initialize({**INIT_PARAMS, "protocolVersion": "1999-01-01"})

        assert result["protocolVersion"] == SUPPORTED_PROTOCOL_VERSIONS[0]

    def test_rejects_malformed_params(self):
        """Wrongly typed initialize params are invalid params."""
        manager = LifecycleManager()

        with pytest.raises(InvalidParamsError):
            manager.handle_initialize({**INIT_PARAMS, "clientInfo": "me"})
        with pytest.raises(InvalidParamsError):
            manager.handle_initialize({**INIT_PARAMS, "protocolVersion": 2024})

        assert manager.state == LifecycleState.UNINITIALIZED

    def test_stores_client_info(self):
        """Should store client info from initialize."""
        manager = LifecycleManager()
        manager.handle_initialize(
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {"roots": {}},
                "clientInfo": {"name": "test-client", "version": "2.0"},
            }
        )

        assert manager.client_info == {"name": "test-client", "version": "2.0"}
        assert manager.client_caps == {"roots": {}}

    def test_client_caps_empty_before_initialize(self):
        """Should expose empty client capabilities before the handshake."""
        manager = LifecycleManager()
        assert manager.client_caps == {}
        assert manager.connected_client is None

    def test_returns_server_capabilities(self):
        """Should return server capabilities in initialize response."""
        manager = LifecycleManager(
            server_info={"name": "test-server", "version": "1.0"},
            capabilities={"tools": {"listChanged": False}},
        )

        result = manager.handle_initialize(INIT_PARAMS)

        assert result["serverInfo"]["name"] == "test-server"
        assert result["capabilities"]["tools"]["listChanged"] is False

    def test_require_initialized(self):
        """Capability access is refused until the handshake completes."""
        manager = LifecycleManager()

        with pytest.raises(NotInitializedError):
            manager.require_initialized()

        manager.handle_initialize(INIT_PARAMS)

        # Should not raise
        manager.require_initialized()


class TestLifecycleClose:
    """Tests for session closure."""

    def test_close_from_any_state(self):
        """Closing is allowed before and after the handshake."""
        manager = LifecycleManager()
        manager.close()
        assert manager.state == LifecycleState.CLOSED

        manager = LifecycleManager()
        manager.handle_initialize(INIT_PARAMS)
        manager.close()
        assert manager.state == LifecycleState.CLOSED

    def test_rejects_operations_after_close(self):
        """A closed session serves nothing."""
        manager = LifecycleManager()
        manager.handle_initialize(INIT_PARAMS)
        manager.close()

        with pytest.raises(NotInitializedError):
            manager.require_initialized()
        with pytest.raises(InvalidRequestError, match="Session closed"):
            manager.handle_initialize(INIT_PARAMS)
