"""Tests for JSON-RPC 2.0 message parsing and formatting."""

import json

import pytest

from mcp_stdio_server.protocol.errors import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    InvalidNotificationError,
    InvalidRequestError,
    JsonRpcError,
    ParseError,
)
from mcp_stdio_server.protocol.jsonrpc import (
    JsonRpcNotification,
    JsonRpcRequest,
    format_error,
    format_response,
    parse_message,
)


class TestJsonRpcRequest:
    """Tests for parsing JSON-RPC requests."""

    def test_parses_valid_request(self):
        """Should parse a valid request."""
        data = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/list",
            "params": {"cursor": "abc"},
        }
        msg = parse_message(json.dumps(data))

        assert isinstance(msg, JsonRpcRequest)
        assert msg.id == 1
        assert msg.method == "tools/list"
        assert msg.params == {"cursor": "abc"}

    def test_parses_request_with_string_id(self):
        """Should accept string IDs."""
        data = {"jsonrpc": "2.0", "id": "req-123", "method": "test"}
        msg = parse_message(json.dumps(data))

        assert isinstance(msg, JsonRpcRequest)
        assert msg.id == "req-123"

    def test_parses_request_with_null_id(self):
        """An explicit null id is still a request, not a notification."""
        data = {"jsonrpc": "2.0", "id": None, "method": "ping"}
        msg = parse_message(json.dumps(data))

        assert isinstance(msg, JsonRpcRequest)
        assert msg.id is None

    def test_parses_request_without_params(self):
        """Should parse request without params."""
        data = {"jsonrpc": "2.0", "id": 1, "method": "ping"}
        msg = parse_message(json.dumps(data))

        assert isinstance(msg, JsonRpcRequest)
        assert msg.params is None

    def test_rejects_missing_jsonrpc_version(self):
        """Should reject missing jsonrpc field."""
        data = {"id": 1, "method": "test"}
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.code == INVALID_REQUEST

    def test_rejects_wrong_jsonrpc_version(self):
        """Should reject wrong jsonrpc version."""
        data = {"jsonrpc": "1.0", "id": 1, "method": "test"}
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.code == INVALID_REQUEST

    def test_rejects_missing_method(self):
        """Should reject request without method."""
        data = {"jsonrpc": "2.0", "id": 1}
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.code == INVALID_REQUEST

    def test_rejects_non_string_method(self):
        """Should reject a method that is not a string."""
        data = {"jsonrpc": "2.0", "id": 1, "method": 42}
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.code == INVALID_REQUEST

    @pytest.mark.parametrize("bad_id", [1.5, True, [1], {"a": 1}])
    def test_rejects_invalid_id_types(self, bad_id):
        """Ids must be strings, integers or null."""
        data = {"jsonrpc": "2.0", "id": bad_id, "method": "ping"}
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.code == INVALID_REQUEST
        assert exc_info.value.msg_id is None

    def test_rejects_non_object_params(self):
        """Params must be an object when present."""
        data = {"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1, 2]}
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.code == INVALID_REQUEST
        assert not isinstance(exc_info.value, InvalidNotificationError)

    def test_invalid_envelope_keeps_recoverable_id(self):
        """Envelope errors carry the id when it was well formed."""
        data = {"jsonrpc": "2.0", "id": 7}
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(json.dumps(data))
        assert exc_info.value.msg_id == 7


class TestJsonRpcNotification:
    """Tests for parsing JSON-RPC notifications."""

    def test_parses_notification(self):
        """Should parse notification (no id)."""
        data = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        msg = parse_message(json.dumps(data))

        assert isinstance(msg, JsonRpcNotification)
        assert msg.method == "notifications/initialized"

    def test_parses_notification_with_params(self):
        """Should parse notification with params."""
        data = {
            "jsonrpc": "2.0",
            "method": "notifications/cancelled",
            "params": {"requestId": 5},
        }
        msg = parse_message(json.dumps(data))

        assert isinstance(msg, JsonRpcNotification)
        assert msg.params == {"requestId": 5}

    def test_notification_with_non_object_params(self):
        """A notification with list params gets its own error so it can be dropped."""
        data = {"jsonrpc": "2.0", "method": "notifications/cancelled", "params": [5]}
        with pytest.raises(InvalidNotificationError):
            parse_message(json.dumps(data))


class TestParseErrors:
    """Tests for parse error handling."""

    def test_handles_invalid_json(self):
        """Should return parse error for invalid JSON."""
        with pytest.raises(ParseError) as exc_info:
            parse_message("{not json")
        assert exc_info.value.code == PARSE_ERROR
        assert exc_info.value.msg_id is None

    def test_parse_error_message_hides_decoder_detail(self):
        """The client-facing message does not echo decoder internals."""
        with pytest.raises(ParseError) as exc_info:
            parse_message("{not json")
        assert "line 1" not in exc_info.value.message

    def test_handles_non_object_json(self):
        """Should reject non-object JSON."""
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message('"just a string"')
        assert exc_info.value.code == INVALID_REQUEST

    def test_handles_array_json(self):
        """Should reject array (batch not supported)."""
        with pytest.raises(JsonRpcError) as exc_info:
            parse_message('[{"jsonrpc": "2.0", "id": 1, "method": "test"}]')
        assert exc_info.value.code == INVALID_REQUEST


class TestFormatResponse:
    """Tests for formatting JSON-RPC responses."""

    def test_formats_success_response(self):
        """Should format successful response."""
        response = format_response(1, {"tools": []})
        parsed = json.loads(response)

        assert parsed["jsonrpc"] == "2.0"
        assert parsed["id"] == 1
        assert parsed["result"] == {"tools": []}
        assert "error" not in parsed

    def test_formats_response_with_string_id(self):
        """Should preserve string IDs."""
        response = format_response("req-123", {"status": "ok"})
        parsed = json.loads(response)

        assert parsed["id"] == "req-123"

    def test_response_is_single_line(self):
        """Embedded newlines in results are escaped, never raw."""
        response = format_response(1, {"text": "line one\nline two"})
        assert "\n" not in response
        assert json.loads(response)["result"]["text"] == "line one\nline two"


class TestFormatError:
    """Tests for formatting JSON-RPC errors."""

    def test_formats_error_with_id(self):
        """Should format error with request ID."""
        error = format_error(1, METHOD_NOT_FOUND, "Method not found")
        parsed = json.loads(error)

        assert parsed["jsonrpc"] == "2.0"
        assert parsed["id"] == 1
        assert parsed["error"]["code"] == METHOD_NOT_FOUND
        assert parsed["error"]["message"] == "Method not found"
        assert "result" not in parsed

    def test_formats_error_without_id(self):
        """Should format error without ID (for parse errors)."""
        error = format_error(None, PARSE_ERROR, "Parse error")
        parsed = json.loads(error)

        assert parsed["id"] is None
        assert parsed["error"]["code"] == PARSE_ERROR

    def test_formats_error_with_data(self):
        """Should include error data if provided."""
        error = format_error(1, INVALID_PARAMS, "Invalid params", {"missing": "field"})
        parsed = json.loads(error)

        assert parsed["error"]["data"] == {"missing": "field"}


class TestMessageSizeLimit:
    """Tests for message size limits."""

    def test_rejects_oversized_message(self):
        """Should reject messages larger than 1MB."""
        large_data = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "test",
            "params": {"data": "x" * (1024 * 1024 + 100)},
        }
        large_message = json.dumps(large_data)

        with pytest.raises(JsonRpcError) as exc_info:
            parse_message(large_message)

        assert exc_info.value.code == PARSE_ERROR
        assert "too large" in exc_info.value.message.lower()

    def test_accepts_message_under_limit(self):
        """Should accept messages under 1MB."""
        data = {"jsonrpc": "2.0", "id": 1, "method": "test", "params": {"data": "x" * 100000}}
        message = json.dumps(data)

        result = parse_message(message)
        assert isinstance(result, JsonRpcRequest)

    def test_honours_custom_limit(self):
        """A smaller configured limit applies."""
        with pytest.raises(ParseError):
            parse_message('{"jsonrpc": "2.0", "id": 1, "method": "ping"}', max_size=10)
