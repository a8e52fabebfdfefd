"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timezone

from importserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    bad_request,
    internal_error,
    error_json,
    format_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.BAD_REQUEST).status_line == "HTTP/1.1 400 Bad Request"

    def test_head_includes_headers(self):
        """Test that the head carries custom and standard headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers=[("X-Custom", "value")],
            body=b"test",
        )

        result = response.head_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: ImportServer/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\n")

    def test_head_bytes_excludes_body(self):
        head = HTTPResponse(body=b"payload").head_bytes()

        assert head.endswith(b"\r\n\r\n")
        assert b"payload" not in head

    def test_explicit_content_length_not_duplicated(self):
        response = HTTPResponse(headers=[("Content-Length", "4")], body=b"test")

        assert response.head_bytes().count(b"Content-Length") == 1

    def test_repeated_headers_serialized_in_order(self):
        """Multi-value headers produce one line per value."""
        response = (HTTPResponse()
            .add_header("X-Import-Primary-Keys", "pk")
            .add_header("X-Import-Primary-Keys", "col1"))

        head = response.head_bytes()

        assert b"X-Import-Primary-Keys: pk\r\nX-Import-Primary-Keys: col1\r\n" in head
        assert response.get_all("x-import-primary-keys") == ["pk", "col1"]

    def test_set_header_replaces_all_values(self):
        response = (HTTPResponse()
            .add_header("X-One", "1")
            .add_header("X-One", "2")
            .set_header("x-one", "3"))

        assert response.get_all("X-One") == ["3"]

    def test_setdefault_header(self):
        response = HTTPResponse(headers=[("Connection", "close")])
        response.setdefault_header("Connection", "keep-alive")
        response.setdefault_header("Keep-Alive", "timeout=5")

        assert response.get_header("Connection") == "close"
        assert response.get_header("Keep-Alive") == "timeout=5"

    def test_declared_length(self):
        assert HTTPResponse(body=b"abc").declared_length == 3
        assert HTTPResponse(headers=[("Content-Length", "10")], body=b"abc").declared_length == 10


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        response = ResponseBuilder().status(HTTPStatus.BAD_REQUEST).build()
        assert response.status == HTTPStatus.BAD_REQUEST

    def test_json_body(self):
        response = ResponseBuilder().json({"key": "value"}).build()

        assert response.get_header("Content-Type") == "application/json; charset=utf-8"
        assert json.loads(response.body) == {"key": "value"}

    def test_text_body(self):
        response = ResponseBuilder().text("Hello").build()

        assert response.get_header("Content-Type") == "text/plain; charset=utf-8"
        assert response.body == b"Hello"

    def test_headers_appends_pairs(self):
        response = (ResponseBuilder()
            .header("Content-Length", "0")
            .headers([("X-A", "1"), ("X-A", "2")])
            .header("X-Md5", "abc")
            .build())

        assert response.headers == [
            ("Content-Length", "0"),
            ("X-A", "1"),
            ("X-A", "2"),
            ("X-Md5", "abc"),
        ]

    def test_close_connection(self):
        response = ResponseBuilder().close_connection().build()
        assert response.get_header("Connection") == "close"


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_bad_request_with_message(self):
        response = bad_request("only POST requests supported.")

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b"only POST requests supported."

    def test_bad_request_empty(self):
        response = bad_request()

        assert response.body == b""
        assert not response.has_header("Content-Type")

    def test_internal_error(self):
        response = internal_error()

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b""

    def test_error_json(self):
        response = error_json(HTTPStatus.REQUEST_TIMEOUT, "Request timeout")

        assert response.status == 408
        assert json.loads(response.body) == {"error": "Request timeout"}
        assert response.get_header("Connection") == "close"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.PAYLOAD_TOO_LARGE.phrase == "Payload Too Large"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_status_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.BAD_REQUEST.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error

        assert HTTPStatus.BAD_REQUEST.is_error
        assert HTTPStatus.HTTP_VERSION_NOT_SUPPORTED.is_error
        assert not HTTPStatus.OK.is_error


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
