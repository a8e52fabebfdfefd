"""
Unit tests for the import request handler.
"""

import base64
import hashlib
import logging

import pytest

from importserver import content
from importserver.config import ServerConfig
from importserver.content import CSV_TEXT, SQL_TEXT
from importserver.handler import ImportHandler, UNSUPPORTED_METHOD_MESSAGE
from importserver.http import HTTPRequest, HTTPStatus


def make_request(method: str = "POST", content_type: str = "text/plain", **headers) -> HTTPRequest:
    request_headers = {name.replace("_", "-"): value for name, value in headers.items()}
    if content_type is not None:
        request_headers["content-type"] = content_type
    return HTTPRequest(method=method, path="/", headers=request_headers,
                       client_address=("127.0.0.1", 50000))


@pytest.fixture
def csv_handler() -> ImportHandler:
    return ImportHandler(ServerConfig())


@pytest.fixture
def sql_handler() -> ImportHandler:
    return ImportHandler(ServerConfig(sql=True))


class TestMethodCheck:
    """Only POST is served."""

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "HEAD", "PATCH", "BREW"])
    def test_non_post_rejected(self, csv_handler: ImportHandler, method: str):
        response = csv_handler(make_request(method=method))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == UNSUPPORTED_METHOD_MESSAGE.encode()
        assert response.body == b"only POST requests supported."

    def test_method_checked_before_content_type(self, csv_handler: ImportHandler):
        """A GET without Content-Type still gets the method message."""
        response = csv_handler(make_request(method="GET", content_type=None))
        assert response.body == b"only POST requests supported."

    def test_method_is_case_sensitive(self, csv_handler: ImportHandler):
        response = csv_handler(make_request(method="post"))
        assert response.status == HTTPStatus.BAD_REQUEST


class TestContentTypeCheck:
    """POST requests must carry a Content-Type."""

    def test_missing_content_type(self, csv_handler: ImportHandler):
        response = csv_handler(make_request(content_type=None))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b""
        assert not response.has_header("Content-Type")

    def test_empty_content_type(self, csv_handler: ImportHandler):
        response = csv_handler(make_request(content_type=""))
        assert response.status == HTTPStatus.BAD_REQUEST

    @pytest.mark.parametrize("content_type", ["text/csv", "application/json", "x/unknown"])
    def test_any_content_type_accepted(self, csv_handler: ImportHandler, content_type: str):
        """The value is not validated, only its presence."""
        response = csv_handler(make_request(content_type=content_type))
        assert response.status == HTTPStatus.OK

    def test_missing_content_type_logged(self, csv_handler: ImportHandler, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="importserver.handler"):
            csv_handler(make_request(content_type=None))

        assert "no request content-type header set" in caplog.text


class TestCSVResponse:
    """Tests for CSV mode responses."""

    def test_status_and_body(self, csv_handler: ImportHandler):
        response = csv_handler(make_request())

        assert response.status == HTTPStatus.OK
        assert response.body == CSV_TEXT.encode()

    def test_headers(self, csv_handler: ImportHandler):
        response = csv_handler(make_request())

        assert response.get_header("Content-Type") == "text/csv"
        assert response.get_header("X-Import-Filename") == "transformed.csv"
        assert response.get_header("X-Import-Table") == "csv_table"
        assert response.get_header("X-Import-Operation") == "overwrite"
        assert response.get_all("X-Import-Primary-Keys") == ["pk", "col1"]

    def test_content_length_and_checksum(self, csv_handler: ImportHandler):
        response = csv_handler(make_request())
        expected_md5 = base64.b64encode(hashlib.md5(response.body).digest()).decode()

        assert response.get_header("Content-Length") == str(len(response.body))
        assert response.declared_length == len(response.body)
        assert response.get_header("X-Import-Md5") == expected_md5

    def test_header_order(self, csv_handler: ImportHandler):
        """Content-Length first, metadata next, checksum last."""
        names = [name for name, _ in csv_handler(make_request()).headers]

        assert names[0] == "Content-Length"
        assert names[-1] == "X-Import-Md5"


class TestSQLResponse:
    """Tests for SQL mode responses."""

    def test_status_and_body(self, sql_handler: ImportHandler):
        response = sql_handler(make_request(content_type="application/sql"))

        assert response.status == HTTPStatus.OK
        assert response.body == SQL_TEXT.encode()

    def test_headers(self, sql_handler: ImportHandler):
        response = sql_handler(make_request())

        assert response.get_header("Content-Type") == "application/sql"
        assert response.get_header("X-Import-Filename") == "transformed.sql"
        assert response.get_header("Content-Length") == str(len(SQL_TEXT.encode()))

    def test_no_csv_only_headers(self, sql_handler: ImportHandler):
        response = sql_handler(make_request())

        assert not response.has_header("X-Import-Table")
        assert not response.has_header("X-Import-Operation")
        assert not response.has_header("X-Import-Primary-Keys")


class TestHandlerBehavior:
    """Cross-cutting handler behavior."""

    def test_idempotent(self, csv_handler: ImportHandler):
        """Identical requests get identical responses."""
        first = csv_handler(make_request())
        second = csv_handler(make_request())

        assert first.body == second.body
        assert first.headers == second.headers

    def test_any_path(self, csv_handler: ImportHandler):
        request = make_request()
        request.path = "/some/deep/path"

        assert csv_handler(request).status == HTTPStatus.OK

    def test_checksum_failure_is_500(self, csv_handler: ImportHandler, monkeypatch: pytest.MonkeyPatch):
        def broken_md5(*args, **kwargs):
            raise ValueError("md5 disabled")

        monkeypatch.setattr(content.hashlib, "md5", broken_md5)
        response = csv_handler(make_request())

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b""

    def test_request_headers_logged_at_debug(self, csv_handler: ImportHandler, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.DEBUG, logger="importserver.handler"):
            csv_handler(make_request(x_trace_id="abc123"))

        assert "x-trace-id: abc123" in caplog.text
        assert f"content-length: {len(CSV_TEXT)}" in caplog.text
