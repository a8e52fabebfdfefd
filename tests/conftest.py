"""
pytest configuration and fixtures.
"""

import http.client
import socket
import threading
from typing import Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from importserver import ImportServer, ServerConfig


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample import POST request with a small JSON body."""
    body = b'{"table": "csv_table"}'
    return (
        b"POST /import HTTP/1.1\r\n"
        b"Host: localhost:1709\r\n"
        b"User-Agent: pytest\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n" % len(body) +
        b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /import?page=1 HTTP/1.1\r\n"
        b"Host: localhost:1709\r\n"
        b"User-Agent: pytest\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: ImportServer):
        self.server = server
        self.port = server.config.port
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self, timeout: float = 5.0):
        """Begin shutdown and wait for run() to return."""
        self.server.shutdown()
        self.join(timeout)

    def join(self, timeout: float = 5.0):
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def request(
        self,
        method: str = "POST",
        path: str = "/",
        content_type: Optional[str] = "text/plain",
        body: bytes = b"",
    ) -> Tuple[int, List[Tuple[str, str]], bytes]:
        """
        Send one request on a fresh connection.

        Returns:
            (status, ordered header pairs, body)
        """
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5.0)
        try:
            headers = {"Connection": "close"}
            if content_type is not None:
                headers["Content-Type"] = content_type
            conn.request(method, path, body=body, headers=headers)
            response = conn.getresponse()
            return response.status, response.getheaders(), response.read()
        finally:
            conn.close()


def make_config(port: int, **overrides) -> ServerConfig:
    """Test configuration: loopback only, quiet logs, short timeouts."""
    settings = dict(
        host="127.0.0.1",
        port=port,
        timeout=5.0,
        shutdown_timeout=5.0,
        log_level="WARNING",
    )
    settings.update(overrides)
    return ServerConfig(**settings)


@pytest.fixture
def csv_server(free_port: int) -> Generator[TestServer, None, None]:
    """Running server in CSV mode."""
    test_srv = TestServer(ImportServer(make_config(free_port)))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def sql_server(free_port: int) -> Generator[TestServer, None, None]:
    """Running server in SQL mode."""
    test_srv = TestServer(ImportServer(make_config(free_port, sql=True)))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory(free_port: int) -> Generator:
    """
    Build servers with custom config or middleware; stopped at teardown.

        test_srv = server_factory(sql=True, middleware=[slow])
    """
    started: List[TestServer] = []

    def factory(middleware=(), start: bool = True, **overrides) -> TestServer:
        server = ImportServer(make_config(free_port, **overrides))
        for mw in middleware:
            server.use(mw)
        test_srv = TestServer(server)
        if start:
            test_srv.start()
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()
