"""Shared fixtures: a local echo server standing in for the upload endpoint."""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from filetransfer.UploadClient import UploadClient
from filetransfer.settings import UploadSettings


class EchoUploadHandler(BaseHTTPRequestHandler):
    """Echoes the request body back. Paths under /fail answer with HTTP 500."""

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length)
        self.server.received.append({"path": self.path, "headers": self.headers, "body": body})

        status = 500 if self.path.startswith("/fail") else 200
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):  # pylint: disable=redefined-builtin
        pass


@pytest.fixture
def upload_server():
    """Start the echo server on a free port and hand back the server object.

    ``server.url`` is the base URL and ``server.received`` lists every request.
    """
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoUploadHandler)
    server.received = []
    server.url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def write_file(tmp_path: Path):
    def _write_file(filename: str, size: int, fill: bytes = b"a") -> Path:
        path = tmp_path / filename
        path.write_bytes((fill * size)[:size])
        return path

    return _write_file


@pytest.fixture
def client():
    with UploadClient(UploadSettings(timeout=10)) as upload_client:
        yield upload_client


def split_multipart(raw: bytes, boundary: str):
    """Split a multipart body into ``(headers, content)`` tuples, in order."""
    delimiter = b"--" + boundary.encode("ascii")
    chunks = raw.split(delimiter)
    assert chunks[0] == b""
    assert chunks[-1] == b"--\r\n"
    parts = []
    for chunk in chunks[1:-1]:
        assert chunk.startswith(b"\r\n") and chunk.endswith(b"\r\n")
        head, _sep, content = chunk[2:-2].partition(b"\r\n\r\n")
        headers = {}
        for line in head.decode("utf-8").split("\r\n"):
            key, _colon, value = line.partition(": ")
            headers[key] = value
        parts.append((headers, content))
    return parts
