"""Shared fakes for dispatch tests."""

import threading
from functools import partial
from http.server import HTTPServer, SimpleHTTPRequestHandler
from io import BytesIO
from typing import Optional

import pytest
from pypdf import PdfWriter

from print_dispatch.config_store import ConfigStore
from print_dispatch.errors import ProcessExecutionError
from print_dispatch.process import ProcessResult


class FakeRunner:
    """
    Records commands instead of running them.

    Each queued response is (returncode, stdout, stderr) or an exception to
    raise. When the queue is empty, commands succeed with no output.
    """

    def __init__(self, responses: Optional[list] = None):
        self.calls: list[list[str]] = []
        self.responses = list(responses or [])

    def queue(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.responses.append((returncode, stdout, stderr))

    async def run(self, args, cwd=None, timeout=None, check=False) -> ProcessResult:
        argv = [str(a) for a in args]
        self.calls.append(argv)

        response = self.responses.pop(0) if self.responses else (0, "", "")
        if isinstance(response, Exception):
            raise response

        returncode, stdout, stderr = response
        result = ProcessResult(argv, returncode, stdout, stderr)
        if check and not result.ok:
            raise ProcessExecutionError(
                result.error_message,
                returncode=returncode,
                stdout=stdout,
                stderr=stderr
            )
        return result


def make_pdf_bytes(pages: int = 1) -> bytes:
    """A valid PDF with blank pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=595, height=842)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def config_store(tmp_path):
    return ConfigStore(tmp_path / "config.json")


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "doc.pdf"
    path.write_bytes(make_pdf_bytes())
    return path


class QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        pass


@pytest.fixture
def file_server(tmp_path):
    """Serve `a.pdf` and an extensionless `plain` over HTTP on a free local port."""
    root = tmp_path / "served"
    root.mkdir()
    (root / "a.pdf").write_bytes(make_pdf_bytes())
    (root / "plain").write_bytes(make_pdf_bytes())

    server = HTTPServer(("127.0.0.1", 0), partial(QuietHandler, directory=str(root)))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
