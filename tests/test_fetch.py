import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests

from cloudburst.errors import TransportError
from cloudburst.fetch import fetch
from cloudburst.models import Job
from cloudburst.transport import RequestsTransport
from conftest import FakeTransport


class FakeRaw:
    def __init__(self, content):
        self._chunks = [content[i:i + 3] for i in range(0, len(content), 3)]
        self.connection = None

    def read1(self, amt, decode_content=True):
        return self._chunks.pop(0) if self._chunks else b""


class FakeResponse:
    def __init__(self, status_code=200, content=b"hello"):
        self.status_code = status_code
        self.raw = FakeRaw(content)
        self.closed = False

    def close(self):
        self.closed = True


class SlowHandler(BaseHTTPRequestHandler):
    """Sends its 8 byte body one byte every 0.25s."""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Length", "8")
        self.end_headers()
        try:
            for b in b"slowpoke":
                self.wfile.write(bytes([b]))
                self.wfile.flush()
                time.sleep(0.25)
        except OSError:
            pass

    def log_message(self, format, *args):
        pass


class QuickHandler(SlowHandler):
    def do_GET(self):
        body = b"x" * 200000
        self.send_response(201)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


@pytest.fixture
def local_server():
    servers = []

    def _start(handler):
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        server.daemon_threads = True
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}/"

    yield _start
    for server in servers:
        server.shutdown()
        server.server_close()


def test_fetch_success_outcome(fake_transport):
    outcome = fetch(fake_transport, Job("http://h/a", None, 0), timeout_ms=250)
    assert outcome.status == 200
    assert outcome.body == b"ok"
    assert outcome.elapsed >= 0
    assert not outcome.failed
    assert fake_transport.calls == [("http://h/a", "GET", None, 250, False)]


def test_fetch_transport_error_becomes_failed_outcome():
    transport = FakeTransport(fail_urls={"http://h/down"})
    outcome = fetch(transport, Job("http://h/down"))
    assert outcome.failed
    assert outcome.status is None
    assert "connection refused" in outcome.error
    assert outcome.elapsed >= 0


def test_fetch_unexpected_exception_becomes_failed_outcome():
    class Broken(FakeTransport):
        def perform(self, *args, **kwargs):
            raise KeyError("weird")

    outcome = fetch(Broken(), Job("http://h/x"))
    assert outcome.failed


def test_fetch_measures_elapsed():
    outcome = fetch(FakeTransport(delay=0.05), Job("http://h/slow"))
    assert outcome.elapsed >= 0.04


def test_requests_transport_get(monkeypatch):
    seen = {}

    def fake_request(self, method, url, **kwargs):
        seen.update(method=method, url=url, **kwargs)
        return FakeResponse(404, b"missing")

    monkeypatch.setattr(requests.Session, "request", fake_request)
    transport = RequestsTransport()
    status, body = transport.perform("http://h/a", timeout_ms=1500)
    transport.close()
    assert (status, body) == (404, b"missing")
    assert seen["method"] == "GET"
    assert seen["timeout"] == 1.5
    assert seen["data"] is None
    assert seen["stream"] is True


def test_requests_transport_suppress_body_uses_head(monkeypatch):
    seen = {}

    def fake_request(self, method, url, **kwargs):
        seen.update(method=method, **kwargs)
        return FakeResponse(200, b"should not be read")

    monkeypatch.setattr(requests.Session, "request", fake_request)
    status, body = RequestsTransport().perform("http://h/a", suppress_body=True)
    assert status == 200
    assert body == b""
    assert seen["method"] == "HEAD"
    assert seen["stream"] is True


def test_requests_transport_post_sends_body(monkeypatch):
    seen = {}

    def fake_request(self, method, url, **kwargs):
        seen.update(method=method, **kwargs)
        return FakeResponse(201, b"created")

    monkeypatch.setattr(requests.Session, "request", fake_request)
    status, _ = RequestsTransport().perform("http://h/a", method="post", body='{"k": 1}')
    assert status == 201
    assert seen["method"] == "POST"
    assert seen["data"] == b'{"k": 1}'


@pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_requests_transport_wraps_errors(monkeypatch, exc):
    def fake_request(self, method, url, **kwargs):
        raise exc

    monkeypatch.setattr(requests.Session, "request", fake_request)
    with pytest.raises(TransportError) as info:
        RequestsTransport().perform("http://h/a")
    assert info.value.url == "http://h/a"


def test_requests_transport_times_out_slow_body(local_server):
    url = local_server(SlowHandler)
    transport = RequestsTransport()
    outcome = fetch(transport, Job(url), timeout_ms=500)
    transport.close()
    assert outcome.failed
    assert "timed out" in outcome.error
    assert 0.4 <= outcome.elapsed < 1.0


def test_requests_transport_reads_full_body(local_server):
    url = local_server(QuickHandler)
    transport = RequestsTransport()
    status, body = transport.perform(url, timeout_ms=5000)
    transport.close()
    assert status == 201
    assert body == b"x" * 200000
