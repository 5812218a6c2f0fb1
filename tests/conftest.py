import threading
import time

import pytest

from cloudburst.config import RunConfig
from cloudburst.errors import TransportError
from cloudburst.transport import Transport


class FakeTransport(Transport):
    """Records calls and the peak number of concurrent `perform` calls."""

    def __init__(self, status=200, delay=0.0, body=b"ok", fail_urls=()):
        self.status = status
        self.delay = delay
        self.body = body
        self.fail_urls = set(fail_urls)
        self.calls = []
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def perform(self, url, method="GET", body=None, timeout_ms=1000, suppress_body=False):
        with self._lock:
            self.calls.append((url, method, body, timeout_ms, suppress_body))
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if url in self.fail_urls:
                raise TransportError(url, "connection refused")
            status = self.status(url) if callable(self.status) else self.status
            return status, b"" if suppress_body else self.body
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def no_sleep():
    slept = []
    return slept.append


@pytest.fixture
def url_file(tmp_path):
    def _write(lines):
        path = tmp_path / "urls.txt"
        path.write_text("\n".join(lines) + "\n")
        return str(path)
    return _write


@pytest.fixture
def make_config(tmp_path):
    def _make(input_file, **kwargs):
        kwargs.setdefault("no_body", True)
        kwargs.setdefault("response_time_output", "")
        kwargs.setdefault("output", str(tmp_path / "response"))
        return RunConfig(input_file=input_file, **kwargs)
    return _make
