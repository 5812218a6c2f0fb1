import logging
import threading
from typing import Optional

import requests
import urllib3

from .errors import TransportError
from .utils import now

logger = logging.getLogger(__name__)

BODY_CHUNK_SIZE = 64 * 1024


class Transport:
    """
    Contract consumed by the fetch task.

    `perform` returns (status_code, body). Implementations raise
    TransportError for anything that did not complete as an HTTP exchange.
    """

    def perform(
        self,
        url: str,
        method: str = "GET",
        body: Optional[str] = None,
        timeout_ms: int = 1000,
        suppress_body: bool = False,
    ) -> tuple[int, bytes]:
        raise NotImplementedError

    def close(self) -> None:
        pass


class RequestsTransport(Transport):
    """Transport backed by `requests`, one Session per worker thread."""

    def __init__(self, headers: dict[str, str] | None = None) -> None:
        self.headers = headers or {}
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def perform(
        self,
        url: str,
        method: str = "GET",
        body: Optional[str] = None,
        timeout_ms: int = 1000,
        suppress_body: bool = False,
    ) -> tuple[int, bytes]:
        method = method.upper()
        if suppress_body and method == "GET":
            # HEAD: headers only, the body is never transferred
            method = "HEAD"
        # timeout_ms bounds the whole exchange, not each socket read
        deadline = now() + timeout_ms / 1000.0
        try:
            resp = self._session().request(
                method,
                url,
                data=body.encode("utf-8") if body is not None else None,
                timeout=timeout_ms / 1000.0,
                stream=True,
            )
        except requests.RequestException as e:
            raise TransportError(url, f"{type(e).__name__}: {e}") from e
        try:
            content = b"" if suppress_body else self._read_body(resp, url, deadline, timeout_ms)
            if now() > deadline:
                raise TransportError(url, f"timed out after {timeout_ms}ms")
        except urllib3.exceptions.HTTPError as e:
            raise TransportError(url, f"{type(e).__name__}: {e}") from e
        finally:
            resp.close()
        logger.debug(f"{method} {url}: status={resp.status_code}, size={len(content)} bytes")
        return resp.status_code, content

    @staticmethod
    def _read_body(resp: requests.Response, url: str, deadline: float, timeout_ms: int) -> bytes:
        """Read the streamed body chunk by chunk until EOF or the deadline."""
        conn = resp.raw.connection
        chunks = []
        while True:
            remaining = deadline - now()
            if remaining <= 0:
                raise TransportError(url, f"timed out after {timeout_ms}ms")
            if conn is not None and conn.sock is not None:
                # a stalled read may not outlive the request's budget
                conn.sock.settimeout(remaining)
            chunk = resp.raw.read1(BODY_CHUNK_SIZE, decode_content=True)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)

    def close(self) -> None:
        with self._sessions_lock:
            for session in self._sessions:
                session.close()
            self._sessions.clear()
