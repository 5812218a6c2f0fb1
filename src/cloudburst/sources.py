import logging
from collections.abc import Iterable, Iterator
from typing import IO, Optional

from .errors import SetupError, DataExhaustionError

logger = logging.getLogger(__name__)

# Sent when the payload source has nothing left to give
SENTINEL_PAYLOAD = "{}"


class JobSource:
    """
    Lazily yields target URLs, one per non-empty line, at most `limit` of them.

    Only the submitting thread reads from it. `lines_read` counts every line
    pulled from the underlying stream, blank ones included.
    """

    def __init__(self, lines: Iterable[str], limit: int, prefix: str = "") -> None:
        self._lines = iter(lines)
        self._handle: Optional[IO[str]] = None
        self.limit = limit
        self.prefix = prefix
        self.lines_read = 0
        self.yielded = 0

    @classmethod
    def open(cls, path: str, limit: int, prefix: str = "") -> "JobSource":
        try:
            # undecodable bytes become U+FFFD instead of aborting mid-run
            handle = open(path, encoding="utf-8", errors="replace")
        except OSError as e:
            raise SetupError(f"Cannot read job source {path}: {e}") from e
        source = cls(handle, limit, prefix)
        source._handle = handle
        logger.debug(f"Opened job source {path} (limit={limit})")
        return source

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "JobSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __iter__(self) -> Iterator[str]:
        # Check the limit before pulling, so the cursor never moves past it
        while self.yielded < self.limit:
            try:
                line = next(self._lines)
            except StopIteration:
                return
            self.lines_read += 1
            url = line.strip()
            if not url:
                continue
            self.yielded += 1
            yield self.prefix + url


class PayloadCursor:
    """
    Rotating cursor over request bodies for POST mode.

    With `repeat` the cursor rewinds to the first line when it runs off the
    end; without it `next_payload()` raises DataExhaustionError. An empty
    source always yields SENTINEL_PAYLOAD.
    """

    def __init__(self, lines: Iterable[str], repeat: bool = False) -> None:
        self.lines = [line.rstrip("\r\n") for line in lines]
        self.repeat = repeat
        self.position = 0

    @classmethod
    def from_file(cls, path: str, repeat: bool = False) -> "PayloadCursor":
        try:
            with open(path, encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as e:
            raise SetupError(f"Cannot read payload source {path}: {e}") from e
        logger.debug(f"Loaded {len(lines)} payload lines from {path} (repeat={repeat})")
        return cls(lines, repeat=repeat)

    def next_payload(self) -> str:
        if not self.lines:
            return SENTINEL_PAYLOAD
        if self.position >= len(self.lines):
            if not self.repeat:
                raise DataExhaustionError(
                    f"Payload source exhausted after {len(self.lines)} lines"
                )
            self.position = 0
        payload = self.lines[self.position]
        self.position += 1
        return payload
