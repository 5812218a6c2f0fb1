import json
import logging
import sys
import threading
from typing import IO, Optional

from .errors import SetupError
from .metrics import StatisticsAggregator

logger = logging.getLogger(__name__)


class ResponseSink:
    """Appends response bodies to stdout or a file. Shared by all workers."""

    def __init__(self, target: str = "stdout") -> None:
        self.target = target
        self._lock = threading.Lock()
        self._file: Optional[IO[bytes]] = None
        if target != "stdout":
            try:
                self._file = open(target, "wb")
            except OSError as e:
                raise SetupError(f"Cannot open response output {target}: {e}") from e
            logger.info(f"Writing response bodies to {target}")

    def write(self, body: bytes) -> None:
        with self._lock:
            if self._file is not None:
                self._file.write(body)
            else:
                sys.stdout.write(body.decode("utf-8", errors="replace") + "\n")
                sys.stdout.flush()

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def __enter__(self) -> "ResponseSink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def export_response_times(path: str, aggregator: StatisticsAggregator) -> bool:
    """Dump raw total/success latency samples as JSON. Returns False on failure."""
    total, success = aggregator.snapshot()
    data = {"total": total.values, "success": success.values}
    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Response times saved to {path}")
        return True
    except OSError as e:
        logger.error(f"Failed to save response times: {e}")
        return False
