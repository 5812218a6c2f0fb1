import logging
import queue
import threading
from concurrent.futures import Future
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_STOP = object()


class WorkerPool:
    """
    Fixed set of worker threads pulling callables from a shared queue.

    `submit` returns a Future for the call. A task that raises only fails its
    own Future; the worker keeps running. `drain` blocks until every submitted
    task has finished. `max_pending` > 0 bounds the queue, making `submit`
    block while it is full.
    """

    def __init__(self, size: int, max_pending: int = 0, name: str = "worker") -> None:
        if size < 1:
            raise ValueError(f"pool size must be positive, got {size}")
        self.size = size
        self.name = name
        self._q: queue.Queue = queue.Queue(maxsize=max_pending)
        self._closed = False
        self._workers = [
            threading.Thread(target=self._worker, args=(i,), name=f"{name}-{i:02d}", daemon=True)
            for i in range(size)
        ]
        for w in self._workers:
            w.start()
        logger.debug(f"Started pool '{name}' with {size} workers")

    def _worker(self, worker_id: int) -> None:
        while True:
            item = self._q.get()
            try:
                if item is _STOP:
                    break
                fut, fn, args, kwargs = item
                if not fut.set_running_or_notify_cancel():
                    continue
                try:
                    fut.set_result(fn(*args, **kwargs))
                except Exception as e:
                    logger.error(f"[W{worker_id:02d}] Task failed: {e}")
                    fut.set_exception(e)
            finally:
                self._q.task_done()
        logger.debug(f"Worker {worker_id} stopped")

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        if self._closed:
            raise RuntimeError("cannot submit to a closed pool")
        fut: Future = Future()
        self._q.put((fut, fn, args, kwargs))
        return fut

    def drain(self) -> None:
        self._q.join()

    def shutdown(self) -> None:
        """Drain, then stop and join every worker thread."""
        if self._closed:
            return
        self.drain()
        self._closed = True
        for _ in self._workers:
            self._q.put(_STOP)
        for w in self._workers:
            w.join()
        logger.debug(f"Pool '{self.name}' shut down")

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
