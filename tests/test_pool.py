import threading
import time

import pytest

from cloudburst.pool import WorkerPool


def test_pool_runs_tasks_and_returns_results():
    with WorkerPool(3) as pool:
        futures = [pool.submit(lambda x: x * 2, i) for i in range(10)]
        pool.drain()
        assert [f.result() for f in futures] == [i * 2 for i in range(10)]


def test_pool_bounds_concurrency():
    lock = threading.Lock()
    state = {"now": 0, "peak": 0}

    def task():
        with lock:
            state["now"] += 1
            state["peak"] = max(state["peak"], state["now"])
        time.sleep(0.02)
        with lock:
            state["now"] -= 1

    with WorkerPool(3) as pool:
        for _ in range(12):
            pool.submit(task)
    assert state["peak"] <= 3
    assert state["now"] == 0


def test_failing_task_does_not_kill_worker():
    def boom():
        raise RuntimeError("boom")

    pool = WorkerPool(1)
    bad = pool.submit(boom)
    good = pool.submit(lambda: "still alive")
    pool.shutdown()
    with pytest.raises(RuntimeError):
        bad.result()
    assert good.result() == "still alive"


def test_drain_waits_for_submitted_tasks():
    done = []
    pool = WorkerPool(2)
    for i in range(4):
        pool.submit(lambda i=i: (time.sleep(0.01), done.append(i)))
    pool.drain()
    assert sorted(done) == [0, 1, 2, 3]
    pool.shutdown()


def test_submit_after_shutdown_rejected():
    pool = WorkerPool(1)
    pool.shutdown()
    with pytest.raises(RuntimeError):
        pool.submit(lambda: None)


def test_pool_size_must_be_positive():
    with pytest.raises(ValueError):
        WorkerPool(0)
