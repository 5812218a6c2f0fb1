import logging
import signal
import sys

import pytest

from cloudburst.logging_config import setup_logging
from cloudburst.utils import GracefulKiller


def test_graceful_killer_two_stage(monkeypatch):
    installed = {}
    monkeypatch.setattr(signal, "signal", lambda sig, handler: installed.setdefault(sig, handler))
    killer = GracefulKiller()
    assert set(installed) == {signal.SIGINT, signal.SIGTERM}
    assert not killer.kill_now
    killer.exit_gracefully(signal.SIGINT, None)
    assert killer.kill_now
    with pytest.raises(KeyboardInterrupt):
        killer.exit_gracefully(signal.SIGINT, None)


def test_setup_logging(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    log_file = tmp_path / "run.log"
    root = setup_logging("info", str(log_file))
    try:
        assert root.level == logging.INFO
        assert len(root.handlers) == 2
        assert logging.getLogger("urllib3").level == logging.WARNING
        logging.getLogger("cloudburst.test").info("hello from test")
        for h in root.handlers:
            h.flush()
        assert "hello from test" in log_file.read_text()
    finally:
        for h in root.handlers:
            h.close()
        root.handlers.clear()
