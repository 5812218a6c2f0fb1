import json
import logging
import sys

import pytest

from cloudburst import cli
from cloudburst.config import RunConfig
from conftest import FakeTransport


@pytest.fixture
def fake_requests(monkeypatch):
    transport = FakeTransport()
    monkeypatch.setattr("cloudburst.core.RequestsTransport", lambda: transport)
    monkeypatch.setattr(cli, "GracefulKiller", lambda: None)
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    yield transport
    logging.getLogger().handlers.clear()


def test_parser_defaults_match_config():
    args = cli.build_parser().parse_args(["-i", "urls.txt"])
    config = cli.config_from_args(args)
    assert config == RunConfig(input_file="urls.txt")


def test_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("CLOUDBURST_LIMIT", "7")
    monkeypatch.setenv("CLOUDBURST_TIMEOUT_MS", "2500")
    args = cli.build_parser().parse_args(["-i", "urls.txt"])
    assert args.limit == 7
    assert args.timeout == 2500
    args = cli.build_parser().parse_args(["-i", "urls.txt", "--limit", "3"])
    assert args.limit == 3


def test_missing_input_file_exits_1(tmp_path, fake_requests):
    code = cli.run(["-i", str(tmp_path / "missing.txt"), "--no-body", "--no-progress"])
    assert code == 1
    assert fake_requests.calls == []


def test_invalid_config_exits_2(tmp_path, fake_requests):
    assert cli.run(["-i", "urls.txt", "--chunk-size", "0", "--no-progress"]) == 2
    assert cli.run(["-i", "urls.txt", "-X", "POST", "--no-progress"]) == 2


def test_full_run(tmp_path, fake_requests, capsys):
    urls = tmp_path / "urls.txt"
    urls.write_text("/a\n/b\n\n/c\n")
    times = tmp_path / "times.json"
    code = cli.run(
        [
            "-i", str(urls),
            "-p", "http://host",
            "--limit", "2",
            "--chunk-size", "2",
            "--time-range", "10",
            "--no-body",
            "--no-progress",
            "--response-time-output", str(times),
        ]
    )
    assert code == 0
    assert sorted(c[0] for c in fake_requests.calls) == ["http://host/a", "http://host/b"]
    assert "Total requests:     2" in capsys.readouterr().out
    data = json.loads(times.read_text())
    assert len(data["total"]) == 2
    assert len(data["success"]) == 2
