import json
import logging
import subprocess
import sys
from pathlib import Path

import httpx
import pytest

from bodenrichtwert import __main__ as cli
from bodenrichtwert.cache import ResultCache
from bodenrichtwert.models import Record
from bodenrichtwert.router import Router


REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def restore_logging():
    logger = logging.getLogger("brw")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def _last_json(out):
    lines = [line for line in out.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


def test_list_states(capsys):
    assert cli.main(["--list-states"]) == 0
    payload = _last_json(capsys.readouterr().out)
    assert len(payload["states"]) == 16
    assert "Thüringen" in payload["states"]


def test_lookup_prints_json(monkeypatch, capsys, fixture_text, mock_client):
    client = mock_client(lambda request: httpx.Response(200, text=fixture_text("hamburg_wfs.json")))
    monkeypatch.setattr(cli, "Router", lambda: Router(client=client, estimator=False))
    code = cli.main(["--lat", "53.5511", "--lon", "9.9937", "--state", "Hamburg", "--no-cache"])
    payload = _last_json(capsys.readouterr().out)
    assert code == 0
    assert payload["status"] == "success"
    assert payload["record"]["source"] == "BORIS-HH"


def test_lookup_requires_coordinates(capsys):
    with pytest.raises(SystemExit):
        cli.main(["--state", "Hamburg"])


def test_cache_commands(capsys, tmp_path):
    with ResultCache() as cache:
        cache.set("53.55110:9.99370", Record(value=1850.0))
    assert cli.main(["--cache-stats"]) == 0
    assert _last_json(capsys.readouterr().out)["entries"] == 1
    assert cli.main(["--cache-clear"]) == 0
    assert _last_json(capsys.readouterr().out)["removed"] == 1


def test_health_single_state(monkeypatch, capsys, mock_client):
    client = mock_client(lambda request: httpx.Response(503))
    monkeypatch.setattr(cli, "Router", lambda: Router(client=client, estimator=False))
    assert cli.main(["--health", "bw"]) == 0
    payload = _last_json(capsys.readouterr().out)
    assert payload["states"] == {"Baden-Württemberg": True}


def test_json_log_formatter():
    record = logging.LogRecord("brw.test", logging.WARNING, __file__, 1, "hit via %s", ("WFS",), None)
    line = json.loads(cli.JsonLogFormatter().format(record))
    assert line == {"level": "WARNING", "logger": "brw.test", "message": "hit via WFS"}


def test_module_entry_point_from_checkout():
    cmd = [sys.executable, "-m", "bodenrichtwert", "--list-states", "--log-json"]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False, cwd=str(REPO_ROOT))
    assert proc.returncode == 0, proc.stderr
    assert "Hamburg" in _last_json(proc.stdout)["states"]
