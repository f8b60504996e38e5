import os
import socket
import sys
import urllib.request
from pathlib import Path

import httpx
import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
FIXTURES = Path(__file__).resolve().parent / "fixtures"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from bodenrichtwert.http_client import AsyncHttpClient, RetryConfig  # noqa: E402
from bodenrichtwert.settings import reset_settings_cache  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "live: talks to the real upstream services")


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("CACHE_PATH", str(tmp_path / "cache.json"))
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def fixture_text():
    def _read(name):
        return (FIXTURES / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture
def mock_client():
    """AsyncHttpClient whose requests are answered by ``handler(request)``."""

    def _make(handler, retries=0):
        async def no_sleep(_delay):
            return None

        return AsyncHttpClient(
            transport=httpx.MockTransport(handler),
            retry_config=RetryConfig(retries=retries, jitter=0.0),
            sleep_fn=no_sleep,
        )

    return _make
