from __future__ import annotations

import functools
import logging
from typing import Optional, Protocol, runtime_checkable

from ..errors import LookupFailure
from ..http_client import AsyncHttpClient
from ..models import Descriptor, Record
from ..settings import get_settings


USER_AGENT_BROWSER = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


@runtime_checkable
class Adapter(Protocol):
    descriptor: Descriptor

    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        raise NotImplementedError

    async def health_check(self) -> bool:
        raise NotImplementedError


def adapter_logger(code: str) -> logging.Logger:
    return logging.getLogger(f"brw.adapter.{code.lower()}")


def default_client(client: Optional[AsyncHttpClient]) -> AsyncHttpClient:
    return client if client is not None else AsyncHttpClient()


def health_timeout() -> float:
    return get_settings().health_timeout


def never_raises(method):
    """Adapter boundary: unexpected errors become "no record" / "unhealthy"."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except Exception:
            self.log.warning("%s failed unexpectedly", method.__name__, exc_info=True)
            return False if method.__name__ == "health_check" else None

    return wrapper


async def probe_ok(client, url: str, params=None, headers=None) -> bool:
    """Health probe for endpoints without a capabilities document."""

    try:
        await client.get(url, params=params, headers=headers, timeout=health_timeout())
    except LookupFailure:
        return False
    return True
