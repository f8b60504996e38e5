from __future__ import annotations

import asyncio
import logging
import unicodedata
from typing import Dict, List, Optional

from .adapters import BUILDERS, CODES, Adapter, FallbackAdapter
from .errors import ConfigurationGap
from .http_client import AsyncHttpClient
from .settings import get_settings


logger = logging.getLogger("brw.router")

_UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"}


def _norm(name: str) -> str:
    """Case-, umlaut- and separator-insensitive state key."""

    text = unicodedata.normalize("NFC", (name or "").strip().lower())
    for umlaut, plain in _UMLAUTS.items():
        text = text.replace(umlaut, plain)
    return "".join(ch for ch in text if ch.isalnum())


_ALIASES: Dict[str, str] = {_norm(state): state for state in BUILDERS}
_ALIASES.update({_norm(code): state for code, state in CODES.items()})
_ALIASES[_norm("NRW")] = CODES["NW"]


def canonical_state(name: str) -> Optional[str]:
    return _ALIASES.get(_norm(name))


def supported_states() -> List[str]:
    return sorted(BUILDERS)


class Router:
    """Builds each state's adapter once and hands it out by name.

    All adapters share one HTTP client; close it with ``aclose`` when done.
    """

    def __init__(self, client: Optional[AsyncHttpClient] = None, estimator: Optional[bool] = None):
        self.client = client if client is not None else AsyncHttpClient()
        self.estimator = get_settings().estimator_enabled if estimator is None else estimator
        self._adapters: Dict[str, Adapter] = {}

    def require_adapter(self, state: str) -> Adapter:
        canonical = canonical_state(state)
        if canonical is None:
            raise ConfigurationGap(state)
        adapter = self._adapters.get(canonical)
        if adapter is None:
            adapter = BUILDERS[canonical](self.client, estimator=self.estimator)
            self._adapters[canonical] = adapter
        return adapter

    def get_adapter(self, state: str) -> Adapter:
        try:
            return self.require_adapter(state)
        except ConfigurationGap as exc:
            logger.warning("%s, using manual-lookup fallback", exc)
            return FallbackAdapter(state.strip() or "unbekannt")

    async def health_report(self, states: Optional[List[str]] = None) -> Dict[str, bool]:
        names = list(states) if states else supported_states()
        adapters = [self.get_adapter(name) for name in names]
        results = await asyncio.gather(*(a.health_check() for a in adapters), return_exceptions=True)
        report = {}
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                logger.warning("health check for %s raised %r", adapter.descriptor.state, result)
            report[adapter.descriptor.state] = result is True
        return report

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "Router":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
