"""One adapter per federal state, keyed by canonical state name."""

from __future__ import annotations

from typing import Callable, Dict

from . import (
    bayern,
    berlin,
    brandenburg,
    bremen,
    hamburg,
    hessen,
    mecklenburg_vorpommern,
    niedersachsen,
    nrw,
    rlp,
    saarland,
    sachsen,
    sachsen_anhalt,
    schleswig_holstein,
    thueringen,
)
from .base import Adapter
from .chained import ChainedAdapter
from .fallback import BADEN_WUERTTEMBERG, FallbackAdapter
from .immoscout import ImmoScoutEstimator


def _with_estimator(primary: Adapter, client, enabled: bool) -> Adapter:
    if not enabled:
        return primary
    estimator = ImmoScoutEstimator(
        primary.descriptor.state, client=client, code=primary.descriptor.code
    )
    return ChainedAdapter(primary, estimator)


def build_bayern(client=None, estimator: bool = True) -> Adapter:
    return _with_estimator(bayern.build_adapter(client), client, estimator)


def build_baden_wuerttemberg(client=None, estimator: bool = True) -> Adapter:
    return _with_estimator(FallbackAdapter(BADEN_WUERTTEMBERG.state), client, estimator)


_PLAIN = (
    hamburg,
    nrw,
    berlin,
    hessen,
    niedersachsen,
    thueringen,
    rlp,
    brandenburg,
    sachsen,
    sachsen_anhalt,
    mecklenburg_vorpommern,
    schleswig_holstein,
    bremen,
    saarland,
)

# state name -> factory(client, estimator)
BUILDERS: Dict[str, Callable[..., Adapter]] = {
    module.DESCRIPTOR.state: (lambda client=None, estimator=True, _m=module: _m.build_adapter(client))
    for module in _PLAIN
}
BUILDERS[bayern.DESCRIPTOR.state] = build_bayern
BUILDERS[BADEN_WUERTTEMBERG.state] = build_baden_wuerttemberg

CODES: Dict[str, str] = {
    module.DESCRIPTOR.code: module.DESCRIPTOR.state for module in _PLAIN + (bayern,)
}
CODES[BADEN_WUERTTEMBERG.code] = BADEN_WUERTTEMBERG.state

__all__ = [
    "Adapter",
    "BUILDERS",
    "CODES",
    "ChainedAdapter",
    "FallbackAdapter",
    "ImmoScoutEstimator",
    "build_baden_wuerttemberg",
    "build_bayern",
]
