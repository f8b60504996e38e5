"""States without a usable public service.

A fallback adapter never produces a record. It carries the reason and a
portal link so callers can tell the user where to look instead.
"""

from __future__ import annotations

from typing import Optional

from ..models import Descriptor, Record
from .base import adapter_logger


BADEN_WUERTTEMBERG = Descriptor(
    state="Baden-Württemberg",
    code="BW",
    is_fallback=True,
    reason=(
        "Baden-Württemberg hat keinen landesweiten WMS/WFS-Endpunkt. Einzelne Kommunen "
        "(Stuttgart, Heidelberg etc.) haben eigene WMS-Dienste, aber keine einheitliche "
        "Abdeckung."
    ),
    reference_url="https://www.gutachterausschuesse-bw.de/borisbw/",
)

FALLBACK_DESCRIPTORS = {BADEN_WUERTTEMBERG.state: BADEN_WUERTTEMBERG}

DEFAULT_REFERENCE_URL = "https://www.boris-d.de"


def fallback_descriptor(state: str) -> Descriptor:
    known = FALLBACK_DESCRIPTORS.get(state)
    if known is not None:
        return known
    return Descriptor(
        state=state,
        code="??",
        is_fallback=True,
        reason=f"Für {state} ist noch kein WFS-Adapter implementiert.",
        reference_url=DEFAULT_REFERENCE_URL,
    )


class FallbackAdapter:
    def __init__(self, state: str):
        self.descriptor = fallback_descriptor(state)
        self.log = adapter_logger(self.descriptor.code.strip("?") or "fallback")

    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        self.log.info("%s: no public service, manual lookup required", self.descriptor.state)
        return None

    async def health_check(self) -> bool:
        return True
