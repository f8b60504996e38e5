"""Primary adapter with a secondary source behind it.

The secondary is only consulted when the primary yields nothing, and its
record is only passed on when it carries an ``estimation`` block. The chain
reports the primary's descriptor, so callers still see the official source
and its notes.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from ..models import Record
from .base import Adapter, adapter_logger, never_raises


class ChainedAdapter:
    def __init__(self, primary: Adapter, secondary: Adapter):
        self.primary = primary
        self.secondary = secondary
        self.descriptor = primary.descriptor
        self.log = adapter_logger(self.descriptor.code)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        record = await self.primary.fetch_value(lat, lon)
        if record is not None and record.value > 0:
            return record
        self.log.info("%s: primary source empty, trying secondary", self.descriptor.state)
        record = await self.secondary.fetch_value(lat, lon)
        if record is None or record.value <= 0:
            return None
        if not record.is_estimate:
            self.log.warning("%s: secondary record without estimation dropped", self.descriptor.state)
            return None
        return record

    @never_raises
    async def health_check(self) -> bool:
        results = await asyncio.gather(
            self.primary.health_check(),
            self.secondary.health_check(),
            return_exceptions=True,
        )
        return any(result is True for result in results)
