from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .cache import ResultCache, cache_key
from .models import LookupResult
from .router import Router


logger = logging.getLogger("brw.service")

SUCCESS = "success"
NOT_FOUND = "not_found"
MANUAL_REQUIRED = "manual_required"


async def lookup(
    lat: float,
    lon: float,
    state: str,
    cache: Optional[ResultCache] = None,
    router: Optional[Router] = None,
) -> LookupResult:
    """Reference land value at (lat, lon) in ``state``.

    Never raises for upstream trouble: the outcome is always a record, an
    explicit "not found", or "manual lookup required" with a portal link.
    """

    own_router = router is None
    router = router or Router()
    try:
        adapter = router.get_adapter(state)
        descriptor = adapter.descriptor
        key = cache_key(lat, lon)

        if cache is not None:
            hit = cache.get(key)
            if hit is not None:
                logger.debug("cache hit %s", key)
                return LookupResult(SUCCESS, descriptor, record=hit, cached=True)

        record = await adapter.fetch_value(lat, lon)
        if record is not None and record.value > 0:
            if cache is not None:
                cache.set(key, record)
                if cache.save_due:
                    await asyncio.get_running_loop().run_in_executor(None, cache.flush)
            return LookupResult(SUCCESS, descriptor, record=record)

        status = MANUAL_REQUIRED if descriptor.is_fallback else NOT_FOUND
        logger.info("%s at %s,%s: %s", descriptor.state, lat, lon, status)
        return LookupResult(status, descriptor)
    finally:
        if own_router:
            await router.aclose()
