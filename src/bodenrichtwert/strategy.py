"""Candidate query tuples and the single loop that consumes them.

Adapters only describe *what* to try, in order. Termination and failure
classification live here once: the first positive record wins, every failure
means "next candidate", nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import EmptyResult, LookupFailure, UpstreamError, has_service_exception
from .models import Record
from .projection import to_epsg


BBox = Tuple[float, float, float, float]

WGS84 = "EPSG:4326"
WGS84_URN = "urn:ogc:def:crs:EPSG::4326"
ETRS89_URN = "urn:ogc:def:crs:EPSG::4258"

# default half-widths of the query box
WFS_DELTA_DEG = 0.0005
WMS_DELTA_DEG = 0.001


@dataclass(frozen=True)
class Strategy:
    endpoint: str
    protocol: str
    version: str
    format: str
    crs: str
    layer: str
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    # adapter-private context, e.g. the reference year a request targets
    tag: str = ""

    @property
    def label(self) -> str:
        return f"{self.protocol} {self.version} {self.layer} {self.format} {self.crs}".strip()


ParseFn = Callable[[Strategy, str], Optional[Record]]


# --- bounding boxes ---------------------------------------------------------


def _fmt(value: float, digits: int = 6) -> str:
    return f"{value:.{digits}f}"


def bbox_lonlat(lat: float, lon: float, delta: float = WMS_DELTA_DEG) -> str:
    """minlon,minlat,maxlon,maxlat (WMS 1.1.1, OGC API)."""

    return ",".join(_fmt(v) for v in (lon - delta, lat - delta, lon + delta, lat + delta))


def bbox_latlon(lat: float, lon: float, delta: float = WMS_DELTA_DEG, crs_urn: str = "") -> str:
    """minlat,minlon,maxlat,maxlon (WFS 2.0 / WMS 1.3.0 with EPSG:4326 axis order)."""

    parts = [_fmt(v) for v in (lat - delta, lon - delta, lat + delta, lon + delta)]
    if crs_urn:
        parts.append(crs_urn)
    return ",".join(parts)


def bbox_projected(lat: float, lon: float, crs: str, half_width_m: float) -> str:
    easting, northing = to_epsg(lat, lon, crs)
    return ",".join(
        _fmt(v, 2)
        for v in (
            easting - half_width_m,
            northing - half_width_m,
            easting + half_width_m,
            northing + half_width_m,
        )
    )


# --- request parameters -----------------------------------------------------


def wfs_getfeature_params(
    version: str,
    type_name: str,
    bbox: str,
    output_format: str = "",
    count: int = 5,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "service": "WFS",
        "version": version,
        "request": "GetFeature",
        "bbox": bbox,
    }
    if version.startswith("2."):
        params["typeNames"] = type_name
        params["count"] = str(count)
    else:
        params["typeName"] = type_name
        params["maxFeatures"] = str(count)
    if output_format:
        params["outputFormat"] = output_format
    return params


def wms_getfeatureinfo_params(
    version: str,
    layer: str,
    bbox: str,
    crs: str,
    info_format: str,
    feature_count: int = 5,
    size: int = 101,
) -> Dict[str, Any]:
    center = str(size // 2)
    params: Dict[str, Any] = {
        "SERVICE": "WMS",
        "VERSION": version,
        "REQUEST": "GetFeatureInfo",
        "LAYERS": layer,
        "QUERY_LAYERS": layer,
        "STYLES": "",
        "BBOX": bbox,
        "WIDTH": str(size),
        "HEIGHT": str(size),
        "INFO_FORMAT": info_format,
        "FEATURE_COUNT": str(feature_count),
        "FORMAT": "image/png",
    }
    if version == "1.3.0":
        params.update({"CRS": crs, "I": center, "J": center})
    else:
        params.update({"SRS": crs, "X": center, "Y": center})
    return params


def ogcapi_items_params(lat: float, lon: float, delta: float, limit: int = 5) -> Dict[str, Any]:
    return {"bbox": bbox_lonlat(lat, lon, delta), "f": "json", "limit": str(limit)}


def capabilities_params(service: str, version: str) -> Dict[str, Any]:
    return {"SERVICE": service, "REQUEST": "GetCapabilities", "VERSION": version}


# --- execution --------------------------------------------------------------


async def attempt(client, strategy: Strategy, parse: ParseFn, logger: logging.Logger) -> Optional[Record]:
    """Run one candidate. Every failure is logged and becomes ``None``."""

    try:
        response = await client.get(
            strategy.endpoint,
            params=strategy.params,
            headers=strategy.headers,
            timeout=strategy.timeout,
        )
        text = response["text"]
        if has_service_exception(text):
            raise UpstreamError("service exception in body", status=response["status"])
        record = parse(strategy, text)
        if record is None or not record.value > 0:
            raise EmptyResult("no feature")
        return record
    except UpstreamError as exc:
        if exc.status in (401, 403):
            logger.warning("%s refused access (HTTP %s)", strategy.label, exc.status)
        else:
            logger.debug("%s failed: %s", strategy.label, exc)
        return None
    except LookupFailure as exc:
        logger.debug("%s failed: %s: %s", strategy.label, type(exc).__name__, exc)
        return None
    except Exception:  # parser bug or unexpected upstream shape
        logger.warning("%s raised unexpectedly", strategy.label, exc_info=True)
        return None


async def run_strategies(
    client,
    strategies: Iterable[Strategy],
    parse: ParseFn,
    logger: logging.Logger,
) -> Optional[Record]:
    for strategy in strategies:
        record = await attempt(client, strategy, parse, logger)
        if record is not None:
            logger.info("hit via %s", strategy.label)
            return record
    return None


async def race_strategies(
    client,
    strategies: Sequence[Strategy],
    parse: ParseFn,
    logger: logging.Logger,
    batch_size: int = 4,
) -> Optional[Record]:
    """Like ``run_strategies`` but runs each batch concurrently.

    The first candidate of a batch to produce a record wins and the rest of the
    batch is cancelled. Batches are still consumed in order.
    """

    batch_size = max(int(batch_size), 1)
    for start in range(0, len(strategies), batch_size):
        batch = strategies[start : start + batch_size]
        tasks = [asyncio.ensure_future(attempt(client, s, parse, logger)) for s in batch]
        try:
            for next_done in asyncio.as_completed(tasks):
                record = await next_done
                if record is not None:
                    logger.info("race won in batch of %d", len(batch))
                    return record
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
    return None


async def probe_capabilities(
    client,
    endpoint: str,
    service: str,
    version: str,
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
) -> bool:
    """Structural health probe: does the endpoint answer with a capabilities document?"""

    try:
        response = await client.get(
            endpoint,
            params=capabilities_params(service, version),
            headers=headers,
            timeout=timeout,
        )
    except LookupFailure:
        return False
    text = response["text"]
    return "Capabilities" in text and not has_service_exception(text)


class DiscoveryCache:
    """Per-adapter memo of discovered layer names, keyed by endpoint.

    Two cold calls may both discover and both write; the values are equal, so
    no lock is taken. Empty or failed discoveries are not remembered.
    """

    def __init__(self):
        self._entries: Dict[str, List[str]] = {}

    def get(self, endpoint: str) -> Optional[List[str]]:
        cached = self._entries.get(endpoint)
        return list(cached) if cached is not None else None

    async def get_or_discover(
        self, endpoint: str, discover: Callable[[], Awaitable[List[str]]]
    ) -> List[str]:
        cached = self.get(endpoint)
        if cached is not None:
            return cached
        try:
            layers = list(await discover())
        except LookupFailure:
            return []
        if layers:
            self._entries[endpoint] = layers
        return list(layers)

    def __len__(self) -> int:
        return len(self._entries)
