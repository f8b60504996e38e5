"""Configurable WFS GetFeature adapter.

Most states that run a WFS differ only in endpoint, type names, output
formats, axis order and field names. Those are data, so they live in a
``WfsSource`` and one flat adapter class consumes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models import Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..parsers.geojson import parse_feature_collection
from ..parsers.gml import parse_gml
from ..strategy import (
    WFS_DELTA_DEG,
    WGS84,
    WGS84_URN,
    Strategy,
    bbox_latlon,
    probe_capabilities,
    run_strategies,
    wfs_getfeature_params,
)
from .base import adapter_logger, default_client, health_timeout, never_raises


JSON = "application/json"
GML = ""  # server default, GML 3.2 for WFS 2.0


@dataclass(frozen=True)
class WfsSource:
    endpoint: str
    type_names: Sequence[str]
    fields: FieldMap
    context: RecordContext
    version: str = "2.0.0"
    formats: Sequence[str] = (JSON,)
    bbox_crs_urn: str = WGS84_URN
    delta: float = WFS_DELTA_DEG
    count: int = 5
    timeout: float = 8.0


def parse_wfs_body(text: str, fmt: str, fields: FieldMap, ctx: RecordContext) -> Optional[Record]:
    if fmt == JSON or "json" in fmt:
        return parse_feature_collection(text, fields, ctx)
    return parse_gml(text, fields, ctx)


class WfsAdapter:
    def __init__(self, descriptor: Descriptor, source: WfsSource, client=None):
        self.descriptor = descriptor
        self.source = source
        self.client = default_client(client)
        self.log = adapter_logger(descriptor.code)

    def strategies(self, lat: float, lon: float) -> List[Strategy]:
        src = self.source
        bbox = bbox_latlon(lat, lon, src.delta, crs_urn=src.bbox_crs_urn)
        out = []
        for type_name in src.type_names:
            for fmt in src.formats:
                out.append(
                    Strategy(
                        endpoint=src.endpoint,
                        protocol="WFS",
                        version=src.version,
                        format=fmt or "gml",
                        crs=src.bbox_crs_urn or WGS84,
                        layer=type_name,
                        params=wfs_getfeature_params(
                            src.version, type_name, bbox, output_format=fmt, count=src.count
                        ),
                        timeout=src.timeout,
                    )
                )
        return out

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        return parse_wfs_body(text, strategy.format, self.source.fields, self.source.context)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        return await run_strategies(self.client, self.strategies(lat, lon), self.parse, self.log)

    @never_raises
    async def health_check(self) -> bool:
        return await probe_capabilities(
            self.client, self.source.endpoint, "WFS", self.source.version, health_timeout()
        )
