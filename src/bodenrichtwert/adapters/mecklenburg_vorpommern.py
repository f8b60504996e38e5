from __future__ import annotations

from typing import List, Optional, Sequence

from ..models import Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..parsers.geojson import parse_feature_collection
from ..strategy import (
    WFS_DELTA_DEG,
    WGS84,
    WGS84_URN,
    WMS_DELTA_DEG,
    DiscoveryCache,
    Strategy,
    bbox_latlon,
    bbox_lonlat,
    probe_capabilities,
    run_strategies,
    wfs_getfeature_params,
)
from .base import adapter_logger, default_client, health_timeout, never_raises
from .wms import OGC_GML, PLAIN, XML, fetch_wms_layers, looks_like_html, parse_wms_body, wms_strategy


DESCRIPTOR = Descriptor(state="Mecklenburg-Vorpommern", code="MV")

WFS_ENDPOINTS = (
    "https://www.geodaten-mv.de/dienste/bodenrichtwerte_wfs",
    "https://geoserver.geodaten-mv.de/geoserver/bodenrichtwerte/wfs",
    "https://www.geodaten-mv.de/geoserver/bodenrichtwerte/wfs",
)
WMS_ENDPOINTS = (
    "https://www.geodaten-mv.de/dienste/bodenrichtwerte_wms",
    "https://www.geodaten-mv.de/geoserver/bodenrichtwerte/wms",
    "https://geoserver.geodaten-mv.de/geoserver/bodenrichtwerte/wms",
)
WFS_TYPE_NAME = "boris:bodenrichtwert"

# residential sub-layers before the umbrella group layer
LAYER_CANDIDATES = (
    "wohnbauflaeche",
    "gemischte_bauflaeche",
    "gewerbliche_bauflaeche",
    "sonderbauflaeche",
    "bodenrichtwerte",
)
INFO_FORMATS = (PLAIN, OGC_GML, XML)
LAYER_KEYWORDS = ("brw", "bodenrichtwert", "vboris")

FIELDS = FieldMap(
    value=("brwkon", "bodenrichtwert", "brw", "BRW", "wert"),
    effective_date=("stag", "stichtag"),
    land_use=("nuta", "nutzungsart", "NUTZUNG", "class"),
    development=("entw", "entwicklungszustand"),
    zone=("wnum", "zone", "brw_zone"),
    municipality=("ortst", "gabe", "gemeinde", "gena", "gemeinde_name"),
)

LICENSE = "© LAiV M-V"
WFS_CONTEXT = RecordContext(jurisdiction=DESCRIPTOR.state, source="BORIS-MV", license=LICENSE)
WMS_CONTEXT = RecordContext(jurisdiction=DESCRIPTOR.state, source="BORIS-MV (WMS/{layer})", license=LICENSE)


def select_brw_layers(layers: Sequence[str]) -> List[str]:
    wanted = [n for n in layers if any(k in n.lower() for k in LAYER_KEYWORDS)]
    return wanted or list(layers)


class MecklenburgVorpommernAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None):
        self.client = default_client(client)
        self.discovery = DiscoveryCache()
        self.log = adapter_logger(DESCRIPTOR.code)

    async def discovered_layers(self) -> List[str]:
        for endpoint in WMS_ENDPOINTS:

            async def _discover(endpoint=endpoint):
                return select_brw_layers(await fetch_wms_layers(self.client, endpoint))

            layers = await self.discovery.get_or_discover(endpoint, _discover)
            if layers:
                return layers
        return []

    def wfs_strategies(self, lat: float, lon: float) -> List[Strategy]:
        bbox = bbox_latlon(lat, lon, WFS_DELTA_DEG, crs_urn=WGS84_URN)
        return [
            Strategy(
                endpoint=endpoint,
                protocol="WFS",
                version="2.0.0",
                format="application/json",
                crs=WGS84_URN,
                layer=WFS_TYPE_NAME,
                params=wfs_getfeature_params("2.0.0", WFS_TYPE_NAME, bbox, "application/json"),
                timeout=10.0,
            )
            for endpoint in WFS_ENDPOINTS
        ]

    def wms_strategies(self, lat: float, lon: float, layers: Sequence[str]) -> List[Strategy]:
        bbox = bbox_lonlat(lat, lon, WMS_DELTA_DEG)
        return [
            wms_strategy(endpoint, "1.1.1", layer, fmt, WGS84, bbox, feature_count=10)
            for endpoint in WMS_ENDPOINTS
            for layer in layers
            for fmt in INFO_FORMATS
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        if strategy.protocol == "WFS":
            return parse_feature_collection(text, FIELDS, WFS_CONTEXT)
        if looks_like_html(text):
            return None
        return parse_wms_body(text, strategy.format, FIELDS, WMS_CONTEXT, layer=strategy.layer)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        record = await run_strategies(self.client, self.wfs_strategies(lat, lon), self.parse, self.log)
        if record is not None:
            return record
        layers = list(dict.fromkeys([*await self.discovered_layers(), *LAYER_CANDIDATES]))
        return await run_strategies(
            self.client, self.wms_strategies(lat, lon, layers), self.parse, self.log
        )

    @never_raises
    async def health_check(self) -> bool:
        for endpoint in WFS_ENDPOINTS:
            if await probe_capabilities(self.client, endpoint, "WFS", "2.0.0", health_timeout()):
                return True
        for endpoint in WMS_ENDPOINTS:
            if await probe_capabilities(self.client, endpoint, "WMS", "1.1.1", health_timeout()):
                return True
        return False


def build_adapter(client=None) -> MecklenburgVorpommernAdapter:
    return MecklenburgVorpommernAdapter(client=client)
