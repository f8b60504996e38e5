from __future__ import annotations

from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

from ..models import CURRENT, Descriptor, Record
from ..parsers.capabilities import parse_wfs_feature_types
from ..parsers.fields import FieldMap, RecordContext
from ..strategy import (
    WGS84,
    WGS84_URN,
    WMS_DELTA_DEG,
    DiscoveryCache,
    Strategy,
    bbox_latlon,
    bbox_lonlat,
    capabilities_params,
    probe_capabilities,
    run_strategies,
    wfs_getfeature_params,
)
from .base import adapter_logger, default_client, health_timeout, never_raises
from .wfs import parse_wfs_body
from .wms import HTML, JSON, PLAIN, XML, fetch_wms_layers, parse_wms_body, wms_strategy


DESCRIPTOR = Descriptor(state="Saarland", code="SL")

WFS_URL = "https://geoportal.saarland.de/arcgis/services/Internet/Boden_WFS/MapServer/WFSServer"
WFS_TYPE_NAMES = (
    "Boden_WFS:Bodenrichtwerte",
    "Bodenrichtwerte",
    "bodenrichtwerte",
    "Boden_WFS:BRW",
    "brw",
    "BRW",
)

# (url, extra query parameters); the mapserver hosts one mapfile per year
WMS_ENDPOINTS: Tuple[Tuple[str, Dict[str, str]], ...] = (
    ("https://geoportal.saarland.de/gdi-sl/mapserv", {"map": "/mapfiles/gdisl/BORIS/steuer_boris_2024.map"}),
    ("https://geoportal.saarland.de/gdi-sl/mapserv", {"map": "/mapfiles/gdisl/BORIS/steuer_boris_2022.map"}),
    (
        "https://geoportal.saarland.de/mapbender/php/wms.php",
        {"inspire": "1", "layer_id": "48720", "withChilds": "1"},
    ),
)
WMS_LAYER_CANDIDATES = ("Bodenrichtwerte", "bodenrichtwerte", "BRW", "brw", "0")
INFO_FORMATS = (PLAIN, XML, JSON, HTML)
TIMEOUT = 15.0

FIELDS = FieldMap(
    value=("bodenrichtwert", "brw", "wert", "richtwert"),
    effective_date=("stichtag", "dat", "datum"),
    land_use=("nutzungsart", "nutzung", "art"),
    development=("entwicklungszustand", "entw"),
    zone=("zone", "brwnummer", "lage"),
    municipality=("gemeinde", "gem", "ort", "name"),
)

CONTEXT = RecordContext(
    jurisdiction="Saarland",
    source="BORIS-SL (LVGL Saarland)",
    license="© Landesamt für Vermessung, Geoinformation und Landentwicklung (LVGL) Saarland",
    default_date=CURRENT,
)


def endpoint_key(url: str, extra: Dict[str, str]) -> str:
    return f"{url}?{urlencode(extra)}" if extra else url


def usable_wms_layers(layers: List[str]) -> List[str]:
    return [n for n in layers if "wms" not in n.lower() and "service" not in n.lower()]


class SaarlandAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None):
        self.client = default_client(client)
        self.discovery = DiscoveryCache()
        self.log = adapter_logger(DESCRIPTOR.code)

    async def wfs_types(self) -> List[str]:
        async def _discover():
            response = await self.client.get(
                WFS_URL, params=capabilities_params("WFS", "2.0.0"), timeout=10.0
            )
            return parse_wfs_feature_types(response["text"])

        return await self.discovery.get_or_discover(WFS_URL, _discover) or list(WFS_TYPE_NAMES)

    async def wms_layers(self, url: str, extra: Dict[str, str]) -> List[str]:
        async def _discover():
            return usable_wms_layers(await fetch_wms_layers(self.client, url, extra_params=extra, timeout=10.0))

        key = endpoint_key(url, extra)
        return await self.discovery.get_or_discover(key, _discover) or list(WMS_LAYER_CANDIDATES)

    def wfs_strategies(self, lat: float, lon: float, type_names: List[str]) -> List[Strategy]:
        bbox = bbox_latlon(lat, lon, WMS_DELTA_DEG, crs_urn=WGS84_URN)
        return [
            Strategy(
                endpoint=WFS_URL,
                protocol="WFS",
                version="2.0.0",
                format="gml",
                crs=WGS84_URN,
                layer=type_name,
                params=wfs_getfeature_params("2.0.0", type_name, bbox),
                timeout=TIMEOUT,
            )
            for type_name in type_names
        ]

    def wms_strategies(
        self, lat: float, lon: float, url: str, extra: Dict[str, str], layers: List[str]
    ) -> List[Strategy]:
        bbox = bbox_lonlat(lat, lon, WMS_DELTA_DEG)
        return [
            wms_strategy(url, "1.1.1", layer, fmt, WGS84, bbox, extra_params=extra, timeout=TIMEOUT)
            for layer in layers
            for fmt in INFO_FORMATS
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        if strategy.protocol == "WFS":
            return parse_wfs_body(text, strategy.format, FIELDS, CONTEXT)
        return parse_wms_body(text, strategy.format, FIELDS, CONTEXT, layer=strategy.layer)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        record = await run_strategies(
            self.client, self.wfs_strategies(lat, lon, await self.wfs_types()), self.parse, self.log
        )
        if record is not None:
            return record
        for url, extra in WMS_ENDPOINTS:
            layers = await self.wms_layers(url, extra)
            record = await run_strategies(
                self.client, self.wms_strategies(lat, lon, url, extra, layers), self.parse, self.log
            )
            if record is not None:
                return record
        return None

    @never_raises
    async def health_check(self) -> bool:
        return await probe_capabilities(self.client, WFS_URL, "WFS", "2.0.0", health_timeout())


def build_adapter(client=None) -> SaarlandAdapter:
    return SaarlandAdapter(client=client)
