from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import CURRENT, Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..strategy import (
    WGS84,
    WMS_DELTA_DEG,
    DiscoveryCache,
    Strategy,
    bbox_latlon,
    bbox_lonlat,
    bbox_projected,
    run_strategies,
)
from .base import USER_AGENT_BROWSER, adapter_logger, default_client, never_raises
from .wms import HTML, OGC_GML, PLAIN, XML, fetch_wms_layers, parse_wms_body, wms_strategy


DESCRIPTOR = Descriptor(state="Schleswig-Holstein", code="SH")

ENDPOINTS = (
    "https://service.gdi-sh.de/WMS_SH_FD_VBORIS_DANORD",
    "https://dienste.gdi-sh.de/WMS_SH_FD_VBORIS_DANORD",
    "https://service.gdi-sh.de/WMS_SH_FD_VBORIS",
    "https://dienste.gdi-sh.de/WMS_SH_FD_VBORIS",
)

# The DANORD viewer endpoints only answer requests that look like they come
# from the viewer itself.
DANORD_HEADERS = {
    "User-Agent": USER_AGENT_BROWSER,
    "Referer": "https://danord.gdi-sh.de/viewer/resources/apps/VBORIS/index.html",
    "Origin": "https://danord.gdi-sh.de",
}

LAYER_CANDIDATES = (
    "Stichtag_2024",
    "Stichtag_2022",
    "Stichtag_2020",
    "Stichtag_2018",
    "Stichtag_2016",
    "Stichtag_2014",
    "vBODENRICHTWERTZONE_20240101",
    "vBODENRICHTWERTZONE_20220101",
    "brw_aktuell",
    "Bodenrichtwert",
    "bodenrichtwert",
    "BRW",
    "brw",
    "0",
    "1",
)
MAX_LAYERS = 6
LAYER_KEYWORDS = ("bodenrichtwert", "richtwert", "stichtag", "brw", "bauland")

UTM_CRS = "EPSG:25832"
UTM_HALF_WIDTH_M = 100.0
INFO_FORMATS = (HTML, PLAIN, XML, OGC_GML)

FIELDS = FieldMap(
    value=("brwkon", "BRW", "Bodenrichtwert", "bodenrichtwert", "brw", "Richtwert"),
    effective_date=("stichtag", "Stichtag", "stag", "STAG", "Stichtagsdatum"),
    land_use=("nutzungsart", "Nutzungsart", "nuta", "NUTA", "Nutzung"),
    development=("entwicklungszustand", "Entwicklungszustand", "entw", "ENTW"),
    zone=("zone", "Zone", "wnum", "WNUM", "Bodenrichtwertnummer", "Zonennummer"),
    municipality=("gemeinde", "Gemeinde", "gena", "GENA", "Gemeindename", "Ort"),
)

CONTEXT = RecordContext(
    jurisdiction=DESCRIPTOR.state,
    source="VBORIS-SH",
    license="© LVermGeo SH (Ansicht frei)",
    default_date=CURRENT,
)

_YEAR_RE = re.compile(r"_(\d{4})")


def headers_for(endpoint: str) -> Dict[str, str]:
    return dict(DANORD_HEADERS) if "_DANORD" in endpoint else {}


def _is_brw_layer(name: str) -> bool:
    lowered = name.lower()
    return lowered == "vboris" or any(k in lowered for k in LAYER_KEYWORDS)


def rank_layers(layers: Sequence[str]) -> List[str]:
    """Newest reference year first, zone layers ahead of point layers."""

    usable = [
        n for n in layers
        if 2 < len(n) < 100 and "WMS" not in n and "http" not in n and n != "default"
    ]
    brw = [n for n in usable if _is_brw_layer(n)]

    def _key(name: str) -> Tuple[int, int]:
        m = _YEAR_RE.search(name)
        year = int(m.group(1)) if m else 0
        return (-year, 0 if "Bodenrichtwert" in name else 1)

    return sorted(brw, key=_key) if brw else usable


class SchleswigHolsteinAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None):
        self.client = default_client(client)
        self.discovery = DiscoveryCache()
        self.log = adapter_logger(DESCRIPTOR.code)

    async def discovered_layers(self) -> List[str]:
        for endpoint in ENDPOINTS:
            for version in ("1.3.0", "1.1.1"):

                async def _discover(endpoint=endpoint, version=version):
                    return rank_layers(
                        await fetch_wms_layers(
                            self.client, endpoint, version=version, headers=headers_for(endpoint)
                        )
                    )

                layers = await self.discovery.get_or_discover(endpoint, _discover)
                if layers:
                    return layers
        return []

    def layer_strategies(self, lat: float, lon: float, endpoint: str, layer: str) -> List[Strategy]:
        headers = headers_for(endpoint)
        variants = (
            ("1.3.0", UTM_CRS, bbox_projected(lat, lon, UTM_CRS, UTM_HALF_WIDTH_M)),
            ("1.3.0", WGS84, bbox_latlon(lat, lon, WMS_DELTA_DEG)),
            ("1.1.1", WGS84, bbox_lonlat(lat, lon, WMS_DELTA_DEG)),
        )
        return [
            wms_strategy(endpoint, version, layer, fmt, crs, bbox, headers=headers)
            for version, crs, bbox in variants
            for fmt in INFO_FORMATS
        ]

    def strategies(self, lat: float, lon: float, layers: Sequence[str]) -> List[Strategy]:
        return [
            strategy
            for endpoint in ENDPOINTS
            for layer in layers
            for strategy in self.layer_strategies(lat, lon, endpoint, layer)
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        if len((text or "").strip()) < 20:
            return None
        return parse_wms_body(text, strategy.format, FIELDS, CONTEXT, layer=strategy.layer)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        layers = (await self.discovered_layers() or list(LAYER_CANDIDATES))[:MAX_LAYERS]
        return await run_strategies(
            self.client, self.strategies(lat, lon, layers), self.parse, self.log
        )

    @never_raises
    async def health_check(self) -> bool:
        return bool(await self.discovered_layers())


def build_adapter(client=None) -> SchleswigHolsteinAdapter:
    return SchleswigHolsteinAdapter(client=client)
