from __future__ import annotations

from typing import List, Optional, Sequence

from ..models import CURRENT, Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..strategy import (
    WGS84,
    WMS_DELTA_DEG,
    DiscoveryCache,
    Strategy,
    bbox_lonlat,
    race_strategies,
    run_strategies,
)
from .base import adapter_logger, default_client, never_raises
from .wms import XML, fetch_wms_layers, parse_wms_body, wms_strategy


DESCRIPTOR = Descriptor(state="Sachsen", code="SN")

PROXY_URL = "https://www.landesvermessung.sachsen.de/fp/http-proxy/svc"
ENDPOINTS = (
    PROXY_URL,
    "https://geodienste.sachsen.de/wms_geosn_bodenrichtwerte/guest",
    "https://geodaten.sachsen.de/wss/service/SN_GeoSN_BRW_gast/guest",
    "https://geodaten.sachsen.de/wss/service/SN_LfULG_BODENRICHTWERTE_gast/guest",
)
YEARS = ("2024", "2023")
LAYER_CANDIDATES = (
    "Bodenrichtwerte",
    "bodenrichtwerte",
    "BRW",
    "brw",
    "BRW_Zonen",
    "brw_zonen",
    "Bauland",
    "0",
    "1",
)
# upper bound for one concurrent layer race
MAX_LAYERS = 9

FIELDS = FieldMap(
    value=("bodenrichtwert", "brw", "BRW", "richtwert", "wert"),
    effective_date=("stichtag", "stag"),
    land_use=("nutzungsart", "nuta"),
    development=("entwicklungszustand", "entw"),
    zone=("zone", "wnum"),
    municipality=("gemeinde", "gena"),
)

LICENSE = "© GeoSN, erlaubnis- und gebührenfrei"


def _year_params(endpoint: str, year: str) -> dict:
    # only the proxy selects the reference year through its cfg parameter
    if year and "http-proxy" in endpoint:
        return {"cfg": f"boris_{year}"}
    return {}


class SachsenAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None, endpoints: Sequence[str] = ENDPOINTS):
        self.client = default_client(client)
        self.endpoints = tuple(endpoints)
        self.discovery = DiscoveryCache()
        self.log = adapter_logger(DESCRIPTOR.code)

    async def discover(self):
        """First endpoint that answers with WMS capabilities, and its layers."""

        for endpoint in self.endpoints:
            layers = await self.discovery.get_or_discover(
                endpoint,
                lambda endpoint=endpoint: fetch_wms_layers(
                    self.client, endpoint, extra_params=_year_params(endpoint, YEARS[0])
                ),
            )
            if layers:
                return endpoint, layers
        return None, []

    def yearly_strategies(
        self, lat: float, lon: float, endpoints: Sequence[str], layers: Sequence[str]
    ) -> List[Strategy]:
        bbox = bbox_lonlat(lat, lon, WMS_DELTA_DEG)
        return [
            wms_strategy(
                endpoint,
                "1.1.1",
                layer,
                XML,
                WGS84,
                bbox,
                extra_params=_year_params(endpoint, year),
                tag=year,
            )
            for endpoint in endpoints
            for year in YEARS
            for layer in layers
        ]

    def plain_strategies(self, lat: float, lon: float) -> List[Strategy]:
        bbox = bbox_lonlat(lat, lon, WMS_DELTA_DEG)
        return [
            wms_strategy(endpoint, "1.1.1", layer, XML, WGS84, bbox)
            for endpoint in self.endpoints
            for layer in LAYER_CANDIDATES
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        year = strategy.tag
        ctx = RecordContext(
            jurisdiction=DESCRIPTOR.state,
            source=f"BORIS-Sachsen ({year})" if year else "BORIS-Sachsen",
            license=LICENSE,
            default_date=f"{year}-01-01" if year else CURRENT,
        )
        return parse_wms_body(text, strategy.format, FIELDS, ctx, layer=strategy.layer)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        endpoint, discovered = await self.discover()
        endpoints = [endpoint] if endpoint else list(self.endpoints)
        layers = (discovered or list(LAYER_CANDIDATES))[:MAX_LAYERS]
        # one batch per (endpoint, year) so layer races never cross years
        batch = len(layers)
        record = await race_strategies(
            self.client,
            self.yearly_strategies(lat, lon, endpoints, layers),
            self.parse,
            self.log,
            batch_size=batch,
        )
        if record is not None:
            return record
        return await run_strategies(self.client, self.plain_strategies(lat, lon), self.parse, self.log)

    @never_raises
    async def health_check(self) -> bool:
        endpoint, _ = await self.discover()
        return endpoint is not None


def build_adapter(client=None) -> SachsenAdapter:
    return SachsenAdapter(client=client)
