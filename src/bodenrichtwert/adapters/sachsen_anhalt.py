from __future__ import annotations

from typing import List, Optional

from ..models import Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..strategy import (
    WGS84,
    WMS_DELTA_DEG,
    Strategy,
    bbox_lonlat,
    probe_capabilities,
    race_strategies,
)
from .base import adapter_logger, default_client, health_timeout, never_raises
from .wms import XML, parse_wms_body, wms_strategy


DESCRIPTOR = Descriptor(state="Sachsen-Anhalt", code="ST")

SERVICE_URL = "https://www.geodatenportal.sachsen-anhalt.de/wss/service/ST_LVermGeo_BRW{year}_gast/guest"
YEARS = ("2024", "2022")
LAYERS = ("Bauland", "BRW", "bodenrichtwerte", "0", "1")

FIELDS = FieldMap(
    value=("bodenrichtwert", "brw", "BRW", "richtwert", "wert"),
    effective_date=("stichtag", "stag"),
    land_use=("nutzungsart", "NUTZUNG", "nuta"),
    development=("entwicklungszustand", "entw"),
    zone=("zone", "ZONE", "wnum"),
    municipality=("gemeinde", "GEMEINDE", "gena"),
)


def endpoint_for(year: str) -> str:
    return SERVICE_URL.format(year=year)


class SachsenAnhaltAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None):
        self.client = default_client(client)
        self.log = adapter_logger(DESCRIPTOR.code)

    def strategies(self, lat: float, lon: float) -> List[Strategy]:
        bbox = bbox_lonlat(lat, lon, WMS_DELTA_DEG)
        return [
            wms_strategy(endpoint_for(year), "1.1.1", layer, XML, WGS84, bbox, tag=year)
            for year in YEARS
            for layer in LAYERS
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        year = strategy.tag
        ctx = RecordContext(
            jurisdiction=DESCRIPTOR.state,
            source=f"BORIS-ST ({year})",
            license="© GeoBasis-DE / LVermGeo ST, dl-de/by-2-0",
            default_date=f"{year}-01-01",
        )
        return parse_wms_body(text, strategy.format, FIELDS, ctx, layer=strategy.layer)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        # each service year is one race over its layer names
        return await race_strategies(
            self.client, self.strategies(lat, lon), self.parse, self.log, batch_size=len(LAYERS)
        )

    @never_raises
    async def health_check(self) -> bool:
        return await probe_capabilities(
            self.client, endpoint_for(YEARS[0]), "WMS", "1.1.1", health_timeout()
        )


def build_adapter(client=None) -> SachsenAnhaltAdapter:
    return SachsenAnhaltAdapter(client=client)
