from __future__ import annotations

from typing import List, Optional

from ..models import Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..parsers.geojson import parse_feature_collection
from ..strategy import WFS_DELTA_DEG, WGS84, Strategy, ogcapi_items_params, run_strategies
from .base import adapter_logger, default_client, never_raises, probe_ok


DESCRIPTOR = Descriptor(state="Rheinland-Pfalz", code="RP")

SERVICE_URL = "https://www.geoportal.rlp.de/spatial-objects/548/collections"
# newest reference year first
COLLECTIONS = ("BORIS_2024", "BORIS_2022", "BORIS_2020")

FIELDS = FieldMap(
    value=("bodenrichtwert", "brw", "wert"),
    effective_date=("stichtag", "erhe_dat"),
    land_use=("nutzungsart", "art"),
    development=("entwicklungszustand", "entw"),
    zone=("zone", "lage", "brw_zone"),
    municipality=("gemeinde", "ort"),
)

CONTEXT = RecordContext(
    jurisdiction="Rheinland-Pfalz",
    source="BORIS-RLP ({layer})",
    license="© LVermGeo RLP",
)

HEADERS = {"Accept": "application/geo+json"}


class RheinlandPfalzAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None, collections=COLLECTIONS):
        self.client = default_client(client)
        self.collections = tuple(collections)
        self.log = adapter_logger(DESCRIPTOR.code)

    def strategies(self, lat: float, lon: float) -> List[Strategy]:
        return [
            Strategy(
                endpoint=f"{SERVICE_URL}/{collection}/items",
                protocol="OGCAPI",
                version="1.0",
                format="application/geo+json",
                crs=WGS84,
                layer=collection,
                params=ogcapi_items_params(lat, lon, WFS_DELTA_DEG, limit=5),
                headers=HEADERS,
                timeout=8.0,
            )
            for collection in self.collections
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        ctx = CONTEXT.with_source(CONTEXT.source.format(layer=strategy.layer.replace("_", " ")))
        return parse_feature_collection(text, FIELDS, ctx)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        return await run_strategies(self.client, self.strategies(lat, lon), self.parse, self.log)

    @never_raises
    async def health_check(self) -> bool:
        url = f"{SERVICE_URL}/{self.collections[0]}/items"
        return await probe_ok(self.client, url, params={"limit": "1", "f": "json"})


def build_adapter(client=None) -> RheinlandPfalzAdapter:
    return RheinlandPfalzAdapter(client=client)
