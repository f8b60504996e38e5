from __future__ import annotations

import datetime as dt
from dataclasses import replace
from typing import List, Optional

from ..models import Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext, build_record, pick_best, short_code
from ..parsers.geojson import feature_properties
from ..strategy import WFS_DELTA_DEG, WGS84, Strategy, ogcapi_items_params, run_strategies
from .base import adapter_logger, default_client, never_raises, probe_ok


DESCRIPTOR = Descriptor(state="Brandenburg", code="BB")

ITEMS_URL = "https://ogc-api.geobasis-bb.de/boris/collections/br_bodenrichtwert/items"

# The collection keeps every historic reference date for a zone.
RECENT_YEARS = 5

FIELDS = FieldMap(
    value=("bodenrichtwert", "brw", "BRW", "richtwert", "wert", "betrag"),
    effective_date=("stichtag",),
    land_use=("nutzung", "nutzungsart"),
    development=("entwicklungszustand",),
    zone=("bodenrichtwertzoneName", "zone"),
    municipality=("gemeinde",),
)

CONTEXT = RecordContext(
    jurisdiction="Brandenburg",
    source="BORIS-BB",
    license="Datenlizenz Deutschland – Namensnennung – Version 2.0",
)


def _year(record: Record) -> int:
    try:
        return int(record.effective_date[:4])
    except ValueError:
        return 0


def parse_items(text: str, today: Optional[dt.date] = None) -> Optional[Record]:
    today = today or dt.date.today()
    candidates = []
    for props in feature_properties(text):
        record = build_record(props, FIELDS, CONTEXT)
        if record is None:
            continue
        record = replace(record, development_status=short_code(record.development_status))
        candidates.append((record, props))
    recent = [c for c in candidates if _year(c[0]) >= today.year - RECENT_YEARS]
    return pick_best(recent or candidates)


class BrandenburgAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None):
        self.client = default_client(client)
        self.log = adapter_logger(DESCRIPTOR.code)

    def strategies(self, lat: float, lon: float) -> List[Strategy]:
        return [
            Strategy(
                endpoint=ITEMS_URL,
                protocol="OGCAPI",
                version="1.0",
                format="application/geo+json",
                crs=WGS84,
                layer="br_bodenrichtwert",
                params=ogcapi_items_params(lat, lon, WFS_DELTA_DEG, limit=20),
                headers={"Accept": "application/geo+json"},
                timeout=8.0,
            )
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        return parse_items(text)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        return await run_strategies(self.client, self.strategies(lat, lon), self.parse, self.log)

    @never_raises
    async def health_check(self) -> bool:
        return await probe_ok(self.client, ITEMS_URL, params={"limit": "1", "f": "json"})


def build_adapter(client=None) -> BrandenburgAdapter:
    return BrandenburgAdapter(client=client)
