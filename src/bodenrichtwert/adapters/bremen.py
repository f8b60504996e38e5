from __future__ import annotations

from typing import List, Optional

from ..models import Descriptor, Record
from ..parsers.capabilities import parse_wfs_feature_types
from ..parsers.fields import FieldMap, RecordContext
from ..parsers.gml import parse_gml
from ..strategy import (
    WFS_DELTA_DEG,
    WGS84_URN,
    DiscoveryCache,
    Strategy,
    bbox_latlon,
    capabilities_params,
    probe_capabilities,
    run_strategies,
    wfs_getfeature_params,
)
from .base import adapter_logger, default_client, health_timeout, never_raises


DESCRIPTOR = Descriptor(state="Bremen", code="HB")

BASE_URL = "https://www.geobasisdaten.niedersachsen.de/doorman/noauth"
SERVICES = ("WFS_borisHB", "WFS_borisHB_2024", "WFS_borisHB_2022")
TYPE_PATTERNS = ("BodenrichtwertZonal", "BodenrichtwertLagetypisch")
FEATURE_ELEMENTS = ("BR_BodenrichtwertZonal", "BR_BodenrichtwertLagetypisch")

FIELDS = FieldMap(
    value=("bodenrichtwert",),
    effective_date=("stichtag",),
    land_use=("art", "nutzungsartBodenrichtwert"),
    development=("entwicklungszustand",),
    zone=(),
    municipality=("ortsteil",),
)

CONTEXT = RecordContext(
    jurisdiction="Bremen",
    source="BORIS-HB (GAA Bremen)",
    license="© GAA Bremen, CC BY-ND 4.0",
)


def relevant_types(names: List[str]) -> List[str]:
    return [n for n in names if any(p in n for p in TYPE_PATTERNS)]


class BremenAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None):
        self.client = default_client(client)
        self.discovery = DiscoveryCache()
        self.log = adapter_logger(DESCRIPTOR.code)

    async def type_names(self, url: str) -> List[str]:
        async def _discover():
            response = await self.client.get(
                url, params=capabilities_params("WFS", "2.0.0"), timeout=10.0
            )
            return relevant_types(parse_wfs_feature_types(response["text"]))

        return await self.discovery.get_or_discover(url, _discover)

    def strategies(self, lat: float, lon: float, url: str, type_names: List[str]) -> List[Strategy]:
        bbox = bbox_latlon(lat, lon, WFS_DELTA_DEG, crs_urn=WGS84_URN)
        return [
            Strategy(
                endpoint=url,
                protocol="WFS",
                version="2.0.0",
                format="gml",
                crs=WGS84_URN,
                layer=type_name,
                params=wfs_getfeature_params("2.0.0", type_name, bbox),
                timeout=10.0,
            )
            for type_name in type_names
        ]

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        return parse_gml(text, FIELDS, CONTEXT, feature_names=FEATURE_ELEMENTS)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        for service in SERVICES:
            url = f"{BASE_URL}/{service}"
            type_names = await self.type_names(url)
            if not type_names:
                self.log.debug("%s offers no reference value feature types", service)
                continue
            record = await run_strategies(
                self.client, self.strategies(lat, lon, url, type_names), self.parse, self.log
            )
            if record is not None:
                return record
        return None

    @never_raises
    async def health_check(self) -> bool:
        return await probe_capabilities(
            self.client, f"{BASE_URL}/{SERVICES[0]}", "WFS", "2.0.0", health_timeout()
        )


def build_adapter(client=None) -> BremenAdapter:
    return BremenAdapter(client=client)
