"""Bayern: VBORIS WMS GetFeatureInfo.

Most local valuation committees in Bayern publish the value itself only
against a fee; the service then answers with "Information gebührenpflichtig"
in place of the number. Such answers count as empty.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..errors import LicenseRestricted, LookupFailure
from ..models import CURRENT, Descriptor, Record
from ..parsers.fields import FieldMap, RecordContext
from ..strategy import (
    WGS84,
    WMS_DELTA_DEG,
    DiscoveryCache,
    Strategy,
    bbox_lonlat,
    bbox_projected,
    run_strategies,
)
from .base import adapter_logger, default_client, never_raises
from .wms import HTML, OGC_GML, PLAIN, fetch_wms_layers, parse_wms_body, wms_strategy


DESCRIPTOR = Descriptor(
    state="Bayern",
    code="BY",
    reason=(
        "Die meisten Gutachterausschüsse in Bayern geben BRW-Werte nur gegen Gebühr heraus. "
        "Der VBORIS-WMS-Dienst (geoportal.bayern.de) funktioniert technisch, aber die "
        "Wertabfrage ist kostenpflichtig. Nur wenige Stellen sind öffentlich."
    ),
    reference_url="https://geoportal.bayern.de/bodenrichtwerte/",
)

ENDPOINTS = (
    "https://geoportal.bayern.de/bodenrichtwerte/vboris",
    # legacy service, kept while some deployments still answer on it
    "https://geoservices.bayern.de/wms/v1/ogc_bodenrichtwerte.cgi",
)
LAYER_CANDIDATES = ("bodenrichtwerte_aktuell", "Bodenrichtwerte", "bodenrichtwerte", "0")
INFO_FORMATS = (PLAIN, OGC_GML, HTML)
UTM_CRS = "EPSG:25832"
UTM_HALF_WIDTH_M = 50.0
TIMEOUT = 15.0

FEE_MARKERS = ("gebührenpflichtig", "kostenpflichtig")

FIELDS = FieldMap(
    value=("Bodenrichtwert", "BRW", "RICHTWERT", "brw", "wert"),
    effective_date=("Stichtag", "dat", "datum"),
    land_use=("Nutzungsart", "nutzung", "art"),
    development=("Entwicklungszustand", "entw"),
    zone=("Bodenrichtwertzonenname", "Bodenrichtwertnummer", "brwnummer", "zone", "brz", "lage"),
    municipality=("Gemeinde", "gem", "ort"),
    german_thousands=True,
)

CONTEXT = RecordContext(
    jurisdiction="Bayern",
    source="BORIS-Bayern (Bayerische Vermessungsverwaltung)",
    license="© Bayerische Vermessungsverwaltung, www.geodaten.bayern.de",
    default_date=CURRENT,
)


def is_fee_gated(text: str) -> bool:
    lowered = (text or "").lower()
    return any(marker in lowered for marker in FEE_MARKERS)


def queryable_only(layers: Sequence[str]) -> List[str]:
    return [n for n in layers if not n.startswith("OGC:")]


class BayernAdapter:
    descriptor = DESCRIPTOR

    def __init__(self, client=None, endpoints: Sequence[str] = ENDPOINTS):
        self.client = default_client(client)
        self.endpoints = tuple(endpoints)
        self.discovery = DiscoveryCache()
        self.log = adapter_logger(DESCRIPTOR.code)

    async def layers_for(self, endpoint: str) -> List[str]:
        async def _discover():
            for version in ("1.1.1", "1.3.0"):
                try:
                    layers = await fetch_wms_layers(self.client, endpoint, version=version, timeout=10.0)
                except LookupFailure as exc:
                    self.log.debug("capabilities %s at %s: %s", version, endpoint, exc)
                    continue
                if layers:
                    return queryable_only(layers)
            return []

        return await self.discovery.get_or_discover(endpoint, _discover) or list(LAYER_CANDIDATES)

    def strategies(self, lat: float, lon: float, endpoint: str, layers: Sequence[str]) -> List[Strategy]:
        wgs_bbox = bbox_lonlat(lat, lon, WMS_DELTA_DEG)
        utm_bbox = bbox_projected(lat, lon, UTM_CRS, UTM_HALF_WIDTH_M)
        out = []
        for layer in layers:
            for crs, bbox in ((WGS84, wgs_bbox), (UTM_CRS, utm_bbox)):
                for fmt in INFO_FORMATS:
                    out.append(wms_strategy(endpoint, "1.1.1", layer, fmt, crs, bbox, timeout=TIMEOUT))
        return out

    def parse(self, strategy: Strategy, text: str) -> Optional[Record]:
        if is_fee_gated(text):
            raise LicenseRestricted(f"fee-gated value on {strategy.layer}")
        return parse_wms_body(text, strategy.format, FIELDS, CONTEXT, layer=strategy.layer)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        for endpoint in self.endpoints:
            layers = await self.layers_for(endpoint)
            record = await run_strategies(
                self.client, self.strategies(lat, lon, endpoint, layers), self.parse, self.log
            )
            if record is not None:
                return record
        self.log.info("no openly priced value in Bayern at %.5f,%.5f", lat, lon)
        return None

    @never_raises
    async def health_check(self) -> bool:
        for endpoint in self.endpoints:
            try:
                if await fetch_wms_layers(self.client, endpoint):
                    return True
            except LookupFailure as exc:
                self.log.debug("health probe %s: %s", endpoint, exc)
        return False


def build_adapter(client=None) -> BayernAdapter:
    return BayernAdapter(client=client)
