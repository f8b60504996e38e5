from __future__ import annotations

from ..models import Descriptor
from ..parsers.fields import FieldMap, RecordContext
from ..strategy import ETRS89_URN
from .wfs import GML, WfsAdapter, WfsSource


DESCRIPTOR = Descriptor(state="Hessen", code="HE")

# The XtraServer behind this endpoint answers JSON requests with 400, GML only.
SOURCE = WfsSource(
    endpoint="https://www.gds.hessen.de/wfs2/boris/cgi-bin/brw/2024/wfs",
    type_names=("boris:BR_BodenrichtwertZonal",),
    formats=(GML,),
    bbox_crs_urn=ETRS89_URN,
    timeout=10.0,
    fields=FieldMap(
        value=("bodenrichtwert",),
        effective_date=("stichtag", "wertermittlungsstichtag", "stag"),
        land_use=("nutzungsart", "nuta", "NUTZUNG", "art"),
        development=("entwicklungszustand", "entw"),
        zone=("bodenrichtwertzoneName", "zone", "wnum", "brw_zone", "bodenrichtwertzone"),
        municipality=("gemeinde", "gena", "gemeindebezeichnung"),
    ),
    context=RecordContext(
        jurisdiction="Hessen",
        source="BORIS-Hessen",
        license="Datenlizenz Deutschland – Zero – Version 2.0",
        default_date="2024-01-01",
    ),
)


def build_adapter(client=None) -> WfsAdapter:
    return WfsAdapter(DESCRIPTOR, SOURCE, client=client)
