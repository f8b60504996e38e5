from __future__ import annotations

from ..models import Descriptor
from ..parsers.fields import FieldMap, RecordContext
from .wfs import WfsAdapter, WfsSource


DESCRIPTOR = Descriptor(state="Berlin", code="BE")

# FIS-Broker publishes one feature type per reference year
SOURCE = WfsSource(
    endpoint="https://fbinter.stadt-berlin.de/fb/wfs/data/senstadt/s_brw_2024",
    type_names=("fis:s_brw_2024",),
    fields=FieldMap(
        value=("BRW", "brw", "bodenrichtwert", "BODENRICHTWERT"),
        effective_date=("STICHTAG", "stichtag"),
        land_use=("NUTZUNG", "nutzungsart"),
        development=("ENTW", "entwicklungszustand"),
        zone=("BRW_ZONE", "zone"),
        municipality=("BEZIRK", "bezirk"),
    ),
    context=RecordContext(
        jurisdiction="Berlin",
        source="BORIS-Berlin (FIS-Broker)",
        license="Datenlizenz Deutschland – Zero – Version 2.0",
        default_date="2024-01-01",
        default_municipality="Berlin",
    ),
)


def build_adapter(client=None) -> WfsAdapter:
    return WfsAdapter(DESCRIPTOR, SOURCE, client=client)
