from __future__ import annotations

from ..models import Descriptor
from ..parsers.fields import FieldMap, RecordContext
from .wfs import WfsAdapter, WfsSource


DESCRIPTOR = Descriptor(state="Thüringen", code="TH")

SOURCE = WfsSource(
    endpoint="https://www.geoproxy.geoportal-th.de/geoproxy/services/boris/vBORIS_simple_wfs",
    type_names=("BODENRICHTWERTZONE",),
    version="1.1.0",
    timeout=10.0,
    fields=FieldMap(
        value=("BRW", "brw", "bodenrichtwert", "BODENRICHTWERT", "wert"),
        effective_date=("STICHTAG", "stichtag"),
        land_use=("NUTZUNG", "nutzungsart", "ART"),
        development=("ENTW", "entwicklungszustand"),
        zone=("ZONE", "zone", "BRWZONE"),
        municipality=("GEMEINDE", "gemeinde", "GEM"),
    ),
    context=RecordContext(
        jurisdiction="Thüringen",
        source="BORIS-TH",
        license="© GDI-Th, dl-de/by-2-0",
    ),
)


def build_adapter(client=None) -> WfsAdapter:
    return WfsAdapter(DESCRIPTOR, SOURCE, client=client)
