from __future__ import annotations

from ..models import Descriptor
from ..parsers.fields import FieldMap, RecordContext
from .wfs import WfsAdapter, WfsSource


DESCRIPTOR = Descriptor(state="Hamburg", code="HH")

SOURCE = WfsSource(
    endpoint="https://geodienste.hamburg.de/HH_WFS_Bodenrichtwerte",
    type_names=("de.hh.up:bodenrichtwerte_aktuell",),
    fields=FieldMap(
        value=("brw_euro_m2", "brw", "bodenrichtwert"),
        effective_date=("stichtag",),
        land_use=("nutzungsart",),
        development=("entwicklungszustand",),
        zone=("brw_zone", "zone"),
        municipality=(),
    ),
    context=RecordContext(
        jurisdiction="Hamburg",
        source="BORIS-HH",
        license="© FHH, LGV, dl-de/by-2-0",
        default_municipality="Hamburg",
    ),
)


def build_adapter(client=None) -> WfsAdapter:
    return WfsAdapter(DESCRIPTOR, SOURCE, client=client)
