from __future__ import annotations

from ..models import Descriptor
from ..parsers.fields import FieldMap, RecordContext
from .wfs import WfsAdapter, WfsSource


DESCRIPTOR = Descriptor(state="Nordrhein-Westfalen", code="NW")

SOURCE = WfsSource(
    endpoint="https://www.boris.nrw.de/cgi-bin/nrwboriswms",
    type_names=("bodenrichtwerte",),
    fields=FieldMap(
        value=("brw", "bodenrichtwert"),
        effective_date=("stichtag",),
        land_use=("nutzungsart",),
        development=("entwicklungszustand",),
        zone=("brw_zone", "lage"),
        municipality=("gemeinde", "gemeinde_name"),
    ),
    context=RecordContext(
        jurisdiction="Nordrhein-Westfalen",
        source="BORIS-NRW",
        license="Datenlizenz Deutschland – Zero – Version 2.0",
    ),
)


def build_adapter(client=None) -> WfsAdapter:
    return WfsAdapter(DESCRIPTOR, SOURCE, client=client)
