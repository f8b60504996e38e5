from __future__ import annotations

from ..models import Descriptor
from ..parsers.fields import FieldMap, RecordContext
from .wfs import GML, JSON, WfsAdapter, WfsSource


DESCRIPTOR = Descriptor(state="Niedersachsen", code="NI")

# The published type name has changed between releases; each is tried with
# JSON first, then GML. Zero-feature GML answers count as empty.
SOURCE = WfsSource(
    endpoint="https://opendata.lgln.niedersachsen.de/doorman/noauth/boris_wfs",
    type_names=("Bodenrichtwerte", "bodenrichtwerte", "BRW", "Bauland", "boris:bodenrichtwert"),
    formats=(JSON, GML),
    timeout=10.0,
    fields=FieldMap(
        value=("bodenrichtwert", "brw", "BRW", "wert"),
        effective_date=("stichtag", "stag"),
        land_use=("nutzungsart", "nuta", "art"),
        development=("entwicklungszustand", "entw"),
        zone=("zone", "wnum", "brw_zone"),
        municipality=("gemeinde", "gena"),
    ),
    context=RecordContext(
        jurisdiction="Niedersachsen",
        source="BORIS-NI (LGLN)",
        license="© LGLN, dl-de/by-2-0",
    ),
)


def build_adapter(client=None) -> WfsAdapter:
    return WfsAdapter(DESCRIPTOR, SOURCE, client=client)
