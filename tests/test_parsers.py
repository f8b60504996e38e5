import pytest

from bodenrichtwert.errors import ParseFailure
from bodenrichtwert.parsers import (
    FieldMap,
    RecordContext,
    parse_feature_collection,
    parse_gml,
    parse_html,
    parse_plaintext,
)
from bodenrichtwert.parsers.gml import feature_rows
from bodenrichtwert.parsers.plaintext import layer_priority, parse_pairs, split_sections


CTX = RecordContext(jurisdiction="Testland", source="BORIS-T ({layer})", license="dl-de/by-2-0")
HAMBURG_FIELDS = FieldMap(value=("brw_euro_m2",), zone=("brw_zone",))


def test_geojson_picks_residential_feature(fixture_text):
    record = parse_feature_collection(fixture_text("hamburg_wfs.json"), HAMBURG_FIELDS, CTX)
    assert record.value == 1850.0
    assert record.zone_id == "02113048"
    assert record.land_use_class.startswith("W")
    assert record.effective_date == "2023-01-01"


def test_geojson_rejects_non_json():
    with pytest.raises(ParseFailure):
        parse_feature_collection("<html>blocked</html>", HAMBURG_FIELDS, CTX)
    with pytest.raises(ParseFailure):
        parse_feature_collection('{"type": "Feature"}', HAMBURG_FIELDS, CTX)


def test_geojson_empty_collection_is_none():
    assert parse_feature_collection('{"features": []}', HAMBURG_FIELDS, CTX) is None


def test_gml_matches_by_local_name(fixture_text):
    fields = FieldMap(land_use=("art",), zone=("bodenrichtwertzoneName",))
    record = parse_gml(fixture_text("hessen_wfs.xml"), fields, CTX)
    assert record.value == 1150.0
    assert record.effective_date == "2024-01-01"
    assert record.land_use_class == "W"
    assert record.zone_id == "Westend-Süd"
    assert record.municipality == "Frankfurt am Main"


def test_gml_rows_include_leaf_attributes(fixture_text):
    rows = feature_rows(fixture_text("hessen_wfs.xml"))
    assert rows[0]["uom"] == "EUR/m2"


def test_gml_esri_fields_attributes():
    text = '<FeatureInfoResponse><FIELDS BRW="145" STICHTAG="01.01.2024" NUTZUNG="W"/></FeatureInfoResponse>'
    record = parse_gml(text, FieldMap(), CTX)
    assert record.value == 145.0
    assert record.effective_date == "2024-01-01"


def test_gml_declared_empty(fixture_text):
    assert parse_gml(fixture_text("wfs_empty.xml"), FieldMap(), CTX) is None


def test_plaintext_sections_by_land_use_priority(fixture_text):
    record = parse_plaintext(fixture_text("mapserver_plain.txt"), FieldMap(), CTX)
    assert record.value == 380.0
    assert record.land_use_class == "Wohnbaufläche"
    assert record.source == "BORIS-T (wohnbauflaeche)"
    assert record.effective_date == "2024-01-01"


def test_plaintext_farmland_placeholder_skipped():
    text = "Layer 'forst'\n  Feature 1:\n    brw = '0.5'\n"
    assert parse_plaintext(text, FieldMap(), CTX) is None


def test_plaintext_helpers():
    assert parse_pairs("  brw = '120'\n  nutzung: W\n") == {"brw": "120", "nutzung": "W"}
    assert layer_priority("Wohnbauflaeche") == 1
    assert layer_priority("something_else") == 50
    sections = split_sections("  Feature 1:\n    brw = '10'\n", default_layer="brw_2024")
    assert sections == [("brw_2024", [{"brw": "10"}])]


def test_html_vertical_table(fixture_text):
    fields = FieldMap(value=("Bodenrichtwert",), effective_date=("Stichtag",), land_use=("Nutzungsart",))
    record = parse_html(fixture_text("danord_table.html"), fields, CTX)
    assert record.value == 320.0
    assert record.effective_date == "2024-01-01"
    assert record.land_use_class == "Wohnbaufläche (W)"
    assert record.municipality == "Kiel"


def test_html_horizontal_table():
    text = (
        "<table><tr><th>BRW</th><th>Stichtag</th><th>Nutzung</th></tr>"
        "<tr><td>275</td><td>01.01.2024</td><td>W</td></tr></table>"
    )
    record = parse_html(text, FieldMap(), CTX)
    assert record.value == 275.0
    assert record.land_use_class == "W"


def test_html_labels_with_unit_suffix():
    from bodenrichtwert.adapters.schleswig_holstein import CONTEXT as SH_CONTEXT
    from bodenrichtwert.adapters.schleswig_holstein import FIELDS as SH_FIELDS

    text = (
        "<table><tr><th>Bodenrichtwert in EUR/m²</th><td>320</td></tr>"
        "<tr><th>Bodenrichtwert-Nr.</th><td>9999</td></tr>"
        "<tr><th>Stichtag</th><td>01.01.2024</td></tr></table>"
    )
    record = parse_html(text, SH_FIELDS, SH_CONTEXT)
    assert record.value == 320.0
    assert record.effective_date == "2024-01-01"

    short = "<table><tr><th>BRW (€/m²)</th><td>145</td></tr><tr><th>Gemeinde</th><td>Kiel</td></tr></table>"
    assert parse_html(short, SH_FIELDS, SH_CONTEXT).value == 145.0


def test_html_free_text_fallback():
    text = "<html><body><p>Der Bodenrichtwert beträgt <b>185 EUR/m²</b>.</p></body></html>"
    record = parse_html(text, FieldMap(), CTX)
    assert record.value == 185.0
    assert record.jurisdiction == "Testland"


def test_html_without_value():
    assert parse_html("<html><body>Keine Daten</body></html>", FieldMap(), CTX) is None


@pytest.mark.parametrize(
    "name,parser",
    [
        ("hamburg_wfs.json", lambda t: parse_feature_collection(t, HAMBURG_FIELDS, CTX)),
        ("hessen_wfs.xml", lambda t: parse_gml(t, FieldMap(), CTX)),
        ("mapserver_plain.txt", lambda t: parse_plaintext(t, FieldMap(), CTX)),
        ("danord_table.html", lambda t: parse_html(t, FieldMap(value=("Bodenrichtwert",)), CTX)),
    ],
)
def test_parsers_are_idempotent(fixture_text, name, parser):
    text = fixture_text(name)
    assert parser(text) == parser(text)
