import asyncio
import datetime as dt

import httpx
import pytest

from bodenrichtwert.adapters import BUILDERS
from bodenrichtwert.adapters.bayern import BayernAdapter, is_fee_gated
from bodenrichtwert.adapters.brandenburg import parse_items
from bodenrichtwert.adapters.hamburg import build_adapter as build_hamburg
from bodenrichtwert.adapters.hessen import build_adapter as build_hessen
from bodenrichtwert.adapters.mecklenburg_vorpommern import MecklenburgVorpommernAdapter
from bodenrichtwert.adapters.sachsen_anhalt import SachsenAnhaltAdapter
from bodenrichtwert.adapters.schleswig_holstein import SchleswigHolsteinAdapter, rank_layers
from bodenrichtwert.models import CURRENT


# somewhere inside each state
POINTS = {
    "Baden-Württemberg": (48.7758, 9.1829),
    "Bayern": (48.1372, 11.5761),
    "Berlin": (52.5163, 13.3777),
    "Brandenburg": (52.3906, 13.0645),
    "Bremen": (53.0793, 8.8017),
    "Hamburg": (53.5511, 9.9937),
    "Hessen": (50.1109, 8.6821),
    "Mecklenburg-Vorpommern": (54.0924, 12.0991),
    "Niedersachsen": (52.3759, 9.7320),
    "Nordrhein-Westfalen": (51.2277, 6.7735),
    "Rheinland-Pfalz": (49.9929, 8.2473),
    "Saarland": (49.2402, 6.9969),
    "Sachsen": (51.0504, 13.7373),
    "Sachsen-Anhalt": (52.1205, 11.6276),
    "Schleswig-Holstein": (54.3233, 10.1228),
    "Thüringen": (50.9848, 11.0299),
}


def _server_error(request):
    return httpx.Response(500, text="Internal Server Error")


def _timeout(request):
    raise httpx.ReadTimeout("upstream stalled", request=request)


def _malformed(request):
    return httpx.Response(200, text="<wfs:FeatureCollection><broken", headers={"Content-Type": "text/xml"})


@pytest.mark.parametrize("state", sorted(POINTS))
@pytest.mark.parametrize("handler", [_server_error, _timeout, _malformed], ids=["500", "timeout", "malformed"])
def test_fetch_value_never_raises(mock_client, state, handler):
    adapter = BUILDERS[state](mock_client(handler), estimator=True)
    lat, lon = POINTS[state]
    assert asyncio.run(adapter.fetch_value(lat, lon)) is None


@pytest.mark.parametrize("state", sorted(POINTS))
def test_health_check_never_raises(mock_client, state):
    adapter = BUILDERS[state](mock_client(_timeout), estimator=True)
    assert asyncio.run(adapter.health_check()) in (True, False)


def test_hamburg_wfs_hit(mock_client, fixture_text):
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, text=fixture_text("hamburg_wfs.json"))

    record = asyncio.run(build_hamburg(mock_client(handler)).fetch_value(53.5511, 9.9937))
    assert 100 <= record.value <= 30_000
    assert record.value == 1850.0
    assert record.land_use_class
    assert record.municipality == "Hamburg"
    assert record.source == "BORIS-HH"
    assert seen[0]["typeNames"] == "de.hh.up:bodenrichtwerte_aktuell"
    assert seen[0]["outputFormat"] == "application/json"
    assert seen[0]["bbox"].endswith("urn:ogc:def:crs:EPSG::4326")


def test_hessen_gml_with_etrs89_bbox(mock_client, fixture_text):
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, text=fixture_text("hessen_wfs.xml"))

    record = asyncio.run(build_hessen(mock_client(handler)).fetch_value(50.1109, 8.6821))
    assert record.value == 1150.0
    assert record.land_use_class == "W"
    assert record.zone_id == "Westend-Süd"
    assert "outputFormat" not in seen[0]
    assert seen[0]["bbox"].endswith("urn:ogc:def:crs:EPSG::4258")


def test_brandenburg_prefers_recent_residential(fixture_text):
    record = parse_items(fixture_text("brandenburg_items.json"), today=dt.date(2025, 6, 1))
    assert record.value == 480.0
    assert record.development_status == "B"
    assert record.effective_date == "2023-01-01"


def test_bayern_fee_gate(mock_client, fixture_text):
    requests = []

    def handler(request):
        params = request.url.params
        requests.append(params.get("REQUEST"))
        if params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(200, text=fixture_text("wms_capabilities.xml"))
        return httpx.Response(
            200,
            text="<html><body><table><tr><td>Bodenrichtwert</td><td>Information gebührenpflichtig</td></tr></table></body></html>",
        )

    adapter = BayernAdapter(client=mock_client(handler))
    assert asyncio.run(adapter.fetch_value(48.1372, 11.5761)) is None
    assert "GetFeatureInfo" in requests
    assert is_fee_gated("Wert kostenpflichtig")
    assert not is_fee_gated("Bodenrichtwert 1200")


def test_bayern_open_value(mock_client, fixture_text):
    def handler(request):
        params = request.url.params
        if params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(200, text=fixture_text("wms_capabilities.xml"))
        if params.get("INFO_FORMAT") == "text/plain":
            return httpx.Response(
                200,
                text="Layer 'brw_2024'\n  Feature 1:\n    Bodenrichtwert = '1.600,00'\n    Stichtag = '01.01.2024'\n    Nutzungsart = 'W'\n",
            )
        return httpx.Response(200, text="")

    record = asyncio.run(BayernAdapter(client=mock_client(handler)).fetch_value(48.1372, 11.5761))
    assert record.value == 1600.0
    assert record.effective_date == "2024-01-01"


def test_bayern_plain_value_without_decimals(mock_client, fixture_text):
    def handler(request):
        params = request.url.params
        if params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(200, text=fixture_text("wms_capabilities.xml"))
        if params.get("INFO_FORMAT") == "text/plain":
            return httpx.Response(
                200,
                text="Layer 'brw_2024'\n  Feature 1:\n    Bodenrichtwert = '1.600'\n    Nutzungsart = 'W'\n",
            )
        return httpx.Response(200, text="")

    record = asyncio.run(BayernAdapter(client=mock_client(handler)).fetch_value(48.1372, 11.5761))
    assert record.value == 1600.0
    assert record.effective_date == CURRENT


def test_sachsen_anhalt_year_race(mock_client):
    def handler(request):
        params = request.url.params
        if "BRW2024" in request.url.path and params.get("LAYERS") == "BRW":
            return httpx.Response(
                200,
                text='<FeatureInfoResponse><FIELDS bodenrichtwert="65" nutzungsart="W" gemeinde="Magdeburg"/></FeatureInfoResponse>',
            )
        return httpx.Response(200, text="<FeatureInfoResponse/>")

    record = asyncio.run(SachsenAnhaltAdapter(client=mock_client(handler)).fetch_value(52.12, 11.63))
    assert record.value == 65.0
    assert record.source == "BORIS-ST (2024)"
    assert record.effective_date == "2024-01-01"
    assert record.municipality == "Magdeburg"


def test_schleswig_holstein_html_with_viewer_headers(mock_client, fixture_text):
    seen = []

    def handler(request):
        params = request.url.params
        if params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(200, text=fixture_text("wms_capabilities.xml"))
        seen.append((request.headers.get("Referer"), params.get("LAYERS"), params.get("CRS")))
        return httpx.Response(200, text=fixture_text("danord_table.html"))

    record = asyncio.run(SchleswigHolsteinAdapter(client=mock_client(handler)).fetch_value(54.3233, 10.1228))
    assert record.value == 320.0
    assert record.effective_date == "2024-01-01"
    referer, layer, crs = seen[0]
    assert referer.startswith("https://danord.gdi-sh.de")
    assert layer == "brw_2024"
    assert crs == "EPSG:25832"


def test_rank_layers_newest_first():
    layers = ["WMS_SH", "Stichtag_2018", "Bodenrichtwert_2022", "Stichtag_2022", "Uebersicht"]
    assert rank_layers(layers) == ["Bodenrichtwert_2022", "Stichtag_2022", "Stichtag_2018"]


def test_mecklenburg_vorpommern_plain_text_sections(mock_client, fixture_text):
    def handler(request):
        params = request.url.params
        if "wfs" in request.url.path:
            return httpx.Response(403, text="Forbidden")
        if params.get("REQUEST") == "GetCapabilities":
            return httpx.Response(500)
        if params.get("INFO_FORMAT") == "text/plain":
            return httpx.Response(200, text=fixture_text("mapserver_plain.txt"))
        return httpx.Response(200, text="")

    record = asyncio.run(MecklenburgVorpommernAdapter(client=mock_client(handler)).fetch_value(54.09, 12.10))
    assert record.value == 380.0
    assert record.source == "BORIS-MV (WMS/wohnbauflaeche)"
    assert record.municipality == "Rostock"
