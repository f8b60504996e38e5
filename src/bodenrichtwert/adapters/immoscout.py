"""Market-price estimator backed by the ImmoScout24 Atlas.

Used behind an official adapter where the official value is usually not
released. The number is derived from asking prices for houses in the city and
a land-share factor that grows with the price level. It is never an official
reference value, so every record carries an ``estimation`` block.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from ..errors import LookupFailure
from ..models import Descriptor, Estimation, Record
from ..settings import get_settings
from .base import USER_AGENT_BROWSER, default_client, health_timeout, never_raises


ATLAS_BASE = "https://atlas.immobilienscout24.de"
ATLAS_TIMEOUT = 15.0
GEOCODE_TIMEOUT = 5.0
# shorter pages are block or consent pages
MIN_PAGE_LENGTH = 1000

APARTMENT_TO_HOUSE = 0.9
# (minimum house price EUR/m2, land share)
LAND_SHARE_TIERS = (
    (6000.0, 0.55),
    (4000.0, 0.45),
    (2500.0, 0.38),
    (1500.0, 0.30),
)
LAND_SHARE_FLOOR = 0.22

SOURCE = "ImmoScout24 Atlas (Schätzwert)"
LICENSE = "Schätzung basierend auf Marktdaten. Kein offizieller Bodenrichtwert."
LAND_USE = "Wohnbaufläche (geschätzt)"
METHOD = "ImmoScout Atlas Marktpreise × preisabhängiger Faktor"
DISCLAIMER = (
    "Schätzwert basierend auf Immobilienmarktdaten. Kein offizieller Bodenrichtwert. "
    "Abweichungen von ±30-50% zum tatsächlichen BRW sind möglich."
)

ATLAS_HEADERS = {
    "User-Agent": USER_AGENT_BROWSER,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "de-DE,de;q=0.9,en-US;q=0.8,en;q=0.7",
}

_STATE_MARKER = re.compile(r"var\s+_atlas_initialState\s*=\s*")

logger = logging.getLogger("brw.estimator")


def slugify(name: str) -> str:
    """Atlas URL slug; umlauts and ß stay as they are ("München" -> "münchen")."""

    slug = re.sub(r"\s+", "-", (name or "").lower())
    slug = re.sub(r"[^a-zäöüß0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _matching_object(text: str, start: int) -> Optional[str]:
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
        elif ch == '"':
            i += 1
            while i < len(text) and text[i] != '"':
                if text[i] == "\\":
                    i += 1
                i += 1
        i += 1
    return None


def extract_initial_state(page: str) -> Optional[Dict[str, Any]]:
    """The ``_atlas_initialState`` object embedded in an Atlas page."""

    soup = BeautifulSoup(page or "", "html.parser")
    scripts = [s.string or "" for s in soup.find_all("script")]
    candidates = [s for s in scripts if _STATE_MARKER.search(s)] or [page or ""]
    for text in candidates:
        match = _STATE_MARKER.search(text)
        if not match:
            continue
        raw = _matching_object(text, match.end())
        if raw is None:
            continue
        try:
            state = json.loads(raw)
        except ValueError:
            continue
        if isinstance(state, dict):
            return state
    return None


@dataclass(frozen=True)
class AtlasPrices:
    city: str
    district: str
    house_buy: Optional[float]
    apartment_buy: Optional[float]
    year: int
    quarter: int


def _price_entry(prices: Dict[str, Any], kind: str) -> Dict[str, Any]:
    entry = prices.get(kind) or {}
    inner = entry.get("prices") if isinstance(entry, dict) else None
    return inner if isinstance(inner, dict) else {}


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def extract_prices(state: Dict[str, Any], today: Optional[dt.date] = None) -> Optional[AtlasPrices]:
    today = today or dt.date.today()
    prices = state.get("ownPrices") or state.get("prices")
    if not prices:
        table = (state.get("priceTableData") or {}).get("data") or []
        prices = (table[0].get("prices") or {}) if table else None
    if not isinstance(prices, dict):
        return None

    house = _price_entry(prices, "HOUSE_BUY")
    apartment = _price_entry(prices, "APARTMENT_BUY")
    geo = state.get("geoHierarchy") or {}
    location = state.get("location") or {}
    default_quarter = (today.month - 1) // 3 + 1
    return AtlasPrices(
        city=geo.get("city") or geo.get("stadt") or location.get("city") or "",
        district=geo.get("district") or geo.get("stadtteil") or location.get("district") or "",
        house_buy=_number(house.get("price")),
        apartment_buy=_number(apartment.get("price")),
        year=int(house.get("year") or apartment.get("year") or today.year),
        quarter=int(house.get("quarter") or apartment.get("quarter") or default_quarter),
    )


def land_share(house_price: float) -> float:
    for threshold, factor in LAND_SHARE_TIERS:
        if house_price >= threshold:
            return factor
    return LAND_SHARE_FLOOR


def basis_price(prices: AtlasPrices) -> Optional[float]:
    if prices.house_buy:
        return prices.house_buy
    if prices.apartment_buy:
        return float(round_half_up(prices.apartment_buy * APARTMENT_TO_HOUSE))
    return None


def estimate_record(prices: AtlasPrices, city: str, jurisdiction: str) -> Optional[Record]:
    base = basis_price(prices)
    if not base or base <= 0:
        return None
    factor = land_share(base)
    value = round_half_up(base * factor)
    if value <= 0:
        return None
    return Record(
        value=float(value),
        effective_date=f"{prices.year}-01-01",
        land_use_class=LAND_USE,
        development_status="B",
        zone_id=prices.district or prices.city or city,
        municipality=prices.city or city,
        jurisdiction=jurisdiction,
        source=SOURCE,
        license=LICENSE,
        estimation=Estimation(
            method=METHOD,
            basis_price=base,
            applied_factor=factor,
            as_of=f"{prices.year}-Q{prices.quarter}",
            disclaimer=DISCLAIMER,
        ),
    )


def city_from_address(payload: Dict[str, Any]) -> str:
    address = payload.get("address") or {}
    for key in ("city", "town", "municipality", "county"):
        if address.get(key):
            return str(address[key])
    return ""


class ImmoScoutEstimator:
    def __init__(self, state: str, client=None, nominatim_url: Optional[str] = None, code: str = ""):
        self.state = state
        self.state_slug = slugify(state)
        self.client = default_client(client)
        self.nominatim_url = (nominatim_url or get_settings().nominatim_url).rstrip("/")
        self.descriptor = Descriptor(state=state, code=code or self.state_slug[:2].upper())
        self.log = logger

    async def reverse_geocode(self, lat: float, lon: float) -> str:
        response = await self.client.get(
            f"{self.nominatim_url}/reverse",
            params={
                "lat": lat,
                "lon": lon,
                "format": "json",
                "zoom": 10,
                "addressdetails": 1,
            },
            headers={"Accept-Language": "de"},
            timeout=GEOCODE_TIMEOUT,
        )
        try:
            payload = json.loads(response["text"])
        except ValueError:
            return ""
        return city_from_address(payload) if isinstance(payload, dict) else ""

    async def atlas_prices(self, city_slug: str) -> Optional[AtlasPrices]:
        url = f"{ATLAS_BASE}/orte/deutschland/{self.state_slug}/{city_slug}"
        response = await self.client.get(url, headers=ATLAS_HEADERS, timeout=ATLAS_TIMEOUT)
        page = response["text"]
        if len(page) < MIN_PAGE_LENGTH:
            self.log.warning("atlas page for %s too short, probably blocked", city_slug)
            return None
        state = extract_initial_state(page)
        if state is None:
            self.log.warning("no _atlas_initialState in %s", url)
            return None
        return extract_prices(state)

    @never_raises
    async def fetch_value(self, lat: float, lon: float) -> Optional[Record]:
        try:
            city = await self.reverse_geocode(lat, lon)
            if not city:
                self.log.warning("%s: reverse geocode found no city for %s,%s", self.state, lat, lon)
                return None
            prices = await self.atlas_prices(slugify(city))
        except LookupFailure as exc:
            self.log.warning("%s: estimator lookup failed: %s", self.state, exc)
            return None
        if prices is None:
            return None
        record = estimate_record(prices, city, self.state)
        if record is not None:
            self.log.info(
                "%s: %s basis %.0f x %.2f = %.0f EUR/m2 (estimate)",
                self.state,
                city,
                record.estimation.basis_price,
                record.estimation.applied_factor,
                record.value,
            )
        return record

    @never_raises
    async def health_check(self) -> bool:
        try:
            response = await self.client.head(
                f"{ATLAS_BASE}/orte/deutschland/{self.state_slug}", timeout=health_timeout()
            )
        except LookupFailure:
            return False
        # 403 means reachable but blocking automated clients
        return 200 <= response["status"] < 300 or response["status"] == 403
