"""Declarative field mapping shared by every wire-format parser.

Each semantic field is an ordered tuple of upstream property names. The first
name that is present (and, for the value, numeric and plausible) wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from ..models import UNKNOWN, Record
from ..settings import MAX_VALUE


_NUMBER_RE = re.compile(r"[-+]?\d[\d.,]*")
_DE_DATE_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")
_CODE_RE = re.compile(r"\(([A-Za-z]{1,4})\)\s*$")
# W, WA, WB, WR, WS as leading code or in parentheses; not "Wald" (forest)
_RESIDENTIAL_RE = re.compile(r"^W[ABRS]?\b|\(W[ABRS]?\)")


@dataclass(frozen=True)
class FieldMap:
    value: Tuple[str, ...] = ("bodenrichtwert", "brw", "BRW", "wert")
    effective_date: Tuple[str, ...] = ("stichtag", "STICHTAG")
    land_use: Tuple[str, ...] = ("nutzungsart", "nutzung", "NUTZUNG")
    development: Tuple[str, ...] = ("entwicklungszustand", "entw", "ENTW")
    zone: Tuple[str, ...] = ("zone", "brw_zone", "ZONE")
    municipality: Tuple[str, ...] = ("gemeinde", "GEMEINDE", "gemeinde_name")
    max_value: float = MAX_VALUE
    # dots are thousands separators even without a decimal comma ("1.600")
    german_thousands: bool = False


@dataclass(frozen=True)
class RecordContext:
    """Per-adapter constants stamped onto every record a parser builds.

    ``source`` may contain a ``{layer}`` placeholder which parsers that know
    the answering sub-layer fill in.
    """

    jurisdiction: str
    source: str
    license: str
    default_date: str = UNKNOWN
    default_development: str = "B"
    default_municipality: str = ""

    def with_source(self, source: str) -> "RecordContext":
        return replace(self, source=source)


def parse_number(
    raw: Any, max_value: float = MAX_VALUE, german_thousands: bool = False
) -> Optional[float]:
    """Parse a value that may use German number formatting.

    Returns ``None`` unless the result is positive and not above ``max_value``.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = _NUMBER_RE.search(str(raw))
        if not match:
            return None
        text = match.group(0).rstrip(".,")
        if "," in text or german_thousands:
            text = text.replace(".", "").replace(",", ".")
        try:
            value = float(text)
        except ValueError:
            return None
    if value != value or value <= 0 or value > max_value:
        return None
    return value


def as_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, Mapping):
        for key in ("bezeichnung", "name", "gemeindename", "art", "wert"):
            if raw.get(key):
                return as_text(raw[key])
        return ""
    if isinstance(raw, (list, tuple)):
        parts = [as_text(item) for item in raw]
        return ", ".join(p for p in parts if p)
    return str(raw).strip()


def _lookup(props: Mapping[str, Any], name: str) -> Any:
    if name in props:
        return props[name]
    lowered = name.lower()
    for key, value in props.items():
        if str(key).lower() == lowered:
            return value
    return None


def first_text(props: Mapping[str, Any], names: Iterable[str]) -> str:
    for name in names:
        text = as_text(_lookup(props, name))
        if text:
            return text
    return ""


def first_number(
    props: Mapping[str, Any],
    names: Iterable[str],
    max_value: float = MAX_VALUE,
    german_thousands: bool = False,
) -> Optional[float]:
    for name in names:
        value = parse_number(
            _lookup(props, name), max_value=max_value, german_thousands=german_thousands
        )
        if value is not None:
            return value
    return None


def normalize_date(raw: str) -> str:
    raw = (raw or "").strip()
    m = _DE_DATE_RE.match(raw)
    if m:
        day, month, year = m.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"
    m = _ISO_DATE_RE.match(raw)
    if m:
        return m.group(1)
    return raw


def short_code(raw: str) -> str:
    """``"Baureifes Land (B)"`` -> ``"B"``; anything else is returned as is."""

    m = _CODE_RE.search(raw or "")
    return m.group(1) if m else (raw or "").strip()


def is_residential(land_use: str) -> bool:
    text = (land_use or "").strip()
    if not text:
        return False
    return "wohn" in text.lower() or bool(_RESIDENTIAL_RE.search(text))


def pick_best(candidates: Sequence[Tuple[Record, Any]]) -> Optional[Record]:
    """Choose one record out of several features returned for one query.

    Residential use ranks first, then the most recent effective date. Ties keep
    upstream order. Fields are never merged across features.
    """

    if not candidates:
        return None

    def _date_key(record: Record) -> str:
        d = record.effective_date
        return d if _ISO_DATE_RE.match(d or "") else ""

    # two stable sorts: recency first, then residential on top
    ordered = sorted(candidates, key=lambda c: _date_key(c[0]), reverse=True)
    ordered.sort(key=lambda c: not is_residential(c[0].land_use_class))
    return ordered[0][0]


def build_record(
    props: Mapping[str, Any], fields: FieldMap, ctx: RecordContext
) -> Optional[Record]:
    value = first_number(
        props, fields.value, max_value=fields.max_value, german_thousands=fields.german_thousands
    )
    if value is None:
        return None
    effective_date = normalize_date(first_text(props, fields.effective_date))
    return Record(
        value=value,
        effective_date=effective_date or ctx.default_date,
        land_use_class=first_text(props, fields.land_use) or UNKNOWN,
        development_status=first_text(props, fields.development) or ctx.default_development,
        zone_id=first_text(props, fields.zone),
        municipality=first_text(props, fields.municipality) or ctx.default_municipality,
        jurisdiction=ctx.jurisdiction,
        source=ctx.source,
        license=ctx.license,
    )


def best_record(
    rows: Iterable[Mapping[str, Any]], fields: FieldMap, ctx: RecordContext
) -> Optional[Record]:
    candidates = []
    for props in rows:
        record = build_record(props, fields, ctx)
        if record is not None:
            candidates.append((record, props))
    return pick_best(candidates)
