from __future__ import annotations

import html
import re
from typing import Dict, Optional

from bs4 import BeautifulSoup
from parsel import Selector

from ..models import Record
from .fields import FieldMap, RecordContext, build_record, parse_number


_FREE_TEXT_RE = re.compile(r"(\d[\d.,]*)\s*(?:EUR|€)\s*/\s*m", re.IGNORECASE)


def norm_ws(value) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def safe_text(value) -> str:
    return norm_ws(html.unescape(value or ""))


def table_pairs(text: str) -> Dict[str, str]:
    """Two-column rows (``th|td``, ``td``) as a key -> value map."""

    selector = Selector(text=text or "<html></html>")
    pairs: Dict[str, str] = {}
    for row in selector.css("tr"):
        cells = [
            safe_text(" ".join(cell.css("::text").getall()))
            for cell in row.css("th, td")
        ]
        cells = [c for c in cells if c]
        if len(cells) < 2:
            continue
        key = cells[0].rstrip(":").strip()
        pairs.setdefault(key, cells[1])
    return pairs


def header_rows(text: str) -> Dict[str, str]:
    """Horizontal tables: first row holds the field names, second the values."""

    selector = Selector(text=text or "<html></html>")
    for table in selector.css("table"):
        rows = table.css("tr")
        if len(rows) < 2:
            continue
        header = [safe_text(" ".join(c.css("::text").getall())) for c in rows[0].css("th, td")]
        values = [safe_text(" ".join(c.css("::text").getall())) for c in rows[1].css("td, th")]
        if len(header) > 2 and len(header) == len(values):
            return dict(zip(header, values))
    return {}


def flatten_text(text: str) -> str:
    soup = BeautifulSoup(text or "", "html.parser")
    return norm_ws(" ".join(soup.stripped_strings))


def free_text_value(text: str, max_value: float) -> Optional[float]:
    for m in _FREE_TEXT_RE.finditer(flatten_text(text)):
        value = parse_number(m.group(1), max_value=max_value)
        if value is not None:
            return value
    return None


_FIELD_NAMES = ("value", "effective_date", "land_use", "development", "zone", "municipality")


def _label_matches(label: str, name: str) -> bool:
    # "Bodenrichtwert in EUR/m²" and "BRW (€/m²)" carry the field name as a prefix;
    # "Bodenrichtwertzone" or "BRW-Nr." do not
    return bool(re.match(rf"{re.escape(name)}(?![\w-])", label, re.IGNORECASE))


def with_label_prefixes(pairs: Dict[str, str], fields: FieldMap) -> Dict[str, str]:
    """Add bare field names for table labels that only start with one."""

    exact = {key.lower() for key in pairs}
    out = dict(pairs)
    for attr in _FIELD_NAMES:
        for name in getattr(fields, attr):
            if name.lower() in exact:
                break
            hit = next((value for key, value in pairs.items() if _label_matches(key, name)), None)
            if hit is not None:
                out.setdefault(name, hit)
                break
    return out


def parse_html(text: str, fields: FieldMap, ctx: RecordContext) -> Optional[Record]:
    for pairs in (table_pairs(text), header_rows(text)):
        if pairs:
            record = build_record(with_label_prefixes(pairs, fields), fields, ctx)
            if record is not None:
                return record
    value = free_text_value(text, fields.max_value)
    if value is None:
        return None
    return Record(
        value=value,
        effective_date=ctx.default_date,
        development_status=ctx.default_development,
        municipality=ctx.default_municipality,
        jurisdiction=ctx.jurisdiction,
        source=ctx.source,
        license=ctx.license,
    )
