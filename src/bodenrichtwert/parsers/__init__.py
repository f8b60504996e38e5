"""Pure parsers: raw response text in, ``Record`` or ``None`` out."""

from .fields import FieldMap, RecordContext, parse_number, pick_best
from .geojson import parse_feature_collection
from .gml import parse_gml
from .html import parse_html
from .plaintext import parse_plaintext

__all__ = [
    "FieldMap",
    "RecordContext",
    "parse_feature_collection",
    "parse_gml",
    "parse_html",
    "parse_number",
    "parse_plaintext",
    "pick_best",
]
