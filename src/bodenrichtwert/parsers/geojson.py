from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from ..errors import ParseFailure
from ..models import Record
from .fields import FieldMap, RecordContext, best_record


def feature_properties(text: str) -> List[Dict[str, Any]]:
    """Return the ``properties`` dict of every feature in a GeoJSON body."""

    stripped = (text or "").lstrip()
    if not stripped.startswith("{"):
        raise ParseFailure("body is not a JSON object")
    try:
        payload = json.loads(stripped)
    except ValueError as exc:
        raise ParseFailure(f"invalid JSON: {exc}") from exc
    features = payload.get("features") if isinstance(payload, dict) else None
    if not isinstance(features, list):
        raise ParseFailure("no feature collection in body")
    rows = []
    for feature in features:
        if not isinstance(feature, dict):
            continue
        props = feature.get("properties")
        if isinstance(props, dict):
            rows.append(props)
    return rows


def parse_feature_collection(
    text: str, fields: FieldMap, ctx: RecordContext
) -> Optional[Record]:
    return best_record(feature_properties(text), fields, ctx)
