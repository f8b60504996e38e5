"""MapServer ``text/plain`` GetFeatureInfo answers.

A grouped WMS layer answers with one ``Layer '<name>'`` section per sub-layer,
each holding ``key = 'value'`` lines per feature. The section is chosen by land
use, not by the first number found anywhere in the body.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Tuple

from ..models import Record
from .fields import FieldMap, RecordContext, build_record, pick_best


LAYER_PRIORITY: Mapping[str, int] = {
    "wohnbauflaeche": 1,
    "gemischte_bauflaeche": 2,
    "sonderbauflaeche": 3,
    "gewerbliche_bauflaeche": 4,
    "bebaute_flaeche_im_aussenbereich": 5,
    "sanierungsgebiet": 6,
    "sonstige_flaechen": 7,
    "ackerland": 90,
    "gruenland": 91,
    "forst": 92,
}
DEFAULT_PRIORITY = 50

_SECTION_RE = re.compile(r"(?=^\s*Layer ')", re.MULTILINE)
_LAYER_RE = re.compile(r"Layer '([^']+)'")
_FEATURE_RE = re.compile(r"(?=^\s*Feature\b)", re.MULTILINE)
_PAIR_RE = re.compile(r"^\s*([\w.-]+)\s*[=:]\s*(?:'([^']*)'|\"([^\"]*)\"|(.*?))\s*$", re.MULTILINE)


def parse_pairs(text: str) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for m in _PAIR_RE.finditer(text or ""):
        key = m.group(1)
        value = next((g for g in m.groups()[1:] if g is not None), "")
        pairs.setdefault(key, value.strip())
    return pairs


def split_sections(text: str, default_layer: str = "") -> List[Tuple[str, List[Dict[str, str]]]]:
    """Split into ``(layer, [feature pairs, ...])``, keeping upstream order."""

    sections = []
    for chunk in _SECTION_RE.split(text or ""):
        if not chunk.strip():
            continue
        m = _LAYER_RE.search(chunk)
        layer = m.group(1) if m else default_layer
        features = [parse_pairs(part) for part in _FEATURE_RE.split(chunk)]
        features = [f for f in features if f]
        if features:
            sections.append((layer, features))
    return sections


def layer_priority(layer: str, priorities: Mapping[str, int] = LAYER_PRIORITY) -> int:
    return priorities.get((layer or "").lower(), DEFAULT_PRIORITY)


def parse_plaintext(
    text: str,
    fields: FieldMap,
    ctx: RecordContext,
    queried_layer: str = "",
    priorities: Mapping[str, int] = LAYER_PRIORITY,
) -> Optional[Record]:
    best: Optional[Record] = None
    best_priority = None
    for layer, features in split_sections(text, default_layer=queried_layer):
        priority = layer_priority(layer, priorities)
        layer_ctx = ctx.with_source(ctx.source.format(layer=layer or queried_layer))
        candidates = []
        for pairs in features:
            record = build_record(pairs, fields, layer_ctx)
            if record is None:
                continue
            # sub-euro values on farmland or forest are placeholders
            if record.value < 1 and priority > DEFAULT_PRIORITY:
                continue
            candidates.append((record, pairs))
        record = pick_best(candidates)
        if record is None:
            continue
        if best_priority is None or priority < best_priority:
            best, best_priority = record, priority
    return best
