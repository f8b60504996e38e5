"""GML / XML feature extraction.

Elements are matched by local name, so ``<boris:brw uom="EUR/m2">`` and
``<brw>`` are the same field. Leaf attributes are folded into the row too,
which covers ESRI-style ``<FIELDS BRW="120" .../>`` answers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from parsel import Selector

from ..errors import ParseFailure
from ..models import Record
from .fields import FieldMap, RecordContext, best_record


_MEMBER_XPATH = (
    "//*[local-name()='featureMember' or local-name()='member']/*"
    " | //*[local-name()='featureMembers']/*"
)


def _selector(text: str) -> Selector:
    if not (text or "").strip():
        raise ParseFailure("empty XML body")
    try:
        return Selector(text=text, type="xml")
    except (ValueError, SyntaxError) as exc:
        raise ParseFailure(f"unreadable XML: {exc}") from exc


def _local(tag: str) -> str:
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.split(":")[-1]


def _row_from(node: Selector) -> Dict[str, Any]:
    row: Dict[str, Any] = {}
    for name, value in node.attrib.items():
        row.setdefault(_local(name), value)
    for leaf in node.xpath(".//*[not(*)]"):
        name = _local(leaf.root.tag)
        text = " ".join(t.strip() for t in leaf.xpath("./text()").getall()).strip()
        if text:
            row.setdefault(name, text)
        for attr, value in leaf.attrib.items():
            row.setdefault(_local(attr), value)
    return row


def feature_rows(text: str, feature_names: Sequence[str] = ()) -> List[Dict[str, Any]]:
    sel = _selector(text)
    nodes = []
    for name in feature_names:
        nodes.extend(sel.xpath(f"//*[local-name()='{name}']"))
    if not nodes:
        nodes = sel.xpath(_MEMBER_XPATH)
    if not nodes:
        # MapServer GML puts features in <layer>_feature elements
        nodes = sel.xpath("//*[substring(local-name(), string-length(local-name()) - 7) = '_feature']")
    if not nodes:
        nodes = sel.xpath("//*[local-name()='FIELDS']")
    if not nodes:
        root = sel.xpath("/*")
        nodes = root[:1]
    return [row for row in (_row_from(n) for n in nodes) if row]


def declared_zero_features(text: str) -> bool:
    head = (text or "")[:2000]
    return 'numberOfFeatures="0"' in head or 'numberReturned="0"' in head


def parse_gml(
    text: str,
    fields: FieldMap,
    ctx: RecordContext,
    feature_names: Sequence[str] = (),
) -> Optional[Record]:
    if declared_zero_features(text):
        return None
    return best_record(feature_rows(text, feature_names), fields, ctx)
