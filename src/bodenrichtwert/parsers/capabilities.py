from __future__ import annotations

from typing import List

from parsel import Selector

from ..errors import ParseFailure


WFS_SERVICE_NAMES = {"WFS", "Service", "wfs"}


def _xml(text: str) -> Selector:
    if not (text or "").strip():
        raise ParseFailure("empty capabilities document")
    try:
        return Selector(text=text, type="xml")
    except (ValueError, SyntaxError) as exc:
        raise ParseFailure(f"unreadable capabilities: {exc}") from exc


def is_wms_capabilities(text: str) -> bool:
    return "<WMT_MS_Capabilities" in (text or "") or "<WMS_Capabilities" in (text or "")


def parse_wms_layers(text: str) -> List[str]:
    """Named layers, the ones marked ``queryable="1"`` first."""

    sel = _xml(text)
    queryable: List[str] = []
    others: List[str] = []
    for layer in sel.xpath("//*[local-name()='Layer']"):
        name = (layer.xpath("./*[local-name()='Name']/text()").get() or "").strip()
        if not name:
            continue
        bucket = queryable if layer.attrib.get("queryable") == "1" else others
        if name not in queryable and name not in others:
            bucket.append(name)
    return queryable + others


def parse_wfs_feature_types(text: str) -> List[str]:
    sel = _xml(text)
    names = []
    for raw in sel.xpath("//*[local-name()='FeatureType']/*[local-name()='Name']/text()").getall():
        name = raw.strip()
        if name and name not in WFS_SERVICE_NAMES and name not in names:
            names.append(name)
    return names
