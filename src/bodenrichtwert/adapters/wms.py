"""Helpers shared by the WMS GetFeatureInfo adapters."""

from __future__ import annotations

from typing import Dict, List, Optional

from ..errors import ParseFailure
from ..models import Record
from ..parsers.capabilities import is_wms_capabilities, parse_wms_layers
from ..parsers.fields import FieldMap, RecordContext
from ..parsers.geojson import parse_feature_collection
from ..parsers.gml import parse_gml
from ..parsers.html import parse_html
from ..parsers.plaintext import parse_plaintext
from ..strategy import Strategy, capabilities_params, wms_getfeatureinfo_params
from .base import health_timeout


PLAIN = "text/plain"
HTML = "text/html"
XML = "text/xml"
OGC_GML = "application/vnd.ogc.gml"
JSON = "application/json"

_HTML_HEADS = ("<!", "<html", "<meta", "<table", "<body")


def looks_like_html(text: str) -> bool:
    return (text or "").lstrip()[:10].lower().startswith(_HTML_HEADS)


def parse_wms_body(
    text: str,
    info_format: str,
    fields: FieldMap,
    ctx: RecordContext,
    layer: str = "",
) -> Optional[Record]:
    """Dispatch on the requested format, but trust an HTML body over the request."""

    if "html" in info_format or looks_like_html(text):
        return parse_html(text, fields, ctx.with_source(ctx.source.format(layer=layer)))
    if "plain" in info_format:
        return parse_plaintext(text, fields, ctx, queried_layer=layer)
    if "json" in info_format:
        return parse_feature_collection(text, fields, ctx.with_source(ctx.source.format(layer=layer)))
    return parse_gml(text, fields, ctx.with_source(ctx.source.format(layer=layer)))


def wms_strategy(
    endpoint: str,
    version: str,
    layer: str,
    info_format: str,
    crs: str,
    bbox: str,
    feature_count: int = 5,
    extra_params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 10.0,
    tag: str = "",
) -> Strategy:
    params = dict(extra_params or {})
    params.update(
        wms_getfeatureinfo_params(version, layer, bbox, crs, info_format, feature_count)
    )
    return Strategy(
        endpoint=endpoint,
        protocol="WMS",
        version=version,
        format=info_format,
        crs=crs,
        layer=layer,
        params=params,
        headers=dict(headers or {}),
        timeout=timeout,
        tag=tag,
    )


async def fetch_wms_layers(
    client,
    endpoint: str,
    version: str = "1.1.1",
    extra_params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> List[str]:
    """GetCapabilities -> layer names, queryable first. Raises on a non-WMS answer."""

    params = dict(extra_params or {})
    params.update(capabilities_params("WMS", version))
    response = await client.get(
        endpoint,
        params=params,
        headers=headers,
        timeout=timeout or health_timeout() + 3,
    )
    text = response["text"]
    if not is_wms_capabilities(text):
        raise ParseFailure(f"{endpoint} did not answer with WMS capabilities")
    return parse_wms_layers(text)
