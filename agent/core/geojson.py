"""FeatureCollection codec for the fenced block embedded in assistant replies.

An assistant reply that carries map results ends with exactly one block:

    ```geojson
    {"type": "FeatureCollection", "features": [...]}
    ```

Every feature has ``properties.kind`` of ``area``, ``target`` or ``poi``.
Readers take the last such block in a message and treat anything that does
not parse as "no structured result".
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, List, Optional

from agent.core.models import POI, ResultSet


_FENCED_BLOCK = re.compile(r"```(?:geo)?json\s*([\s\S]*?)```", re.IGNORECASE)
# A block still being streamed has no closing fence yet.
_OPEN_BLOCK = re.compile(r"```(?:geo)?json[\s\S]*\Z", re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[\s\S]*?```")


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return value


def _point(center) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": [center[0], center[1]]}


def poi_feature(poi: POI) -> Dict[str, Any]:
    properties: Dict[str, Any] = dict(poi.properties)
    if poi.name is not None:
        properties["name"] = poi.name
    if poi.category is not None:
        properties.setdefault("category", poi.category)
    properties["dist_m"] = _finite_or_none(poi.dist_m)
    properties["kind"] = poi.kind
    return {"type": "Feature", "geometry": _point(poi.center), "properties": properties}


def to_feature_collection(result: ResultSet) -> Dict[str, Any]:
    """Area first, then the target marker, then the ranked POIs."""
    features: List[Dict[str, Any]] = []
    if result.area is not None:
        features.append(
            {
                "type": "Feature",
                "geometry": result.area.geometry,
                "properties": {"kind": "area", "name": result.area.name},
            }
        )
    if result.target is not None:
        properties: Dict[str, Any] = {"kind": "target", "name": result.target.name}
        if result.radius_m is not None:
            properties["radius_m"] = result.radius_m
        features.append(
            {"type": "Feature", "geometry": _point(result.target.center), "properties": properties}
        )
    features.extend(poi_feature(poi) for poi in result.pois)
    return {"type": "FeatureCollection", "features": features}


def dumps(feature_collection: Dict[str, Any]) -> str:
    return json.dumps(feature_collection, ensure_ascii=False, allow_nan=False)


def render_block(feature_collection: Dict[str, Any]) -> str:
    return f"```geojson\n{dumps(feature_collection)}\n```"


def extract_feature_collection(text: str) -> Optional[Dict[str, Any]]:
    """Return the last fenced geojson/json FeatureCollection in ``text``, if any."""
    if not text:
        return None
    blocks = _FENCED_BLOCK.findall(text)
    if not blocks:
        return None
    try:
        parsed = json.loads(blocks[-1])
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict) or parsed.get("type") != "FeatureCollection":
        return None
    if not isinstance(parsed.get("features"), list):
        return None
    return parsed


def strip_structured_block(text: str) -> str:
    """Remove fenced blocks, including an unterminated trailing one, leaving the prose."""
    out = _FENCED_BLOCK.sub("", text or "")
    out = _OPEN_BLOCK.sub("", out)
    return _ANY_FENCE.sub("", out).strip()
