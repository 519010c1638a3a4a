"""Conversation memory: where was the assistant last centered?

There is no server-side memory. Clients either hand back the
``session_context`` returned by the previous turn, or only the transcript; in
the second case the context is recovered from the last FeatureCollection the
assistant published.
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from agent.core.geo import approximate_radius_m, bbox_centroid
from agent.core.geojson import extract_feature_collection
from agent.core.models import GeoArea, ResultSet, StickyContext, TargetPoint, Turn


logger = logging.getLogger(__name__)

_POLYGON_TYPES = ("Polygon", "MultiPolygon")


def _geometry(feature: Dict[str, Any]) -> Dict[str, Any]:
    geometry = feature.get("geometry")
    return geometry if isinstance(geometry, dict) else {}


def _properties(feature: Dict[str, Any]) -> Dict[str, Any]:
    properties = feature.get("properties")
    return properties if isinstance(properties, dict) else {}


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, Real) and not isinstance(value, bool) and value > 0:
        return float(value)
    return None


def context_from_feature_collection(fc: Dict[str, Any]) -> Optional[StickyContext]:
    features: List[Dict[str, Any]] = [f for f in fc.get("features") or [] if isinstance(f, dict)]

    target = next(
        (
            f
            for f in features
            if _geometry(f).get("type") == "Point" and _properties(f).get("kind") == "target"
        ),
        None,
    )
    try:
        if target is not None:
            lon, lat = _geometry(target)["coordinates"][:2]
            name = _properties(target).get("name") or ""
            area_feature = next(
                (
                    f
                    for f in features
                    if _properties(f).get("kind") == "area"
                    and _geometry(f).get("type") in _POLYGON_TYPES
                ),
                None,
            )
            area = None
            if area_feature is not None:
                area = GeoArea(
                    name=_properties(area_feature).get("name") or "",
                    geometry=_geometry(area_feature),
                )
            radius = _positive_number(_properties(target).get("radius_m"))
            if radius is None and area is not None:
                radius = approximate_radius_m(area.geometry)
            return StickyContext(
                target=TargetPoint(center=(lon, lat), name=str(name)),
                area=area,
                radius_m=radius,
            )

        area_feature = next(
            (f for f in features if _geometry(f).get("type") in _POLYGON_TYPES), None
        )
        if area_feature is not None:
            geometry = _geometry(area_feature)
            centroid = bbox_centroid(geometry)
            if centroid is None:
                return None
            name = str(_properties(area_feature).get("name") or "")
            return StickyContext(
                target=TargetPoint(center=centroid, name=name),
                area=GeoArea(name=name, geometry=geometry),
                radius_m=approximate_radius_m(geometry),
            )
    except (ValidationError, KeyError, TypeError, ValueError, IndexError) as exc:
        logger.info("Ignoring malformed FeatureCollection in history: %s", exc)
    return None


def extract_sticky_context(turns: Sequence[Turn]) -> Optional[StickyContext]:
    """Scan assistant turns newest-first; the first usable FeatureCollection wins."""
    for turn in reversed(list(turns or [])):
        if turn.role != "assistant":
            continue
        fc = extract_feature_collection(turn.text)
        if fc is None:
            continue
        context = context_from_feature_collection(fc)
        if context is not None:
            return context
    return None


def resolve_sticky_context(
    session_context: Optional[StickyContext], turns: Sequence[Turn]
) -> Optional[StickyContext]:
    if session_context is not None and session_context.target is not None:
        return session_context
    return extract_sticky_context(turns)


def session_context_for(result: ResultSet) -> Optional[StickyContext]:
    """The context the next turn should start from, mirroring what the block publishes."""
    if result.target is None:
        return None
    radius = result.radius_m
    if radius is None and result.area is not None:
        radius = approximate_radius_m(result.area.geometry)
    return StickyContext(target=result.target, area=result.area, radius_m=radius)
