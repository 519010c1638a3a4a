from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from pydantic import ValidationError

from agent.core.geo import haversine_m
from agent.core.models import POI, PipelineConfig, ResolvedContext, ResultSet, Tag, TargetPoint
from agent.core.resolver import DEFAULT_TARGET_NAME


logger = logging.getLogger(__name__)


class PoiSearch(Protocol):
    def nearby_amenities(
        self, center: Tuple[float, float], radius_m: float, tags: Sequence[str], limit: int
    ) -> List[Dict[str, Any]]: ...


class PlaceSearch(Protocol):
    def search_places(self, query: str, limit: int) -> List[Dict[str, Any]]: ...


def ordered_tags(tags: Iterable[Tag]) -> List[Tag]:
    wanted = set(tags)
    return [tag for tag in Tag if tag in wanted]


def rank_points(
    features: Iterable[Dict[str, Any]],
    center: Optional[Tuple[float, float]],
    cap: int,
) -> List[POI]:
    """Point features nearest-first, truncated to ``cap``.

    The sort is stable, so provider order breaks ties. Without a center every
    distance is infinite and provider order is kept.
    """
    pois: List[POI] = []
    for feature in features:
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "Point":
            continue
        properties = dict(feature.get("properties") or {})
        try:
            lon, lat = (float(v) for v in geometry["coordinates"][:2])
            pois.append(
                POI(
                    center=(lon, lat),
                    name=properties.get("name"),
                    category=properties.get("amenity") or properties.get("category"),
                    dist_m=haversine_m(center, (lon, lat)) if center else math.inf,
                    properties=properties,
                )
            )
        except (KeyError, TypeError, ValueError, ValidationError):
            logger.debug("Skipping point with unusable coordinates: %s", geometry)
    pois.sort(key=lambda poi: poi.dist_m)
    return pois[:cap]


def fallback_query(
    resolved: ResolvedContext, tags: Sequence[Tag], raw_text: str, config: PipelineConfig
) -> str:
    place = resolved.name if resolved.center is not None else ""
    parts = [tags[0].value if tags else "", place or resolved.location or ""]
    parts = [p for p in parts if p]
    if not parts:
        return (raw_text or "").strip() or config.region_qualifier
    return " ".join(parts + [config.region_qualifier])


def assemble_results(
    resolved: ResolvedContext,
    tags: Iterable[Tag],
    raw_text: str,
    poi_search: PoiSearch,
    place_search: PlaceSearch,
    config: PipelineConfig,
) -> ResultSet:
    tag_list = ordered_tags(tags)
    pois: List[POI] = []
    searched_radius: Optional[float] = None

    if tag_list and resolved.center is not None:
        features = poi_search.nearby_amenities(
            resolved.center,
            resolved.radius_m,
            [tag.value for tag in tag_list],
            config.poi_fetch_limit,
        )
        searched_radius = resolved.radius_m
        pois = rank_points(features, resolved.center, config.result_cap)
        logger.info(
            "Nearby search: %s raw points, %s kept (radius=%.0fm)",
            len(features),
            len(pois),
            resolved.radius_m,
        )

    if not pois:
        query = fallback_query(resolved, tag_list, raw_text, config)
        features = place_search.search_places(query, config.place_fetch_limit)
        pois = rank_points(features, resolved.center, config.result_cap)
        logger.info("Fallback place search %r: %s raw, %s kept", query, len(features), len(pois))

    if resolved.center is None:
        return ResultSet(pois=pois)

    return ResultSet(
        area=resolved.area,
        target=TargetPoint(center=resolved.center, name=resolved.name or DEFAULT_TARGET_NAME),
        radius_m=searched_radius,
        pois=pois,
    )
