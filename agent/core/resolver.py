from __future__ import annotations

import logging
from typing import Optional, Protocol

from agent.core.geo import approximate_radius_m, radius_from_bbox
from agent.core.models import (
    GeoArea,
    GeocodeHit,
    ParsedQuery,
    PipelineConfig,
    ResolvedContext,
    StickyContext,
)


logger = logging.getLogger(__name__)

DEFAULT_TARGET_NAME = "Target"


class Geocoder(Protocol):
    def geocode_one(self, query: str) -> Optional[GeocodeHit]: ...


def carried_radius(sticky: Optional[StickyContext], config: PipelineConfig) -> float:
    """Sticky radius, else the sticky area's half-diagonal, else the default."""
    if sticky is not None:
        if sticky.radius_m:
            return sticky.radius_m
        if sticky.area is not None:
            approx = approximate_radius_m(sticky.area.geometry)
            if approx:
                return approx
    return config.default_radius_m


def _area_from_hit(hit: GeocodeHit) -> Optional[GeoArea]:
    if hit.geometry and hit.geometry.get("type") in ("Polygon", "MultiPolygon"):
        return GeoArea(name=hit.display_name, geometry=hit.geometry)
    return None


def resolve_context(
    parsed: ParsedQuery,
    sticky: Optional[StickyContext],
    geocoder: Geocoder,
    config: PipelineConfig,
) -> ResolvedContext:
    """Decide the center, area and radius this turn is about.

    A location named in this turn is geocoded and always wins over the
    sticky context. Without one (or without a hit) the sticky center is
    reused; otherwise the turn has no center. Geocoder network errors
    propagate to the caller.
    """
    if parsed.location:
        hit = geocoder.geocode_one(f"{parsed.location}, {config.region_qualifier}")
        if hit is not None:
            area = _area_from_hit(hit)
            if area is not None:
                radius = approximate_radius_m(area.geometry) or carried_radius(sticky, config)
            elif hit.bbox is not None:
                radius = radius_from_bbox(hit.bbox)
            else:
                radius = carried_radius(sticky, config)
            logger.info(
                "Resolved %r via geocode: %s (radius=%.0fm)", parsed.location, hit.display_name, radius
            )
            return ResolvedContext(
                center=hit.center,
                name=hit.display_name,
                area=area,
                radius_m=radius,
                source="geocode",
                location=parsed.location,
            )
        logger.info("No geocode hit for %r", parsed.location)

    if sticky is not None and sticky.center is not None:
        radius = carried_radius(sticky, config)
        logger.info("Reusing sticky center %s (%s, radius=%.0fm)", sticky.center, sticky.name, radius)
        return ResolvedContext(
            center=sticky.center,
            name=sticky.name or DEFAULT_TARGET_NAME,
            area=sticky.area,
            radius_m=radius,
            source="sticky",
            location=parsed.location,
        )

    logger.info("No center resolved this turn")
    return ResolvedContext(
        center=None,
        name=sticky.name if sticky else "",
        radius_m=config.default_radius_m,
        source="none",
        location=parsed.location,
    )
