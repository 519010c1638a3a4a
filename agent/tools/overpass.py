"""Overpass "around" search for amenity nodes near a center point."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from agent.tools.errors import UpstreamError
from config.settings import get_settings


logger = logging.getLogger(__name__)

_KEPT_TAGS = ("amenity", "cuisine", "opening_hours", "website")


def _escape_tag(value: str) -> str:
    return value.replace('"', '\\"')


def build_around_query(
    center: Tuple[float, float], radius_m: float, tags: Sequence[str], limit: Optional[int] = None
) -> str:
    lon, lat = center
    radius = max(1, int(radius_m))
    ors = "\n".join(
        f'node["amenity"="{_escape_tag(tag)}"](around:{radius},{lat},{lon});' for tag in tags
    )
    out = f"out center qt {limit};" if limit else "out center qt;"
    return f"[out:json][timeout:25];\n(\n{ors}\n);\n{out}"


class OverpassClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.overpass_url
        self.headers = {"User-Agent": user_agent or settings.http_user_agent}
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.transport = transport

    def nearby_amenities(
        self,
        center: Tuple[float, float],
        radius_m: float,
        tags: Sequence[str],
        limit: int,
    ) -> List[Dict[str, Any]]:
        if not tags:
            return []
        query = build_around_query(center, radius_m, tags, limit)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.base_url, data={"data": query}, headers=self.headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Overpass request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Overpass returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise UpstreamError(f"Overpass returned unexpected payload: {type(data).__name__}")

        features: List[Dict[str, Any]] = []
        for element in data.get("elements") or []:
            if not isinstance(element, dict):
                continue
            if element.get("type") != "node" or "lon" not in element or "lat" not in element:
                continue
            osm_tags = element.get("tags") or {}
            properties: Dict[str, Any] = {"id": element.get("id"), "name": osm_tags.get("name")}
            properties.update({key: osm_tags[key] for key in _KEPT_TAGS if key in osm_tags})
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [element["lon"], element["lat"]]},
                    "properties": properties,
                }
            )
        logger.debug("Overpass returned %s nodes for tags=%s", len(features), list(tags))
        return features
