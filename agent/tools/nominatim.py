"""Forward geocoding and free-text place search against OpenStreetMap Nominatim."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from agent.core.models import GeocodeHit
from agent.tools.errors import UpstreamError
from config.settings import get_settings


logger = logging.getLogger(__name__)


class NominatimClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.nominatim_url
        self.headers = {
            "User-Agent": user_agent or settings.http_user_agent,
            "Accept-Language": "en",
        }
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.transport = transport

    def _get(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.base_url, params=params, headers=self.headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Nominatim request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Nominatim returned invalid JSON: {exc}") from exc

        if not isinstance(data, list):
            raise UpstreamError(f"Nominatim returned unexpected payload: {type(data).__name__}")
        return [item for item in data if isinstance(item, dict)]

    def geocode_one(self, query: str) -> Optional[GeocodeHit]:
        """Best hit for ``query``, or None when Nominatim knows no such place."""
        items = self._get(
            {"q": query, "format": "json", "limit": "1", "polygon_geojson": "1"}
        )
        if not items:
            logger.info("Geocode miss for %r", query)
            return None
        item = items[0]
        bbox = item.get("boundingbox")
        try:
            return GeocodeHit(
                center=(float(item["lon"]), float(item["lat"])),
                display_name=item.get("display_name") or query,
                bbox=tuple(float(v) for v in bbox) if bbox and len(bbox) == 4 else None,
                geometry=item.get("geojson") if isinstance(item.get("geojson"), dict) else None,
            )
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise UpstreamError(f"Nominatim returned an unusable hit for {query!r}: {exc}") from exc

    def search_places(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Free-text search; each hit becomes a GeoJSON Feature (polygon if provided)."""
        items = self._get(
            {
                "q": query,
                "format": "json",
                "addressdetails": "1",
                "polygon_geojson": "1",
                "limit": str(limit),
            }
        )
        features: List[Dict[str, Any]] = []
        for item in items:
            geometry = item.get("geojson")
            if not isinstance(geometry, dict):
                try:
                    geometry = {
                        "type": "Point",
                        "coordinates": [float(item["lon"]), float(item["lat"])],
                    }
                except (KeyError, TypeError, ValueError):
                    continue
            features.append(
                {
                    "type": "Feature",
                    "geometry": geometry,
                    "properties": {
                        "display_name": item.get("display_name"),
                        "type": item.get("type"),
                        "category": item.get("class"),
                        "importance": item.get("importance"),
                        "osm_id": item.get("osm_id"),
                        "osm_type": item.get("osm_type"),
                        "lat": item.get("lat"),
                        "lon": item.get("lon"),
                    },
                }
            )
        return features
