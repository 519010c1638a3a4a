from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


def _check_lon_lat(value: Tuple[float, float]) -> Tuple[float, float]:
    lon, lat = value
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"longitude out of range: {lon}")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"latitude out of range: {lat}")
    return value


# (longitude, latitude), WGS84 degrees, GeoJSON axis order.
Coordinate = Annotated[Tuple[float, float], AfterValidator(_check_lon_lat)]


class Tag(str, Enum):
    cafe = "cafe"
    restaurant = "restaurant"
    bar = "bar"
    park = "park"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class ParsedQuery(_Record):
    tags: FrozenSet[Tag] = frozenset()
    location: Optional[str] = None


class GeoArea(_Record):
    """Polygon or MultiPolygon boundary with a display name."""

    name: str = ""
    geometry: Dict[str, Any]

    @model_validator(mode="after")
    def _polygonal(self) -> "GeoArea":
        if self.geometry.get("type") not in ("Polygon", "MultiPolygon"):
            raise ValueError("area geometry must be a Polygon or MultiPolygon")
        return self


class TargetPoint(_Record):
    center: Coordinate
    name: str = "Target"


class StickyContext(_Record):
    target: Optional[TargetPoint] = None
    area: Optional[GeoArea] = None
    radius_m: Optional[float] = None

    @property
    def center(self) -> Optional[Tuple[float, float]]:
        return self.target.center if self.target else None

    @property
    def name(self) -> str:
        return self.target.name if self.target else ""


class GeocodeHit(_Record):
    center: Coordinate
    display_name: str
    # Provider order: (lat_min, lat_max, lon_min, lon_max)
    bbox: Optional[Tuple[float, float, float, float]] = None
    geometry: Optional[Dict[str, Any]] = None


class ResolvedContext(_Record):
    center: Optional[Coordinate] = None
    name: str = ""
    area: Optional[GeoArea] = None
    radius_m: float
    source: Literal["geocode", "sticky", "none"] = "none"
    location: Optional[str] = None


class POI(_Record):
    center: Coordinate
    name: Optional[str] = None
    category: Optional[str] = None
    dist_m: Optional[float] = None
    kind: Literal["poi", "target"] = "poi"
    properties: Dict[str, Any] = Field(default_factory=dict)


class ResultSet(_Record):
    area: Optional[GeoArea] = None
    target: Optional[TargetPoint] = None
    radius_m: Optional[float] = None
    pois: List[POI] = Field(default_factory=list)


class PipelineConfig(_Record):
    poi_fetch_limit: int = 120
    place_fetch_limit: int = 30
    result_cap: int = 5
    default_radius_m: float = 900.0
    region_qualifier: str = "Singapore"

    @classmethod
    def from_settings(cls, settings: Any) -> "PipelineConfig":
        return cls(
            poi_fetch_limit=settings.poi_fetch_limit,
            place_fetch_limit=settings.place_fetch_limit,
            result_cap=settings.result_cap,
            default_radius_m=settings.default_radius_m,
            region_qualifier=settings.region_qualifier,
        )


class TextPart(_Record):
    type: Literal["text"] = "text"
    text: str = ""


TurnContent = Union[str, List[TextPart]]

_ROLE_ALIASES = {
    "user": "user",
    "human": "user",
    "assistant": "assistant",
    "ai": "assistant",
    "bot": "assistant",
}


class Turn(_Record):
    role: Literal["user", "assistant"]
    content: TurnContent = ""

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values):
        if not isinstance(values, dict):
            return values
        values = dict(values)
        role = values.get("role")
        if isinstance(role, str):
            values["role"] = _ROLE_ALIASES.get(role.strip().lower(), role)
        # Chat clients send either `content` or a `parts` array.
        parts = values.pop("parts", None)
        if not values.get("content") and isinstance(parts, list):
            values["content"] = [p for p in parts if isinstance(p, dict) and p.get("type", "text") == "text"]
        if values.get("content") is None:
            values["content"] = ""
        return values

    @property
    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return " ".join(part.text for part in self.content).strip()
