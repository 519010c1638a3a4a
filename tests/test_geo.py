import pytest

from agent.core.geo import (
    approximate_radius_m,
    bbox_centroid,
    haversine_m,
    radius_from_bbox,
)
from helpers import square


def test_haversine_identical_points_is_zero():
    assert haversine_m((103.851, 1.2931), (103.851, 1.2931)) == 0.0


def test_haversine_symmetric():
    a, b = (103.851, 1.2931), (103.8607, 1.2834)
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))


def test_haversine_city_hall_to_marina_bay():
    # 0.0097 deg on both axes near the equator: hypot(1078.6, 1078.3) = 1525 m
    d = haversine_m((103.851, 1.2931), (103.8607, 1.2834))
    assert abs(d - 1525) < 15


def test_bbox_centroid_flattens_multipolygon():
    geometry = {
        "type": "MultiPolygon",
        "coordinates": [square(0.0, 0.0, 1.0)["coordinates"], square(3.0, 2.0, 1.0)["coordinates"]],
    }
    assert bbox_centroid(geometry) == (2.0, 1.5)


def test_bbox_centroid_empty_geometry():
    assert bbox_centroid({"type": "Polygon", "coordinates": []}) is None


def test_approximate_radius_is_half_diagonal():
    radius = approximate_radius_m(square(0.0, 0.0, 0.01))
    assert 780 < radius < 792


def test_radius_from_bbox_clamped():
    assert radius_from_bbox(["1.3000", "1.3001", "103.8000", "103.8001"]) == 400.0
    assert radius_from_bbox([1.0, 1.5, 103.0, 103.5]) == 2000.0


def test_radius_from_bbox_within_bounds():
    # ~0.01 deg square near the equator: half diagonal ~785 m
    radius = radius_from_bbox([1.30, 1.31, 103.80, 103.81])
    assert 780 <= radius <= 790
