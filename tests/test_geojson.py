import json
import math

from agent.core.geojson import (
    extract_feature_collection,
    render_block,
    strip_structured_block,
    to_feature_collection,
)
from agent.core.models import POI, GeoArea, ResultSet, TargetPoint
from helpers import square


def _result_set():
    return ResultSet(
        area=GeoArea(name="one-north, Singapore", geometry=square(103.78, 1.29, 0.01)),
        target=TargetPoint(center=(103.785, 1.295), name="one-north, Singapore"),
        radius_m=785.0,
        pois=[
            POI(center=(103.786, 1.296), name="Kopi Spot", category="cafe", dist_m=157.0,
                properties={"id": 1, "amenity": "cafe"}),
        ],
    )


def test_feature_order_is_area_target_pois():
    fc = to_feature_collection(_result_set())
    assert fc["type"] == "FeatureCollection"
    assert [f["properties"]["kind"] for f in fc["features"]] == ["area", "target", "poi"]
    target = fc["features"][1]
    assert target["geometry"] == {"type": "Point", "coordinates": [103.785, 1.295]}
    assert target["properties"]["radius_m"] == 785.0
    poi = fc["features"][2]["properties"]
    assert poi["dist_m"] == 157.0
    assert poi["name"] == "Kopi Spot"
    assert poi["amenity"] == "cafe"


def test_infinite_distance_published_as_null():
    fc = to_feature_collection(ResultSet(pois=[POI(center=(103.8, 1.3), dist_m=math.inf)]))
    assert fc["features"][0]["properties"]["dist_m"] is None
    json.loads(render_block(fc).split("\n", 1)[1].rsplit("\n", 1)[0])


def test_empty_result_set_is_empty_collection():
    assert to_feature_collection(ResultSet()) == {"type": "FeatureCollection", "features": []}


def test_extract_takes_last_block():
    first = render_block({"type": "FeatureCollection", "features": []})
    second = render_block(to_feature_collection(_result_set()))
    fc = extract_feature_collection(f"Partial:\n{first}\nFinal:\n{second}")
    assert len(fc["features"]) == 3


def test_extract_accepts_json_marker_case_insensitive():
    text = 'Here you go\n```JSON\n{"type": "FeatureCollection", "features": []}\n```'
    assert extract_feature_collection(text) == {"type": "FeatureCollection", "features": []}


def test_extract_parse_failure_is_none():
    assert extract_feature_collection("```geojson\n{not json\n```") is None
    assert extract_feature_collection('```json\n{"type": "Feature"}\n```') is None
    assert extract_feature_collection("no block here") is None
    assert extract_feature_collection("") is None


def test_strip_structured_block():
    text = "Two cafes nearby.\n\n" + render_block(to_feature_collection(_result_set()))
    assert strip_structured_block(text) == "Two cafes nearby."


def test_strip_unterminated_block_while_streaming():
    partial = 'Two cafes nearby.\n\n```geojson\n{"type": "FeatureCollection", "feat'
    assert strip_structured_block(partial) == "Two cafes nearby."


def test_strip_other_fenced_blocks():
    assert strip_structured_block("See map.\n```map\n{}\n```") == "See map."
