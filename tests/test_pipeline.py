from unittest.mock import MagicMock

import httpx
import pytest

from agent.core.geojson import render_block
from agent.core.models import GeocodeHit, Turn
from agent.pipeline import MapPipeline
from agent.tools import NominatimClient, UpstreamError
from helpers import point_feature, square


ONE_NORTH = GeocodeHit(
    center=(103.787, 1.299),
    display_name="one-north, Singapore",
    bbox=(1.29, 1.308, 103.78, 103.795),
    geometry=square(103.78, 1.29, 0.015),
)


def _pipeline(config, hit=ONE_NORTH, nearby=None, places=None):
    geocoder = MagicMock()
    geocoder.geocode_one.return_value = hit
    poi_search = MagicMock()
    poi_search.nearby_amenities.return_value = nearby or []
    place_search = MagicMock()
    place_search.search_places.return_value = places or []
    return MapPipeline(geocoder, poi_search, place_search, config)


def test_first_turn_geocodes_and_ranks(config):
    nearby = [point_feature(103.788, 1.300, name="Kopi", amenity="cafe"), point_feature(103.787, 1.2991, name="Brew", amenity="cafe")]
    pipeline = _pipeline(config, nearby=nearby)
    outcome = pipeline.run_turn("find cafes near one north")

    pipeline.geocoder.geocode_one.assert_called_once_with("one-north, Singapore")
    kinds = [f["properties"]["kind"] for f in outcome.feature_collection["features"]]
    assert kinds == ["area", "target", "poi", "poi"]
    assert [p.name for p in outcome.result.pois] == ["Brew", "Kopi"]
    assert outcome.session_context.center == (103.787, 1.299)
    assert render_block(outcome.feature_collection) in outcome.directive
    assert "1-2 sentences" in outcome.directive


def test_follow_up_reuses_previous_block(config):
    first = _pipeline(config, nearby=[point_feature(103.788, 1.300, name="Kopi", amenity="cafe")])
    outcome = first.run_turn("find cafes near one north")
    history = [
        Turn(role="user", content="find cafes near one north"),
        Turn(role="assistant", content=f"Two cafes close by.\n\n{render_block(outcome.feature_collection)}"),
    ]

    second = _pipeline(config, nearby=[point_feature(103.789, 1.301, name="Pub", amenity="bar")])
    follow = second.run_turn("any bars there?", history)

    second.geocoder.geocode_one.assert_not_called()
    assert follow.resolved.source == "sticky"
    assert follow.resolved.center == (103.787, 1.299)
    assert follow.resolved.radius_m == outcome.resolved.radius_m
    center, radius, tags, limit = second.poi_search.nearby_amenities.call_args.args
    assert (center, radius, tags, limit) == ((103.787, 1.299), outcome.resolved.radius_m, ["bar"], 120)


def test_session_context_replaces_transcript_scan(config):
    first = _pipeline(config)
    outcome = first.run_turn("cafes near one north")

    second = _pipeline(config)
    follow = second.run_turn("bars please", [], outcome.session_context)
    assert follow.resolved.center == (103.787, 1.299)
    assert follow.resolved.area == outcome.resolved.area


def test_upstream_failure_propagates(config):
    pipeline = _pipeline(config)
    pipeline.poi_search.nearby_amenities.side_effect = UpstreamError("Overpass request failed")
    with pytest.raises(UpstreamError):
        pipeline.run_turn("cafes near one north")


def test_geocoder_server_error_fails_the_turn(config):
    nominatim = NominatimClient(
        base_url="https://nominatim.test/search",
        transport=httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway")),
    )
    poi_search = MagicMock()
    pipeline = MapPipeline(nominatim, poi_search, nominatim, config)
    with pytest.raises(UpstreamError):
        pipeline.run_turn("cafes near one north")
    poi_search.nearby_amenities.assert_not_called()
