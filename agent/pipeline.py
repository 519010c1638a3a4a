"""One conversational map turn: parse, resolve, search, render.

Every call is independent. The only state carried between turns is what the
caller hands back: the transcript and, optionally, the previous turn's
``session_context``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from agent.core.assembler import PlaceSearch, PoiSearch, assemble_results
from agent.core.geojson import to_feature_collection
from agent.core.memory import resolve_sticky_context, session_context_for
from agent.core.models import (
    ParsedQuery,
    PipelineConfig,
    ResolvedContext,
    ResultSet,
    StickyContext,
    Turn,
)
from agent.core.parser import parse_query
from agent.core.prompt import build_directive
from agent.core.resolver import Geocoder, resolve_context
from agent.tools import NominatimClient, OverpassClient
from config.settings import get_settings


logger = logging.getLogger(__name__)


class TurnOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    parsed: ParsedQuery
    sticky: Optional[StickyContext] = None
    resolved: ResolvedContext
    result: ResultSet
    feature_collection: Dict[str, Any]
    session_context: Optional[StickyContext] = None
    directive: str


class MapPipeline:
    def __init__(
        self,
        geocoder: Geocoder,
        poi_search: PoiSearch,
        place_search: PlaceSearch,
        config: Optional[PipelineConfig] = None,
    ):
        self.geocoder = geocoder
        self.poi_search = poi_search
        self.place_search = place_search
        self.config = config or PipelineConfig.from_settings(get_settings())

    def run_turn(
        self,
        query: str,
        history: Sequence[Turn] = (),
        session_context: Optional[StickyContext] = None,
    ) -> TurnOutcome:
        """Run one turn. Provider failures raise ``UpstreamError``."""
        parsed = parse_query(query)
        logger.info(
            "Parsed query: tags=%s location=%r",
            sorted(tag.value for tag in parsed.tags),
            parsed.location,
        )
        sticky = resolve_sticky_context(session_context, history)
        resolved = resolve_context(parsed, sticky, self.geocoder, self.config)
        result = assemble_results(
            resolved,
            parsed.tags,
            query,
            self.poi_search,
            self.place_search,
            self.config,
        )
        feature_collection = to_feature_collection(result)
        return TurnOutcome(
            parsed=parsed,
            sticky=sticky,
            resolved=resolved,
            result=result,
            feature_collection=feature_collection,
            session_context=session_context_for(result),
            directive=build_directive(feature_collection),
        )


def build_pipeline(config: Optional[PipelineConfig] = None) -> MapPipeline:
    nominatim = NominatimClient()
    return MapPipeline(
        geocoder=nominatim,
        poi_search=OverpassClient(),
        place_search=nominatim,
        config=config,
    )
