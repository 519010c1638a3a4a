from __future__ import annotations

from typing import Any, Dict

from agent.core.geojson import render_block


SYSTEM_PROMPT = (
    "You are a location-intelligence assistant that helps people find places on a map.\n"
    "- If the user does not name a location in this turn, assume the place from the "
    "prior conversation (the last area marked as the \"target\").\n"
    "- Keep responses short (1-2 sentences).\n"
    "- Never invent places, addresses or distances that are not in the provided data."
)

NO_RESULTS_DIRECTIVE = (
    "No map data could be retrieved for this request. Tell the user briefly that you "
    "could not find results right now and suggest trying again or naming a specific area. "
    "Do not output any code block."
)


def build_directive(feature_collection: Dict[str, Any]) -> str:
    """Per-turn instruction: summarize, then echo the block untouched."""
    return (
        "Summarize the places below for the user in 1-2 sentences.\n"
        "Then output EXACTLY the following fenced block, byte for byte. Do not reformat, "
        "reorder, translate or edit it, and do not add anything after it.\n\n"
        f"{render_block(feature_collection)}"
    )
