"""Heuristic extraction of amenity tags and a location phrase from chat text.

This is keyword matching, not language understanding: it covers the common
"<amenity> near <place>" phrasings and yields nothing for the rest.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Set

from agent.core.models import ParsedQuery, Tag


TAG_SYNONYMS: Dict[Tag, List[str]] = {
    Tag.cafe: ["cafe", "cafes", "coffee", "coffee shop", "espresso"],
    Tag.restaurant: ["restaurant", "restaurants", "lunch", "dinner", "food", "eatery"],
    Tag.bar: ["bar", "bars", "pub", "drinks"],
    Tag.park: ["park", "parks", "green space", "garden"],
}

_TAG_PATTERNS = {
    tag: [re.compile(rf"\b{re.escape(word)}\b") for word in words]
    for tag, words in TAG_SYNONYMS.items()
}

# Tried in order, first match wins.
_LOCATION_PATTERNS = [
    re.compile(r"\bnear\b\s+([^,.;]+)"),
    re.compile(r"\baround\b\s+([^,.;]+)"),
    re.compile(r"\bin\b\s+([^,.;]+)"),
]

_ONE_NORTH = re.compile(r"\bone\s*[-\s]?north\b")


def extract_tags(text: str) -> Set[Tag]:
    lowered = (text or "").lower()
    tags = {
        tag
        for tag, patterns in _TAG_PATTERNS.items()
        if any(p.search(lowered) for p in patterns)
    }
    if not tags:
        if re.search(r"\blunch\b|\bfood\b", lowered):
            tags.add(Tag.restaurant)
        if re.search(r"\bcafe|coffee", lowered):
            tags.add(Tag.cafe)
    return tags


def normalize_location(phrase: str) -> str:
    return _ONE_NORTH.sub("one-north", phrase.strip())


def extract_location(text: str) -> Optional[str]:
    lowered = (text or "").lower()
    for pattern in _LOCATION_PATTERNS:
        match = pattern.search(lowered)
        if match:
            phrase = normalize_location(match.group(1))
            return phrase or None
    return None


def parse_query(text: str) -> ParsedQuery:
    return ParsedQuery(tags=frozenset(extract_tags(text)), location=extract_location(text))
