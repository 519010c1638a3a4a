from agent.tools.errors import UpstreamError
from agent.tools.nominatim import NominatimClient
from agent.tools.overpass import OverpassClient

__all__ = ["NominatimClient", "OverpassClient", "UpstreamError"]
