from __future__ import annotations


class UpstreamError(RuntimeError):
    """A geocoding or POI provider could not be reached or answered garbage."""
