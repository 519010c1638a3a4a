from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
    top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))
    # 0 forwards the whole transcript to the model
    history_turns: int = int(os.getenv("HISTORY_TURNS", "0"))

    nominatim_url: str = os.getenv(
        "NOMINATIM_URL", "https://nominatim.openstreetmap.org/search"
    )
    overpass_url: str = os.getenv(
        "OVERPASS_URL", "https://overpass-api.de/api/interpreter"
    )
    http_user_agent: str = os.getenv("HTTP_USER_AGENT", "map-chat-assistant/1.0")
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "25"))

    region_qualifier: str = os.getenv("REGION_QUALIFIER", "Singapore")
    poi_fetch_limit: int = int(os.getenv("POI_FETCH_LIMIT", "120"))
    place_fetch_limit: int = int(os.getenv("PLACE_FETCH_LIMIT", "30"))
    result_cap: int = int(os.getenv("RESULT_CAP", "5"))
    default_radius_m: float = float(os.getenv("DEFAULT_RADIUS_M", "900"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
