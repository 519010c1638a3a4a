import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path for direct pytest runs
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from agent.core.models import PipelineConfig  # noqa: E402


@pytest.fixture
def config():
    return PipelineConfig(
        poi_fetch_limit=120,
        place_fetch_limit=30,
        result_cap=5,
        default_radius_m=900.0,
        region_qualifier="Singapore",
    )
