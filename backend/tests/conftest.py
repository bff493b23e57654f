import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `clustering.*`, `cache.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scenario_policy():
    from clustering.policy import ClusteringPolicy

    # d = 0.002 at zoom 10, clamped to 0.00001 from zoom ~17.6 up.
    return ClusteringPolicy(base_distance=0.002, base_zoom=10, min_distance=0.00001)


@pytest.fixture
def scenario_pois():
    from poi.types import POI

    return [
        POI(id="a", lat=38.000, lng=138.000, name="A", genre="cafe"),
        POI(id="b", lat=38.0001, lng=138.0001, name="B", genre="cafe"),
        POI(id="c", lat=38.0001, lng=138.0002, name="C", genre="bar"),
    ]
