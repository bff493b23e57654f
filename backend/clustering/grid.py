from __future__ import annotations

import math
from typing import Iterable

from clustering.policy import ClusteringPolicy
from poi.types import POI


def clustering_distance(zoom: float, policy: ClusteringPolicy | None = None) -> float:
    """
    Merge threshold in degrees for `zoom`; also used as the grid cell size.

    Halves with each zoom step above `base_zoom`, never below `min_distance`, and capped
    at `max_distance` so very low zoom levels don't collapse the world into one cell.
    """
    p = policy or ClusteringPolicy()
    z = float(zoom)
    if not math.isfinite(z):
        raise ValueError(f"zoom must be finite, got {zoom!r}")
    d = max(p.min_distance, p.base_distance / (2.0 ** (z - p.base_zoom)))
    return min(d, p.max_distance)


def cell_key(lat: float, lng: float, distance: float) -> tuple[int, int]:
    return math.floor(lat / distance), math.floor(lng / distance)


def partition(pois: Iterable[POI], distance: float) -> dict[tuple[int, int], list[POI]]:
    """
    Bucket POIs into square cells of `distance` degrees.

    Neighbour search is limited to a POI's own cell; points straddling a cell edge are
    not merged. Cells keep first-seen order, so output order follows input order.
    """
    if distance <= 0:
        raise ValueError(f"clustering distance must be positive, got {distance}")

    cells: dict[tuple[int, int], list[POI]] = {}
    for poi in pois:
        cells.setdefault(cell_key(poi.lat, poi.lng, distance), []).append(poi)
    return cells
