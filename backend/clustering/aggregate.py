from __future__ import annotations

import hashlib
from typing import Sequence

from poi.types import POI, Cluster, ClusterRepresentative, Individual, RenderItem


class ClusterIdBuilder:
    """
    Deterministic cluster ids for one computation pass.

    The id mixes a hash of the rounded centroid, the member count and a sequence number
    owned by this builder, so two clusters sharing a centroid still get distinct ids and
    the same input always produces the same ids.
    """

    def __init__(self) -> None:
        self._seq = 0

    def next_id(self, lat: float, lng: float, size: int) -> str:
        self._seq += 1
        loc = hashlib.sha1(f"{lat:.6f},{lng:.6f}".encode("utf-8")).hexdigest()[:10]
        return f"cluster-{loc}-{size}-{self._seq}"


def distance_sq(a_lat: float, a_lng: float, b_lat: float, b_lng: float) -> float:
    d_lat = a_lat - b_lat
    d_lng = a_lng - b_lng
    return d_lat * d_lat + d_lng * d_lng


def build_cluster(members: Sequence[POI], ids: ClusterIdBuilder) -> Cluster:
    if len(members) < 2:
        raise ValueError("A cluster needs at least two members")
    n = len(members)
    lat = sum(m.lat for m in members) / n
    lng = sum(m.lng for m in members) / n
    rep = ClusterRepresentative(
        id=ids.next_id(lat, lng, n),
        lat=lat,
        lng=lng,
        members=tuple(members),
        name=f"{n} places",
        genre=members[0].genre,
    )
    return Cluster(cluster=rep)


def aggregate_cell(
    cell: Sequence[POI], distance: float, ids: ClusterIdBuilder
) -> list[RenderItem]:
    d_sq = distance * distance
    processed = [False] * len(cell)
    out: list[RenderItem] = []

    for i, seed in enumerate(cell):
        if processed[i]:
            continue
        processed[i] = True
        group = [seed]
        for j in range(i + 1, len(cell)):
            if processed[j]:
                continue
            other = cell[j]
            if distance_sq(seed.lat, seed.lng, other.lat, other.lng) < d_sq:
                group.append(other)
                processed[j] = True

        out.append(Individual(poi=seed) if len(group) == 1 else build_cluster(group, ids))
    return out


def aggregate(
    cells: dict[tuple[int, int], list[POI]], distance: float, ids: ClusterIdBuilder
) -> list[RenderItem]:
    out: list[RenderItem] = []
    for cell in cells.values():
        out.extend(aggregate_cell(cell, distance, ids))
    return out
