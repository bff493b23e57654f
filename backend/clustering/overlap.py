from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import Point
from shapely.geometry import box as shapely_box
from shapely.strtree import STRtree

from clustering.aggregate import ClusterIdBuilder, build_cluster
from geo.projection import Projection
from poi.types import Cluster, Individual, RenderItem


class OverlapResolver:
    """
    Pixel-space check on top of degree-distance clustering.

    Policy:
    - clusters produced by the distance rule are kept as-is (no flicker while zooming);
    - anything else (arbitrary candidate groups, or clusters handed in with
      `distance_based=False`) needs confirmed pixel overlap, otherwise it dissolves into
      individual markers.
    """

    def __init__(self, project: Projection, *, zoom: float, overlap_px: float) -> None:
        self.project = project
        self.zoom = float(zoom)
        self.overlap_px = float(overlap_px)

    def pixel(self, lat: float, lng: float) -> tuple[float, float]:
        x, y = self.project(lat, lng, self.zoom)
        return float(x), float(y)

    def pixel_distance(self, a: tuple[float, float], b: tuple[float, float]) -> float:
        ax, ay = self.pixel(*a)
        bx, by = self.pixel(*b)
        return math.hypot(ax - bx, ay - by)

    def overlaps(self, a: tuple[float, float], b: tuple[float, float]) -> bool:
        return self.pixel_distance(a, b) < self.overlap_px

    def confirm(self, item: Cluster, *, distance_based: bool = True) -> list[RenderItem]:
        if distance_based:
            return [item]
        centre = (item.lat, item.lng)
        if all(self.overlaps(centre, (m.lat, m.lng)) for m in item.member_pois):
            return [item]
        return [Individual(poi=m) for m in item.member_pois]

    def resolve(self, items: Sequence[RenderItem], ids: ClusterIdBuilder) -> list[RenderItem]:
        """
        Confirm distance-merged clusters, then merge leftover individuals that overlap on
        screen.
        """
        confirmed: list[RenderItem] = []
        for item in items:
            if isinstance(item, Cluster):
                confirmed.extend(self.confirm(item, distance_based=True))
            else:
                confirmed.append(item)
        return self.merge_candidates(confirmed, ids)

    def merge_candidates(
        self, items: Sequence[RenderItem], ids: ClusterIdBuilder
    ) -> list[RenderItem]:
        candidates = [
            i
            for i, it in enumerate(items)
            if isinstance(it, Individual) and not it.priority
        ]
        if len(candidates) < 2 or self.overlap_px <= 0:
            return list(items)

        r = self.overlap_px
        pts = [Point(*self.pixel(items[i].lat, items[i].lng)) for i in candidates]
        tree = STRtree(pts)

        taken = [False] * len(pts)
        # item index of the seed -> item indices of its group (seed first)
        groups: dict[int, list[int]] = {}
        absorbed: set[int] = set()
        for k, p in enumerate(pts):
            if taken[k]:
                continue
            taken[k] = True
            near = tree.query(shapely_box(p.x - r, p.y - r, p.x + r, p.y + r))
            group = [k]
            for j in sorted(int(x) for x in near):
                if taken[j] or j == k:
                    continue
                if p.distance(pts[j]) < r:
                    group.append(j)
                    taken[j] = True
            if len(group) > 1:
                groups[candidates[k]] = [candidates[g] for g in group]
                absorbed.update(candidates[g] for g in group[1:])

        if not groups:
            return list(items)

        out: list[RenderItem] = []
        for i, it in enumerate(items):
            if i in absorbed:
                continue
            group_idx = groups.get(i)
            if group_idx is None:
                out.append(it)
                continue
            members = [items[g].member_pois[0] for g in group_idx]
            out.append(build_cluster(members, ids))
        return out
