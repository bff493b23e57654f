from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, Sequence

from cache.config import CLUSTERING_NAMESPACE, ttl_for
from cache.keys import clustering_key, zoom_bucket
from cache.store import CacheStore
from clustering.aggregate import ClusterIdBuilder, aggregate
from clustering.grid import clustering_distance, partition
from clustering.offset import apply_offsets
from clustering.overlap import OverlapResolver
from clustering.policy import ClusteringPolicy, get_policy
from clustering.priority import remerge, split_priority
from clustering.window import max_markers_for_zoom, window
from geo.aoi import BBox
from geo.projection import Projection, web_mercator_pixel
from poi.types import POI, Cluster, Individual, InvalidPOIError, RenderItem


@dataclass(frozen=True)
class MarkerSet:
    """
    What the engine hands to the renderer for one (pois, zoom, bounds, enabled) input.

    `items` is the capped, ordered render list; `overflow` holds what the zoom tier's cap
    trimmed. Together they cover every input POI exactly once.
    """

    items: tuple[RenderItem, ...]
    overflow: tuple[RenderItem, ...] = ()
    zoom: float = 0.0
    # Clustering distance in degrees; None when clustering did not run.
    distance: float | None = None
    cache_key: str = ""

    @property
    def clusters(self) -> list[Cluster]:
        return [it for it in self.items if isinstance(it, Cluster)]

    @property
    def individuals(self) -> list[Individual]:
        return [it for it in self.items if isinstance(it, Individual)]


def is_marker_set(value: Any) -> bool:
    return isinstance(value, MarkerSet)


def _check_inputs(pois: Sequence[Any], zoom: float) -> None:
    if isinstance(zoom, bool) or not isinstance(zoom, (int, float)) or not math.isfinite(zoom):
        raise ValueError(f"zoom must be a finite number, got {zoom!r}")
    seen: set[str] = set()
    for p in pois:
        if not isinstance(p, POI):
            raise InvalidPOIError(f"Expected POI, got {type(p).__name__}")
        if p.id in seen:
            raise InvalidPOIError(f"Duplicate POI id: {p.id!r}")
        seen.add(p.id)


class ClusteringEngine:
    """
    Priority split -> grid -> aggregate -> overlap -> priority re-merge -> offsets ->
    viewport window, memoised in a CacheStore under the "clustering:" namespace.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        *,
        policy: ClusteringPolicy | None = None,
        project: Projection | None = web_mercator_pixel,
    ) -> None:
        self.store = store if store is not None else CacheStore()
        self.policy = policy or get_policy()
        # None disables pixel-overlap merging of leftover individuals.
        self.project = project

    def compute(
        self,
        pois: Iterable[POI],
        *,
        zoom: float,
        bounds: BBox | None = None,
        clustering_enabled: bool = True,
    ) -> MarkerSet:
        """
        Run the full pipeline without touching the cache.
        """
        poi_list = list(pois)
        _check_inputs(poi_list, zoom)
        p = self.policy
        zoom = float(zoom)

        priority, clusterable = split_priority(poi_list, p.priority_tags)

        enabled = bool(clustering_enabled)
        if p.disable_clustering_zoom is not None and zoom >= p.disable_clustering_zoom:
            enabled = False

        distance: float | None = None
        items: list[RenderItem]
        if enabled:
            distance = clustering_distance(zoom, p)
            ids = ClusterIdBuilder()
            items = aggregate(partition(clusterable, distance), distance, ids)
            if self.project is not None:
                resolver = OverlapResolver(self.project, zoom=zoom, overlap_px=p.overlap_px)
                items = resolver.resolve(items, ids)
        else:
            items = [Individual(poi=poi) for poi in clusterable]

        items = remerge(items, priority, show_labels=zoom >= p.label_zoom)
        # After the re-merge, so priority markers are fanned out too.
        items = apply_offsets(items, epsilon=p.offset_epsilon, radius=p.offset_radius)

        cap = max_markers_for_zoom(zoom, p.max_markers)
        visible, overflow = window(items, cap, bounds)
        return MarkerSet(
            items=tuple(visible),
            overflow=tuple(overflow),
            zoom=zoom,
            distance=distance,
        )

    def cache_key(
        self,
        pois: Sequence[POI],
        *,
        zoom: float,
        bounds: BBox | None = None,
        clustering_enabled: bool = True,
    ) -> str:
        _check_inputs(pois, zoom)
        return clustering_key(
            pois, zoom=zoom, bounds=bounds, clustering_enabled=clustering_enabled
        )

    def get_markers(
        self,
        pois: Iterable[POI],
        *,
        zoom: float,
        bounds: BBox | None = None,
        clustering_enabled: bool = True,
    ) -> MarkerSet:
        poi_list = list(pois)
        key = self.cache_key(
            poi_list, zoom=zoom, bounds=bounds, clustering_enabled=clustering_enabled
        )
        # Cached results are computed at the keyed zoom, not the caller's exact one.
        zoom = zoom_bucket(zoom)
        cached = self.store.get(key, validator=is_marker_set)
        if cached is not None:
            return cached

        result = replace(
            self.compute(
                poi_list, zoom=zoom, bounds=bounds, clustering_enabled=clustering_enabled
            ),
            cache_key=key,
        )
        self.store.set(key, result, ttl_for(CLUSTERING_NAMESPACE))
        return result

    async def get_markers_async(
        self,
        pois: Iterable[POI],
        *,
        zoom: float,
        bounds: BBox | None = None,
        clustering_enabled: bool = True,
    ) -> MarkerSet:
        """
        Like `get_markers`, but concurrent callers with the same fingerprint share one
        computation.
        """
        poi_list = list(pois)
        key = self.cache_key(
            poi_list, zoom=zoom, bounds=bounds, clustering_enabled=clustering_enabled
        )
        # Cached results are computed at the keyed zoom, not the caller's exact one.
        zoom = zoom_bucket(zoom)

        async def _compute() -> MarkerSet:
            result = self.compute(
                poi_list, zoom=zoom, bounds=bounds, clustering_enabled=clustering_enabled
            )
            return replace(result, cache_key=key)

        return await self.store.get_or_compute_deduplicated(
            key, _compute, ttl=ttl_for(CLUSTERING_NAMESPACE), validator=is_marker_set
        )

    def invalidate(self) -> int:
        return self.store.clear(f"{CLUSTERING_NAMESPACE}:*")
