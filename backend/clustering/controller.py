from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

from clustering.debounce import ZoomDebouncer
from clustering.engine import ClusteringEngine, MarkerSet
from geo.aoi import BBox
from poi.types import POI


class ClusteringController:
    """
    Holds the current map inputs and recomputes markers when they change.

    Triggers:
    - new POI list, new bounds: recompute now;
    - zoom: debounced, only the last value of a burst recomputes;
    - clustering toggle: drop cached clustering results (they are keyed on the flag),
      then recompute.
    """

    def __init__(
        self,
        engine: ClusteringEngine,
        *,
        on_result: Callable[[MarkerSet], Any],
        zoom: float = 10.0,
        bounds: BBox | None = None,
        clustering_enabled: bool = True,
        debounce_s: float | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.engine = engine
        self.on_result = on_result
        self.pois: list[POI] = []
        self.zoom = float(zoom)
        self.bounds = bounds
        self.clustering_enabled = bool(clustering_enabled)
        self.result: MarkerSet | None = None
        delay = engine.policy.debounce_s if debounce_s is None else debounce_s
        self._zoom_debouncer: ZoomDebouncer[float] = ZoomDebouncer(
            self._on_zoom_settled, delay_s=delay, loop=loop
        )

    def set_pois(self, pois: Sequence[POI]) -> MarkerSet:
        self.pois = list(pois)
        return self.recompute()

    def set_bounds(self, bounds: BBox | None) -> MarkerSet:
        self.bounds = bounds
        return self.recompute()

    def set_zoom(self, zoom: float) -> None:
        self._zoom_debouncer.push(float(zoom))

    def set_clustering_enabled(self, enabled: bool) -> MarkerSet | None:
        enabled = bool(enabled)
        if enabled == self.clustering_enabled:
            return self.result
        self.clustering_enabled = enabled
        self.engine.invalidate()
        return self.recompute()

    @property
    def zoom_pending(self) -> bool:
        return self._zoom_debouncer.is_pending

    def recompute(self) -> MarkerSet:
        self.result = self.engine.get_markers(
            self.pois,
            zoom=self.zoom,
            bounds=self.bounds,
            clustering_enabled=self.clustering_enabled,
        )
        self.on_result(self.result)
        return self.result

    def close(self) -> None:
        self._zoom_debouncer.cancel()

    def _on_zoom_settled(self, zoom: float) -> None:
        self.zoom = zoom
        self.recompute()
