from __future__ import annotations

from dataclasses import dataclass

from shapely.geometry import Polygon
from shapely.geometry import box as shapely_box


@dataclass(frozen=True)
class BBox:
    """
    WGS84 viewport bounds in lat/lng degrees.

    Convention used throughout this repo:
    - minLat, minLng, maxLat, maxLng
    """

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    def normalized(self) -> "BBox":
        min_lat = min(self.min_lat, self.max_lat)
        max_lat = max(self.min_lat, self.max_lat)
        min_lng = min(self.min_lng, self.max_lng)
        max_lng = max(self.min_lng, self.max_lng)
        return BBox(min_lat=min_lat, min_lng=min_lng, max_lat=max_lat, max_lng=max_lng)

    def rounded_key(self, decimals: int = 4) -> tuple[float, float, float, float]:
        """
        A stable, hashable key for caching viewport-derived computations.

        decimals=4 is ~11m-ish in latitude, which is good enough for interactive viewport caching.
        """
        b = self.normalized()
        return (
            round(b.min_lat, decimals),
            round(b.min_lng, decimals),
            round(b.max_lat, decimals),
            round(b.max_lng, decimals),
        )

    def as_polygon(self) -> Polygon:
        # Shapely is x/y, so lng goes first.
        b = self.normalized()
        return shapely_box(b.min_lng, b.min_lat, b.max_lng, b.max_lat)

    @staticmethod
    def around(points: list[tuple[float, float]]) -> "BBox":
        """
        Tight bounds around (lat, lng) pairs; used to fit the map to a cluster.
        """
        if not points:
            raise ValueError("Cannot build bounds around an empty point list")
        lats = [p[0] for p in points]
        lngs = [p[1] for p in points]
        return BBox(min_lat=min(lats), min_lng=min(lngs), max_lat=max(lats), max_lng=max(lngs))
