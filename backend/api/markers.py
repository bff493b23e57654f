from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from clustering.engine import MarkerSet
from geo.aoi import BBox
from poi.types import POI, Cluster, RenderItem


class ApiPOI(BaseModel):
    id: str
    lat: float
    lng: float
    name: str = ""
    genre: str = ""
    source: str = ""
    details: dict[str, Any] = Field(default_factory=dict)

    def to_poi(self) -> POI:
        return POI(
            id=self.id,
            lat=self.lat,
            lng=self.lng,
            name=self.name,
            genre=self.genre,
            source=self.source,
            details=dict(self.details),
        )


class ApiBounds(BaseModel):
    minLat: float = Field(ge=-90.0, le=90.0)
    minLng: float = Field(ge=-180.0, le=180.0)
    maxLat: float = Field(ge=-90.0, le=90.0)
    maxLng: float = Field(ge=-180.0, le=180.0)

    def to_bbox(self) -> BBox:
        return BBox(
            min_lat=self.minLat, min_lng=self.minLng, max_lat=self.maxLat, max_lng=self.maxLng
        ).normalized()


class MarkersRequest(BaseModel):
    pois: list[ApiPOI]
    zoom: float = Field(ge=0.0, le=24.0)
    bounds: ApiBounds | None = None
    clusteringEnabled: bool = True


def _bounds_payload(b: BBox) -> dict[str, float]:
    return {"minLat": b.min_lat, "minLng": b.min_lng, "maxLat": b.max_lat, "maxLng": b.max_lng}


def _poi_payload(p: POI) -> dict[str, Any]:
    return {
        "id": p.id,
        "lat": p.lat,
        "lng": p.lng,
        "name": p.name,
        "genre": p.genre,
        "source": p.source,
        "details": dict(p.details),
    }


def item_payload(item: RenderItem) -> dict[str, Any]:
    display_lat, display_lng = item.display_position
    out: dict[str, Any] = {
        "kind": item.kind,
        "id": item.id,
        "lat": item.lat,
        "lng": item.lng,
        "displayLat": display_lat,
        "displayLng": display_lng,
    }
    if isinstance(item, Cluster):
        c = item.cluster
        out.update(
            {
                "name": c.name,
                "genre": c.genre,
                "clusterSize": c.cluster_size,
                "memberIds": c.member_ids,
                "bounds": _bounds_payload(c.bounds()),
            }
        )
        return out

    out.update(
        {
            "poi": _poi_payload(item.poi),
            "priority": item.priority,
            "showLabel": item.show_label,
        }
    )
    return out


def marker_set_payload(result: MarkerSet) -> dict[str, Any]:
    """
    JSON shape returned by `POST /markers`.

    `overflow` items are not serialised; only their count is, so clients can show
    "n more" without paying for the payload.
    """
    return {
        "items": [item_payload(it) for it in result.items],
        "overflowCount": len(result.overflow),
        "zoom": result.zoom,
        "distance": result.distance,
        "cacheKey": result.cache_key,
    }
