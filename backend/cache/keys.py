from __future__ import annotations

import hashlib
from typing import Iterable, Sequence

from cache.config import CLUSTERING_NAMESPACE, SHEETS_NAMESPACE
from geo.aoi import BBox
from poi.types import POI


def build_key(*parts: object) -> str:
    """
    build_key("clustering", 12, "abc") -> "clustering:12:abc"
    """
    return ":".join(str(p) for p in parts)


def ids_digest(ids: Iterable[str]) -> str:
    # Sorted, so the digest depends on the id set and not on input order.
    joined = "\n".join(sorted(ids))
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()[:16]


def zoom_bucket(zoom: float) -> float:
    return round(float(zoom), 1)


def clustering_key(
    pois: Sequence[POI],
    *,
    zoom: float,
    bounds: BBox | None,
    clustering_enabled: bool,
) -> str:
    bounds_key = (
        ",".join(f"{v:.4f}" for v in bounds.rounded_key(decimals=4))
        if bounds is not None
        else "none"
    )
    return build_key(
        CLUSTERING_NAMESPACE,
        len(pois),
        zoom_bucket(zoom),
        1 if clustering_enabled else 0,
        bounds_key,
        ids_digest(p.id for p in pois),
    )


def sheets_key(source: str) -> str:
    return build_key(SHEETS_NAMESPACE, source)
