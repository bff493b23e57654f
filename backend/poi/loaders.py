from __future__ import annotations

import csv
import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, Mapping

from cache.config import SHEETS_NAMESPACE, ttl_for
from cache.keys import sheets_key
from cache.store import CacheStore
from poi.types import POI, InvalidPOIError


logger = logging.getLogger(__name__)

# Columns mapped onto POI fields; everything else lands in `details`.
_CORE_COLUMNS = {"id", "name", "lat", "lng", "lon", "genre", "source"}


def _as_float(v: Any) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(str(v).strip()) if isinstance(v, str) else float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def parse_rows(rows: Iterable[Mapping[str, Any]], *, source: str = "") -> list[POI]:
    """
    Turn raw sheet/feed rows into POIs.

    Rows without a usable position are dropped (and logged) here, so the clustering
    engine only ever sees valid POIs. Missing ids fall back to `poi-<row>`; a repeated
    id keeps the first row.
    """
    out: list[POI] = []
    seen: set[str] = set()
    for i, row in enumerate(rows):
        row = row or {}
        lat = _as_float(row.get("lat"))
        lng = _as_float(row.get("lng", row.get("lon")))
        pid = str(row.get("id") or "").strip() or f"poi-{i}"
        if lat is None or lng is None:
            logger.warning("Dropping POI row %d (%s): missing or non-numeric position", i, pid)
            continue
        if pid in seen:
            logger.warning("Dropping POI row %d: duplicate id %s", i, pid)
            continue

        details = {k: v for k, v in row.items() if k not in _CORE_COLUMNS and v not in (None, "")}
        try:
            poi = POI(
                id=pid,
                lat=lat,
                lng=lng,
                name=str(row.get("name") or ""),
                genre=str(row.get("genre") or ""),
                source=str(row.get("source") or source),
                details=details,
            )
        except InvalidPOIError as e:
            logger.warning("Dropping POI row %d: %s", i, e)
            continue
        seen.add(pid)
        out.append(poi)
    return out


def load_pois_csv(path: Path, *, source: str = "") -> list[POI]:
    with path.open(encoding="utf-8", newline="") as f:
        return parse_rows(csv.DictReader(f), source=source)


def load_pois_json(path: Path, *, source: str = "") -> list[POI]:
    """
    Input: either a list of row objects or `{"pois": [...]}`.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    rows = data.get("pois") if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValueError(f"Invalid POI json root: {path}")
    return parse_rows(rows, source=source)


def load_pois(path: Path, *, source: str = "") -> list[POI]:
    if path.suffix.lower() == ".csv":
        return load_pois_csv(path, source=source)
    return load_pois_json(path, source=source)


def _is_poi_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(p, POI) for p in value)


async def load_pois_cached(
    path: Path, store: CacheStore, *, source: str = "", ttl: float | None = None
) -> list[POI]:
    """
    Load a POI file through the shared cache; concurrent loads of one file share a read.
    """

    async def _load() -> list[POI]:
        return load_pois(path, source=source)

    return await store.get_or_compute_deduplicated(
        sheets_key(str(path)),
        _load,
        ttl=ttl_for(SHEETS_NAMESPACE) if ttl is None else ttl,
        validator=_is_poi_list,
    )
