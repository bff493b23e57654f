from __future__ import annotations

import os


CLUSTERING_NAMESPACE = "clustering"
SHEETS_NAMESPACE = "sheets"

# Seconds. Clustering output is cheap to rebuild but stable per input, sheet data
# changes rarely.
_TTL_BY_NAMESPACE_S: dict[str, float] = {
    CLUSTERING_NAMESPACE: 60.0 * 60.0,
    SHEETS_NAMESPACE: 2 * 60.0 * 60.0,
}


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if raw:
        try:
            return float(raw)
        except ValueError:
            pass
    return default


def cache_max_entries() -> int:
    return max(1, int(_env_float("MAPMARKERS_CACHE_MAX_ENTRIES", 200)))


def cache_default_ttl_s() -> float:
    return max(0.0, _env_float("MAPMARKERS_CACHE_DEFAULT_TTL_S", 15 * 60.0))


def cache_cleanup_interval_s() -> float:
    return max(0.01, _env_float("MAPMARKERS_CACHE_CLEANUP_INTERVAL_S", 60.0))


def ttl_for(namespace: str) -> float:
    return _TTL_BY_NAMESPACE_S.get(namespace, cache_default_ttl_s())
