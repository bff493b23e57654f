from __future__ import annotations

import threading

from cache.store import CacheStore

_STORE: CacheStore | None = None
_STORE_LOCK = threading.RLock()


def get_store() -> CacheStore:
    """
    Process-wide cache shared by clustering results, loaded sheets and API responses.
    """
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            _STORE = CacheStore()
        return _STORE


def reset_store() -> None:
    global _STORE
    with _STORE_LOCK:
        if _STORE is not None:
            _STORE.stop()
            _STORE.clear()
            _STORE = None
