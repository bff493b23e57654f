from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from api.markers import MarkersRequest, marker_set_payload
from cache.singleton import get_store
from clustering.engine import ClusteringEngine
from poi.types import InvalidPOIError


logger = logging.getLogger(__name__)


def _engine() -> ClusteringEngine:
    # Rebuilt per request (cheap); the store behind it is the shared singleton.
    return ClusteringEngine(get_store())


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_store()
    store.start_cleanup()
    try:
        yield
    finally:
        store.stop()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/markers")
async def markers(body: MarkersRequest) -> dict[str, Any]:
    try:
        pois = [p.to_poi() for p in body.pois]
        result = await _engine().get_markers_async(
            pois,
            zoom=body.zoom,
            bounds=body.bounds.to_bbox() if body.bounds is not None else None,
            clustering_enabled=body.clusteringEnabled,
        )
    except InvalidPOIError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return marker_set_payload(result)


@app.get("/cache/stats")
def cache_stats() -> dict[str, Any]:
    return get_store().stats()


@app.delete("/cache")
def clear_cache(pattern: str | None = None) -> dict[str, Any]:
    removed = get_store().clear(pattern)
    logger.info("Cache invalidated via API (pattern=%r, removed=%d)", pattern, removed)
    return {"removed": removed, "pattern": pattern}
