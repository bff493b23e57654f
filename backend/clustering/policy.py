from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _repo_root() -> Path:
    # .../backend/clustering/policy.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def policy_path() -> Path:
    return Path(
        os.getenv("MAPMARKERS_POLICY_PATH")
        or (_repo_root() / "config" / "clustering.yaml")
    )


class _CamelModel(BaseModel):
    # YAML and JSON use camelCase keys; Python code uses snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StagingPolicy(_CamelModel):
    initial_batch: int = Field(default=50, ge=1)
    batch_size: int = Field(default=25, ge=1)
    batch_delay_s: float = Field(default=0.016, ge=0.0)


class ClusteringPolicy(_CamelModel):
    """
    Tunables for the clustering pipeline.

    Clustering distance is `max(minDistance, baseDistance / 2**(zoom - baseZoom))`,
    capped at `maxDistance` (degrees).
    """

    base_distance: float = Field(default=0.06, gt=0.0)
    base_zoom: float = 8.0
    min_distance: float = Field(default=0.002, gt=0.0)
    max_distance: float = Field(default=1.0, gt=0.0)

    # Two projected markers closer than this are visually overlapping.
    overlap_px: float = Field(default=10.0, ge=0.0)

    # Sub-meter coincidence threshold and the ring radius used to fan those points out.
    offset_epsilon: float = Field(default=5e-6, ge=0.0)
    offset_radius: float = Field(default=0.0002, ge=0.0)

    priority_tags: list[str] = Field(default_factory=lambda: ["recommended", "recommend"])
    label_zoom: float = 14.0
    # Optional: above this zoom every POI renders individually.
    disable_clustering_zoom: float | None = None

    # {minZoom -> max rendered markers}
    max_markers: dict[float, int] = Field(
        default_factory=lambda: {0.0: 50, 12.0: 100, 15.0: 200}
    )

    debounce_s: float = Field(default=0.1, ge=0.0)
    staging: StagingPolicy = Field(default_factory=StagingPolicy)

    @model_validator(mode="after")
    def _check_distances(self) -> "ClusteringPolicy":
        if self.min_distance > self.max_distance:
            raise ValueError("minDistance must not exceed maxDistance")
        if not self.max_markers:
            raise ValueError("maxMarkers must define at least one zoom tier")
        return self


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid clustering policy yaml root: {path}")
    return data


@lru_cache(maxsize=1)
def get_policy() -> ClusteringPolicy:
    p = policy_path()
    if not p.exists():
        return ClusteringPolicy()
    return ClusteringPolicy.model_validate(_load_yaml(p))


def clear_policy_cache() -> None:
    """
    Clear the memoised policy so YAML / env changes are picked up without a restart.
    """
    get_policy.cache_clear()
