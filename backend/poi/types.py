from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Iterable, Mapping, TypeAlias, Union

from geo.aoi import BBox


class InvalidPOIError(ValueError):
    """
    A POI that breaks the engine's input contract (bad position, duplicate id, ...).

    Upstream loaders are expected to filter malformed rows; reaching the engine with one
    is a data-quality bug, so it is raised rather than skipped.
    """


def _finite_coord(value: Any, *, name: str, limit: float, poi_id: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPOIError(f"POI {poi_id!r}: {name} must be a number, got {value!r}")
    v = float(value)
    if not math.isfinite(v):
        raise InvalidPOIError(f"POI {poi_id!r}: {name} must be finite, got {v!r}")
    if v < -limit or v > limit:
        raise InvalidPOIError(f"POI {poi_id!r}: {name} out of range [-{limit}, {limit}]: {v}")
    return v


@dataclass(frozen=True)
class POI:
    id: str
    lat: float
    lng: float
    name: str = ""
    genre: str = ""
    # Origin tag (sheet / feed name). Priority POIs are recognised by it.
    source: str = ""
    # Free-form fields carried through to the renderer unchanged.
    details: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise InvalidPOIError(f"POI id must be a non-empty string, got {self.id!r}")
        _finite_coord(self.lat, name="lat", limit=90.0, poi_id=self.id)
        _finite_coord(self.lng, name="lng", limit=180.0, poi_id=self.id)


@dataclass(frozen=True)
class ClusterRepresentative:
    """
    A synthetic POI standing in for several nearby ones.

    Position is the arithmetic mean of the members; the cluster owns its member list for
    the lifetime of one computation result.
    """

    id: str
    lat: float
    lng: float
    members: tuple[POI, ...]
    name: str = ""
    genre: str = ""

    @property
    def cluster_size(self) -> int:
        return len(self.members)

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    def bounds(self) -> BBox:
        return BBox.around([(m.lat, m.lng) for m in self.members])


@dataclass(frozen=True)
class Individual:
    poi: POI
    priority: bool = False
    show_label: bool = False
    # Display-only nudge (dlat, dlng); the true position never changes.
    offset: tuple[float, float] = (0.0, 0.0)

    kind: ClassVar[str] = "individual"

    @property
    def id(self) -> str:
        return self.poi.id

    @property
    def lat(self) -> float:
        return self.poi.lat

    @property
    def lng(self) -> float:
        return self.poi.lng

    @property
    def display_position(self) -> tuple[float, float]:
        return self.poi.lat + self.offset[0], self.poi.lng + self.offset[1]

    @property
    def member_pois(self) -> tuple[POI, ...]:
        return (self.poi,)


@dataclass(frozen=True)
class Cluster:
    cluster: ClusterRepresentative
    offset: tuple[float, float] = (0.0, 0.0)

    kind: ClassVar[str] = "cluster"

    @property
    def id(self) -> str:
        return self.cluster.id

    @property
    def lat(self) -> float:
        return self.cluster.lat

    @property
    def lng(self) -> float:
        return self.cluster.lng

    @property
    def display_position(self) -> tuple[float, float]:
        return self.cluster.lat + self.offset[0], self.cluster.lng + self.offset[1]

    @property
    def member_pois(self) -> tuple[POI, ...]:
        return self.cluster.members


RenderItem: TypeAlias = Union[Individual, Cluster]


def with_offset(item: RenderItem, offset: tuple[float, float]) -> RenderItem:
    return replace(item, offset=(float(offset[0]), float(offset[1])))


def member_ids(items: Iterable[RenderItem]) -> list[str]:
    """
    Flatten render items back to the POI ids they stand for (standalone or as members).
    """
    return [p.id for item in items for p in item.member_pois]
