from __future__ import annotations

from typing import Iterable, Sequence

from poi.types import POI, Individual, RenderItem


def is_priority(poi: POI, tags: Iterable[str]) -> bool:
    """
    A POI is "priority" (e.g. editorially recommended) when its origin tag matches one of
    `tags` exactly or contains it, or its genre equals one, case-insensitively.
    """
    source = (poi.source or "").strip().lower()
    genre = (poi.genre or "").strip().lower()
    for tag in tags:
        t = (tag or "").strip().lower()
        if not t:
            continue
        if genre == t or (source and t in source):
            return True
    return False


def split_priority(
    pois: Sequence[POI], tags: Iterable[str]
) -> tuple[list[POI], list[POI]]:
    tag_list = list(tags)
    priority: list[POI] = []
    clusterable: list[POI] = []
    for poi in pois:
        (priority if is_priority(poi, tag_list) else clusterable).append(poi)
    return priority, clusterable


def remerge(
    items: Sequence[RenderItem], priority: Sequence[POI], *, show_labels: bool
) -> list[RenderItem]:
    # Priority POIs never join a cluster; they always come back as standalone markers.
    return [
        *items,
        *(Individual(poi=p, priority=True, show_label=show_labels) for p in priority),
    ]


def is_priority_item(item: RenderItem) -> bool:
    return isinstance(item, Individual) and item.priority


def sort_by_priority(items: Sequence[RenderItem]) -> list[RenderItem]:
    # sorted() is stable, so input order survives within each group.
    return sorted(items, key=lambda it: 0 if is_priority_item(it) else 1)
