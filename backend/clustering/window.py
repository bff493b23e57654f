from __future__ import annotations

from typing import Mapping, Sequence

import shapely

from clustering.priority import is_priority_item, sort_by_priority
from geo.aoi import BBox
from poi.types import RenderItem


def max_markers_for_zoom(zoom: float, tiers: Mapping[float, int]) -> int:
    """
    Pick the cap from {minZoom -> maxMarkers}: the highest tier whose minZoom <= zoom.

    Example:
      {0: 50, 12: 100, 15: 200} at zoom 13.5 -> 100
    """
    items = sorted(((float(k), int(v)) for k, v in tiers.items()), key=lambda t: t[0])
    if not items:
        raise ValueError("No marker cap tiers configured")
    cap = items[0][1]
    for min_zoom, value in items:
        if float(zoom) >= min_zoom:
            cap = value
    return cap


def in_viewport_mask(items: Sequence[RenderItem], bounds: BBox) -> list[bool]:
    if not items:
        return []
    # intersects_xy counts points on the edge as inside.
    mask = shapely.intersects_xy(
        bounds.as_polygon(), [it.lng for it in items], [it.lat for it in items]
    )
    return [bool(m) for m in mask]


def window(
    items: Sequence[RenderItem], cap: int, bounds: BBox | None
) -> tuple[list[RenderItem], list[RenderItem]]:
    """
    Trim to the zoom tier's marker cap.

    Fill order:
    - priority items, always (not counted against the cap);
    - non-priority items inside `bounds`, up to the remaining budget;
    - non-priority items outside `bounds`, with whatever budget is left.
    Without bounds, non-priority items keep input order. Returns (visible, overflow).
    """
    ordered_items = sort_by_priority(items)
    n_priority = sum(1 for it in ordered_items if is_priority_item(it))
    priority, rest = ordered_items[:n_priority], ordered_items[n_priority:]
    budget = max(0, int(cap) - len(priority))

    if bounds is None:
        ordered = rest
    else:
        mask = in_viewport_mask(rest, bounds)
        inside = [it for it, m in zip(rest, mask) if m]
        outside = [it for it, m in zip(rest, mask) if not m]
        ordered = [*inside, *outside]

    return [*priority, *ordered[:budget]], ordered[budget:]
