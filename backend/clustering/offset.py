from __future__ import annotations

import math
from typing import Sequence

from clustering.aggregate import distance_sq
from poi.types import RenderItem, with_offset


def apply_offsets(
    items: Sequence[RenderItem],
    *,
    epsilon: float = 5e-6,
    radius: float = 0.0002,
) -> list[RenderItem]:
    """
    Fan out items that sit on (almost) the same coordinates.

    Each coincident group of n > 1 keeps its first item in place; item i moves to angle
    2*pi*i/n on a ring of `radius` degrees. Only the display offset changes.
    """
    out = list(items)
    eps_sq = epsilon * epsilon
    grouped = [False] * len(out)

    for i, current in enumerate(out):
        if grouped[i]:
            continue
        group = [i]
        for j in range(i + 1, len(out)):
            if grouped[j]:
                continue
            other = out[j]
            if distance_sq(current.lat, current.lng, other.lat, other.lng) <= eps_sq:
                group.append(j)

        for idx in group:
            grouped[idx] = True
        n = len(group)
        if n < 2:
            continue
        for k, idx in enumerate(group[1:], start=1):
            angle = 2.0 * math.pi * k / n
            out[idx] = with_offset(
                out[idx], (radius * math.cos(angle), radius * math.sin(angle))
            )
    return out
