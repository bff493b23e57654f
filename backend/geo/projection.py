from __future__ import annotations

from functools import lru_cache
from typing import Callable, TypeAlias

from pyproj import Transformer


# (lat, lng, zoom) -> (x, y) in world pixels.
Projection: TypeAlias = Callable[[float, float, float], tuple[float, float]]

TILE_SIZE = 256

_MAX_MERCATOR_LAT = 85.05112878
# Half the EPSG:3857 world width in meters.
_HALF_WORLD_M = 20037508.342789244


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


def world_size_px(zoom: float) -> float:
    return TILE_SIZE * (2.0 ** float(zoom))


def web_mercator_pixel(lat: float, lng: float, zoom: float) -> tuple[float, float]:
    """
    Project a WGS84 position to Web Mercator world pixels at `zoom`.

    Same pixel space as slippy map tiles: (0, 0) is the north-west corner and the
    world is TILE_SIZE * 2**zoom pixels wide.
    """
    # Clamp to WebMercator-supported latitudes.
    lat = max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, float(lat)))
    x_m, y_m = transformer_4326_to_3857().transform(float(lng), lat)
    scale = world_size_px(zoom) / (2.0 * _HALF_WORLD_M)
    return (float(x_m) + _HALF_WORLD_M) * scale, (_HALF_WORLD_M - float(y_m)) * scale
