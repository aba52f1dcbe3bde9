"""
Geometry-stable grid cell identity.

A cell's id is derived from its own geometry, never from build order:

1. centroid (center of mass) of the cell polygon, (lng, lat)
2. each coordinate quantised: round(value * CENTROID_PRECISION)
3. both integers folded into a 32-bit hash, longitude first:
       h = HASH_SEED
       h = ((h << 5) + h) ^ q   for q in (q_lng, q_lat)
   with every step truncated to unsigned 32 bits.

Six decimal places (~0.1 m) separate any two real hex cells at the supported
resolutions while absorbing floating-point noise from repeated clipping.
The mix and precision are fixed for this implementation: saved ZONE lists
hold ids produced by exactly these constants, so changing any of them
orphans every saved zone.

Author: CountyZones Project
License: AGPL-3.0
"""

from typing import Tuple

from shapely.geometry.base import BaseGeometry

## @brief Quantisation factor applied to centroid degrees (1e6 = 6 decimals)
CENTROID_PRECISION = 1_000_000

## @brief Initial accumulator of the times-33 xor mix
HASH_SEED = 5381

_MASK_32 = 0xFFFFFFFF


def quantize_centroid(geom: BaseGeometry) -> Tuple[int, int]:
    """Centroid of geom as quantised (lng, lat) integers."""
    centroid = geom.centroid
    return round(centroid.x * CENTROID_PRECISION), round(centroid.y * CENTROID_PRECISION)


def mix_quantized(q_lng: int, q_lat: int) -> int:
    """Order-sensitive 32-bit mix of two quantised coordinates."""
    h = HASH_SEED
    for q in (q_lng, q_lat):
        h = (((h << 5) + h) ^ (q & _MASK_32)) & _MASK_32
    return h


def cell_id(geom: BaseGeometry) -> int:
    """Stable non-negative integer id for a (possibly clipped) cell polygon."""
    q_lng, q_lat = quantize_centroid(geom)
    return mix_quantized(q_lng, q_lat)
