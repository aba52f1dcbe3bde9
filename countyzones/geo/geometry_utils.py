"""
Shapely helpers shared by the county index and the grid builder.

Architectural Overview:
    Responsibility: Normalise arbitrary shapely output into polygon parts and
        convert GeoJSON-order (lng, lat) coordinates into the (lat, lng) order
        map renderers expect.
    Key Interactions:
        - geometry_index uses polygon_parts() to repair loaded counties
        - hexgrid uses polygon_parts() and latlng_rings() on clip results
"""

import logging
from typing import List, Optional, Tuple

import shapely
from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon, box
from shapely.geometry.base import BaseGeometry

logger = logging.getLogger(__name__)

## @brief World rectangle used for the editor mask (deliberately past +-180/90)
WORLD_BOX = box(-200.0, -95.0, 200.0, 95.0)

BoundsTuple = Tuple[float, float, float, float]


def polygon_parts(geom: Optional[BaseGeometry]) -> List[Polygon]:
    """
    Flatten a geometry into its non-empty polygon parts.

    Lines and points (e.g. from a clip that only touches an edge) are
    discarded; GeometryCollections are walked recursively.
    """
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, MultiPolygon):
        return [p for p in geom.geoms if not p.is_empty]
    if isinstance(geom, GeometryCollection):
        parts = []
        for sub in geom.geoms:
            parts.extend(polygon_parts(sub))
        return parts
    return []


def repair_polygonal(geom: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Return a valid Polygon/MultiPolygon for geom, or None if nothing polygonal remains.
    """
    if geom is None or geom.is_empty:
        return None
    if not geom.is_valid:
        geom = shapely.make_valid(geom)
    parts = polygon_parts(geom)
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return MultiPolygon(parts)


def latlng_rings(poly: Polygon) -> Tuple[Tuple[Tuple[float, float], ...], ...]:
    """Exterior ring then interior rings, each as (lat, lng) tuples."""
    rings = [poly.exterior] + list(poly.interiors)
    return tuple(tuple((float(y), float(x)) for x, y in ring.coords) for ring in rings)


def bounds_of(geom: Optional[BaseGeometry]) -> Optional[BoundsTuple]:
    """(south, west, north, east) of a geometry, or None when empty."""
    if geom is None or geom.is_empty:
        return None
    west, south, east, north = geom.bounds
    return (south, west, north, east)


def outside_mask(geom: BaseGeometry):
    """
    Rings covering everything outside geom, one ring list per polygon part.

    Used to shade the map outside the county being edited.
    Returns None when the difference cannot be computed.
    """
    try:
        mask = WORLD_BOX.difference(geom)
    except GEOSException as e:
        logger.debug(f"Mask difference failed: {e}")
        return None
    parts = polygon_parts(mask)
    if not parts:
        return None
    return [latlng_rings(p) for p in parts]
