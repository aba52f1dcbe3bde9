"""
Hex Grid Builder

Architectural Overview:
    Responsibility: Cover a county polygon (single or multi-part) with a
        flat-topped hex grid sized from the county width, keep only hexes that
        touch the county, optionally clip them to the boundary, and emit
        GridCell records with stable ids and (lat, lng) rings.
    Key Interactions:
        - cell_identity.cell_id() names every emitted cell
        - scheduler.IncrementalScheduler drives candidates()/process() in batches
        - grid_cache.GridCache stores finished builds
    Sizing:
        hex_size_km = max(bbox_bottom_width_km / grid_size, MIN_HEX_SIZE_KM)
        Larger grid_size means smaller cells; the floor keeps tiny counties
        from producing thousands of micro-cells.

Author: CountyZones Project
License: AGPL-3.0
"""

import logging
import math
from typing import Iterable, List, Optional, Set

import numpy as np
import shapely
from pyproj import Geod
from shapely.errors import GEOSException
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from countyzones.geo.cell_identity import cell_id
from countyzones.geo.geometry_utils import latlng_rings, polygon_parts
from countyzones.geo.types import GridCell

logger = logging.getLogger(__name__)

## @brief Smallest hex edge length, in kilometers
MIN_HEX_SIZE_KM = 3.0

## @brief Hex candidates processed per scheduler slice
DEFAULT_BATCH_SIZE = 200

GEOD = Geod(ellps="WGS84")

_SQRT3 = math.sqrt(3.0)
_ANGLES = np.deg2rad([0, 60, 120, 180, 240, 300, 0])


# ═══════════════════════════════════════════════════════════════════════════
# SIZING
# ═══════════════════════════════════════════════════════════════════════════


def distance_km(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Ellipsoidal distance between two (lng, lat) points in kilometers."""
    _, _, meters = GEOD.inv(lng1, lat1, lng2, lat2)
    return abs(meters) / 1000.0


def hex_size_km(county: BaseGeometry, grid_size: int) -> float:
    """Hex edge length for a county: bottom bbox width / grid_size, floored at 3 km."""
    west, south, east, _ = county.bounds
    width_km = distance_km(west, south, east, south)
    return max(width_km / grid_size, MIN_HEX_SIZE_KM)


def _degrees_per_km(lng: float, lat: float):
    """(deg lng per km, deg lat per km) around a point, measured over one degree."""
    km_per_deg_lng = distance_km(lng - 0.5, lat, lng + 0.5, lat)
    km_per_deg_lat = distance_km(lng, lat - 0.5, lng, lat + 0.5)
    # Guard the poles, where a degree of longitude collapses to zero length
    km_per_deg_lng = max(km_per_deg_lng, 1e-6)
    return 1.0 / km_per_deg_lng, 1.0 / km_per_deg_lat


# ═══════════════════════════════════════════════════════════════════════════
# TILING
# ═══════════════════════════════════════════════════════════════════════════


def hex_tiling(bounds, side_km: float) -> np.ndarray:
    """
    Flat-topped hexagons covering a (west, south, east, north) box.

    The tiling is anchored at the south-west corner and extends one cell past
    every edge, so the box is fully covered even when it is smaller than a
    single hex. Columns are emitted west to east, rows south to north.

    Returns:
        np.ndarray of shapely Polygons
    """
    west, south, east, north = bounds
    center_lng = (west + east) / 2.0
    center_lat = (south + north) / 2.0
    deg_lng_per_km, deg_lat_per_km = _degrees_per_km(center_lng, center_lat)

    rx = side_km * deg_lng_per_km
    ry = side_km * deg_lat_per_km
    dx = 1.5 * rx
    dy = _SQRT3 * ry

    n_cols = int(math.ceil((east - west) / dx)) + 1
    n_rows = int(math.ceil((north - south) / dy)) + 1

    cols = np.arange(-1, n_cols + 1)
    rows = np.arange(-1, n_rows + 1)
    col_idx, row_idx = np.meshgrid(cols, rows, indexing="ij")
    col_idx = col_idx.ravel()
    row_idx = row_idx.ravel()

    cx = west + col_idx * dx
    cy = south + row_idx * dy + np.where(col_idx % 2 == 1, dy / 2.0, 0.0)

    xs = cx[:, None] + rx * np.cos(_ANGLES)[None, :]
    ys = cy[:, None] + ry * np.sin(_ANGLES)[None, :]
    coords = np.stack([xs, ys], axis=-1)
    return shapely.polygons(coords)


# ═══════════════════════════════════════════════════════════════════════════
# CELLS
# ═══════════════════════════════════════════════════════════════════════════


class GridAccumulator:
    """Collects cells for one build, dropping ids already emitted by that build."""

    def __init__(self):
        self.cells: List[GridCell] = []
        self._seen: Set[int] = set()

    def add(self, cells: Iterable[GridCell]) -> None:
        for cell in cells:
            if cell.id in self._seen:
                continue
            self._seen.add(cell.id)
            self.cells.append(cell)

    def __len__(self) -> int:
        return len(self.cells)


class HexGridBuilder:
    """
    Builds GridCell lists for a county polygon.

    The build is split into candidates() (cheap, vectorised) and process()
    (per-hex clipping) so a scheduler can run process() in slices.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE):
        self.batch_size = batch_size

    def candidates(self, county: BaseGeometry, grid_size: int) -> List[Polygon]:
        """Hexes of the tiling that intersect the county, in tiling order."""
        if county is None or county.is_empty or grid_size <= 0:
            return []
        side_km = hex_size_km(county, grid_size)
        hexes = hex_tiling(county.bounds, side_km)
        shapely.prepare(county)
        hits = shapely.intersects(county, hexes)
        selected = list(hexes[hits])
        logger.debug(f"Hex tiling: {len(hexes)} hexes at {side_km:.2f} km, {len(selected)} intersect")
        return selected

    def process(self, hexagon: Polygon, county: BaseGeometry, clip_edges: bool) -> List[GridCell]:
        """
        Turn one candidate hex into zero or more cells.

        With clip_edges the hex is intersected with the county and every
        polygon part becomes its own cell. Zero-area parts and failed
        intersections are skipped.
        """
        if clip_edges:
            try:
                shape = shapely.intersection(hexagon, county)
            except GEOSException as e:
                logger.debug(f"Skipping hex, clip failed: {e}")
                return []
        else:
            shape = hexagon

        cells = []
        for part in polygon_parts(shape):
            if part.area <= 0:
                continue
            cells.append(GridCell(id=cell_id(part), rings=latlng_rings(part), geometry=part))
        return cells

    def process_batch(
        self,
        hexes: Iterable[Polygon],
        county: BaseGeometry,
        clip_edges: bool,
        accumulator: Optional[GridAccumulator] = None,
    ) -> GridAccumulator:
        accumulator = accumulator if accumulator is not None else GridAccumulator()
        for hexagon in hexes:
            accumulator.add(self.process(hexagon, county, clip_edges))
        return accumulator

    def build(self, county: BaseGeometry, grid_size: int, clip_edges: bool) -> List[GridCell]:
        """Blocking full build; the scheduler is the non-blocking path."""
        accumulator = self.process_batch(self.candidates(county, grid_size), county, clip_edges)
        return accumulator.cells
