"""
County Reference Dataset Index

This module loads the static county-polygon dataset (a GeoJSON
FeatureCollection with GEO_ID, STATE, COUNTY and NAME properties) once per
session and answers lookups by GEO_ID or FIPS.

Loading Workflow:
1. Fetch the dataset (http(s) via requests, local files via geopandas)
2. Repair invalid polygons with shapely.make_valid
3. Skip features without GEO_ID or polygonal geometry
4. Index by GEO_ID and by 5-digit FIPS

The read runs in a worker thread so the event loop is never blocked.
Concurrent callers share one in-flight load. A failed load is not cached;
the next call retries.

Author: CountyZones Project
License: AGPL-3.0
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import geopandas as gpd
import pandas as pd
import requests

from countyzones.geo.fips import normalize_fips_list
from countyzones.geo.geometry_utils import BoundsTuple, bounds_of, outside_mask, repair_polygonal
from countyzones.geo.types import CountyFeature, SelectedCounty

logger = logging.getLogger(__name__)

DatasetSource = Union[str, Path, dict]

## @brief HTTP session for dataset downloads
_session = None


def get_session() -> requests.Session:
    """Get or create HTTP session for dataset downloads."""
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({'User-Agent': 'CountyZones County Dataset Loader'})
    return _session


def read_county_frame(source: DatasetSource) -> gpd.GeoDataFrame:
    """
    Read the county dataset into a GeoDataFrame (blocking).

    Args:
        source: http(s) URL, local GeoJSON path, or an in-memory FeatureCollection

    Returns:
        gpd.GeoDataFrame in EPSG:4326

    Raises:
        requests.RequestException: download failed
        ValueError / OSError: payload could not be parsed or read
    """
    if isinstance(source, dict):
        frame = gpd.GeoDataFrame.from_features(source.get("features", []), crs="EPSG:4326")
    elif str(source).startswith(("http://", "https://")):
        logger.info(f"Downloading county dataset: {source}")
        response = get_session().get(str(source), timeout=60)
        response.raise_for_status()
        payload = response.json()
        frame = gpd.GeoDataFrame.from_features(payload.get("features", []), crs="EPSG:4326")
    else:
        logger.info(f"Reading county dataset: {source}")
        frame = gpd.read_file(source)

    if frame.crs is not None and frame.crs != "EPSG:4326":
        logger.info(f"  → Reprojecting from {frame.crs} to EPSG:4326")
        frame = frame.to_crs("EPSG:4326")
    return frame


def build_county_records(frame: gpd.GeoDataFrame) -> List[CountyFeature]:
    """Turn dataset rows into CountyFeature records, skipping unusable rows."""
    records = []
    skipped = 0
    for row in frame.itertuples(index=False):
        geo_id = getattr(row, "GEO_ID", None)
        geometry = repair_polygonal(getattr(row, "geometry", None))
        if geo_id is None or pd.isna(geo_id) or not str(geo_id).strip() or geometry is None:
            skipped += 1
            continue
        records.append(CountyFeature(
            geo_id=str(geo_id),
            state=str(getattr(row, "STATE", "") or ""),
            county=str(getattr(row, "COUNTY", "") or ""),
            name=str(getattr(row, "NAME", "") or ""),
            geometry=geometry,
        ))
    if skipped:
        logger.warning(f"  → Skipped {skipped} county features without GEO_ID or polygon geometry")
    return records


class GeometryIndex:
    """
    Session-scoped index over the county reference dataset.

    Lookups before a successful load() return None; they never raise.
    """

    def __init__(self, source: DatasetSource):
        self.source = source
        self._by_geo_id: Dict[str, CountyFeature] = {}
        self._by_fips: Dict[str, CountyFeature] = {}
        self._loaded = False
        self._load_task: Optional[asyncio.Task] = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._by_geo_id)

    async def load(self) -> "GeometryIndex":
        """
        Load the dataset once; later calls return immediately.

        Raises whatever the read raised so callers can decide to fail open.
        """
        if self._loaded:
            return self
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())
        task = self._load_task
        try:
            await asyncio.shield(task)
        except Exception:
            if self._load_task is task:
                self._load_task = None
            raise
        return self

    async def _load(self) -> None:
        frame = await asyncio.to_thread(read_county_frame, self.source)
        records = build_county_records(frame)
        self._index(records)
        logger.info(f"County index ready: {len(self._by_geo_id)} counties")

    def _index(self, records: Iterable[CountyFeature]) -> None:
        by_geo_id = {}
        by_fips = {}
        for record in records:
            by_geo_id[record.geo_id] = record
            fips = record.fips
            if fips:
                by_fips[fips] = record
        self._by_geo_id = by_geo_id
        self._by_fips = by_fips
        self._loaded = True

    def get(self, geo_id: Optional[str]) -> Optional[CountyFeature]:
        if not geo_id:
            return None
        return self._by_geo_id.get(geo_id)

    def get_by_fips(self, fips: Optional[str]) -> Optional[CountyFeature]:
        if not fips:
            return None
        return self._by_fips.get(fips)

    def counties_for_fips(self, fips_list: Iterable[str]) -> List[SelectedCounty]:
        """Map persisted FIPS codes to SelectedCounty entries; unknown codes are dropped."""
        counties = []
        for fips in normalize_fips_list(fips_list):
            feature = self._by_fips.get(fips)
            if feature is not None:
                counties.append(feature.to_selected())
        return counties

    def bounds(self, geo_id: str) -> Optional[BoundsTuple]:
        feature = self.get(geo_id)
        return bounds_of(feature.geometry) if feature else None

    def editor_mask(self, geo_id: str):
        """Rings shading everything outside the county, or None."""
        feature = self.get(geo_id)
        if feature is None:
            return None
        return outside_mask(feature.geometry)
