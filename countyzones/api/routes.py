"""
@file routes.py
@brief FastAPI endpoint definitions for the coverage editor backend

@details
Provides RESTful endpoints for:
- County lookup by GEO_ID (name, FIPS, bounds for map fitting)
- Editor mask (the world shaded outside one county)
- Hex grid construction for a county
- FIPS / GEO_ID conversion
- Per-profile persisted coverage (operating counties)

Grids are served from Redis when available, then from the in-process
GridCache, and otherwise built incrementally on the event loop.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see geo.geometry_index for the county dataset
@see geo.scheduler for incremental grid construction
@see services.coverage_store for persistence
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from countyzones.core import config
from countyzones.core.cache import cache, grid_cache_key
from countyzones.core.exceptions import DatasetUnavailableError
from countyzones.db.database import get_db
from countyzones.geo.fips import fips_from_geo_id, geo_id_from_fips, state_fips_from_fips
from countyzones.geo.geometry_index import GeometryIndex
from countyzones.geo.hexgrid import HexGridBuilder
from countyzones.geo.scheduler import GridBuildCoordinator, IncrementalScheduler
from countyzones.geo.types import CountyFeature
from countyzones.services.coverage_store import CoverageRepository

## @brief FastAPI router instance for API endpoints
router = APIRouter()

## @brief Module-level logger for request/response debugging
logger = logging.getLogger(__name__)

## @brief Process-wide county index, created on first use
_index: Optional[GeometryIndex] = None

## @brief Process-wide grid scheduler sharing the default GridCache
_scheduler: Optional[IncrementalScheduler] = None

## @brief Grid builds in flight, keyed like their Redis entries; concurrent requests share one
_pending_grids: Dict[str, "asyncio.Future[Dict[str, Any]]"] = {}


def get_index() -> GeometryIndex:
    """
    @brief FastAPI dependency returning the shared county index
    @details The index is not loaded here; see get_loaded_index().
    """
    global _index
    if _index is None:
        _index = GeometryIndex(config.COUNTY_DATASET_URL)
    return _index


def get_scheduler() -> IncrementalScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = IncrementalScheduler(builder=HexGridBuilder(batch_size=config.GRID_BATCH_SIZE))
    return _scheduler


async def get_loaded_index(index: GeometryIndex = Depends(get_index)) -> GeometryIndex:
    """
    @brief FastAPI dependency returning the county index after loading it

    @throws DatasetUnavailableError if the dataset cannot be read (mapped to 503)
    """
    try:
        await index.load()
    except Exception as e:
        raise DatasetUnavailableError(str(e)) from e
    return index


def _require_county(index: GeometryIndex, geo_id: str) -> CountyFeature:
    feature = index.get(geo_id)
    if feature is None:
        raise HTTPException(status_code=404, detail=f"Unknown county: {geo_id}")
    return feature


class CoverageUpdate(BaseModel):
    """Request body for replacing a profile's operating counties."""

    fips: List[str] = Field(default_factory=list, max_length=config.MAX_OPERATING_COUNTIES)


# --------------------------------------------------------------------------
# Counties
# --------------------------------------------------------------------------

@router.get("/counties/{geo_id}")
async def get_county(geo_id: str, index: GeometryIndex = Depends(get_loaded_index)):
    """
    @brief Describe one county of the reference dataset

    @param geo_id Census GEO_ID (e.g. 0500000US12057)
    @return GEO_ID, NAME, STATE, COUNTY, FIPS and bounds
    @throws HTTPException(404) for unknown GEO_IDs
    """
    feature = _require_county(index, geo_id)
    return {
        "GEO_ID": feature.geo_id,
        "NAME": feature.name,
        "STATE": feature.state,
        "COUNTY": feature.county,
        "FIPS": feature.fips,
        "bounds": index.bounds(geo_id),
    }


@router.get("/counties/{geo_id}/bounds")
async def get_county_bounds(geo_id: str, index: GeometryIndex = Depends(get_loaded_index)):
    """
    @brief Bounding box used to fit the map to a county
    @return {"geo_id", "bounds": [south, west, north, east]}
    """
    _require_county(index, geo_id)
    return {"geo_id": geo_id, "bounds": index.bounds(geo_id)}


@router.get("/counties/{geo_id}/mask")
async def get_county_mask(geo_id: str, index: GeometryIndex = Depends(get_loaded_index)):
    """
    @brief Rings shading everything outside the county while it is edited

    @details Geometry failures yield an empty ring list rather than an error.
    """
    _require_county(index, geo_id)
    return {"geo_id": geo_id, "rings": index.editor_mask(geo_id) or []}


@router.get("/counties/{geo_id}/grid")
async def get_county_grid(
    geo_id: str,
    grid_size: int = Query(config.DEFAULT_GRID_SIZE, ge=1, le=256),
    clip_edges: bool = Query(config.DEFAULT_CLIP_EDGES),
    index: GeometryIndex = Depends(get_loaded_index),
    scheduler: IncrementalScheduler = Depends(get_scheduler),
):
    """
    @brief Build (or fetch) the hex grid for a county

    @details
    Lookup order:
    1. Redis (shared across workers, TTL GRID_CACHE_TTL)
    2. A build already in flight for the same key (awaited, not repeated)
    3. In-process GridCache (hit bypasses the scheduler)
    4. Incremental build, yielding to the event loop between batches

    @param grid_size Resolution knob; larger means smaller cells
    @param clip_edges Clip boundary cells to the county outline
    @return {"geo_id", "grid_size", "clip_edges", "cells": [{"id", "rings"}]}
    @throws HTTPException(404) for unknown GEO_IDs
    """
    feature = _require_county(index, geo_id)

    cache_key = grid_cache_key(geo_id, grid_size, clip_edges)
    cached = await cache.get(cache_key)
    if cached:
        logger.info(f"Returning cached grid for {cache_key}")
        return cached

    pending = _pending_grids.get(cache_key)
    if pending is None:
        pending = asyncio.ensure_future(_build_grid(feature, grid_size, clip_edges, scheduler, cache_key))
        _pending_grids[cache_key] = pending
        pending.add_done_callback(lambda done: _forget_pending(cache_key, done))
    else:
        logger.debug(f"Joining in-flight grid build {cache_key}")
    # Cancelling one waiter leaves the shared build running
    return await asyncio.shield(pending)


def _forget_pending(cache_key: str, done: "asyncio.Future") -> None:
    if _pending_grids.get(cache_key) is done:
        del _pending_grids[cache_key]


async def _build_grid(
    feature: CountyFeature,
    grid_size: int,
    clip_edges: bool,
    scheduler: IncrementalScheduler,
    cache_key: str,
) -> Dict[str, Any]:
    coordinator = GridBuildCoordinator(scheduler=scheduler)
    coordinator.request(feature, grid_size, clip_edges)
    try:
        cells = await coordinator.wait()
    finally:
        coordinator.close()

    result = {
        "geo_id": feature.geo_id,
        "grid_size": grid_size,
        "clip_edges": clip_edges,
        "cells": [cell.to_dict() for cell in cells],
    }
    await cache.set(cache_key, result, ttl=config.GRID_CACHE_TTL)
    return result


# --------------------------------------------------------------------------
# FIPS conversion
# --------------------------------------------------------------------------

@router.get("/fips/{fips}")
async def convert_fips(fips: str):
    """
    @brief Convert a 5-digit FIPS code to its GEO_ID
    @throws HTTPException(422) for malformed codes
    """
    geo_id = geo_id_from_fips(fips)
    if geo_id is None:
        raise HTTPException(status_code=422, detail=f"Not a 5-digit FIPS code: {fips}")
    return {"fips": fips, "geo_id": geo_id, "state_fips": state_fips_from_fips(fips)}


@router.get("/geo-ids/{geo_id}/fips")
async def convert_geo_id(geo_id: str):
    """
    @brief Convert a county GEO_ID to its FIPS code
    @throws HTTPException(422) for malformed GEO_IDs
    """
    fips = fips_from_geo_id(geo_id)
    if fips is None:
        raise HTTPException(status_code=422, detail=f"Not a county GEO_ID: {geo_id}")
    return {"geo_id": geo_id, "fips": fips}


# --------------------------------------------------------------------------
# Persisted coverage
# --------------------------------------------------------------------------

async def _coverage_response(profile_id: str, fips: List[str], index: GeometryIndex):
    """Attach county records to a FIPS list; a dataset failure leaves them out."""
    counties = []
    try:
        await index.load()
        counties = [c.to_dict() for c in index.counties_for_fips(fips)]
    except Exception as e:
        logger.warning(f"Coverage for {profile_id} returned without county records: {e}")
    return {"profile_id": profile_id, "fips": fips, "counties": counties}


@router.get("/profiles/{profile_id}/coverage")
async def get_coverage(
    profile_id: str,
    db: Session = Depends(get_db),
    index: GeometryIndex = Depends(get_index),
):
    """
    @brief Persisted operating counties for a profile

    @return {"profile_id", "fips": [...], "counties": [SelectedCounty, ...]}
    """
    fips = CoverageRepository(db).get_fips(profile_id)
    return await _coverage_response(profile_id, fips, index)


@router.put("/profiles/{profile_id}/coverage")
async def set_coverage(
    profile_id: str,
    body: CoverageUpdate,
    db: Session = Depends(get_db),
    index: GeometryIndex = Depends(get_index),
):
    """
    @brief Replace a profile's operating counties

    @details
    The list is normalised (5-digit codes only, first occurrence wins) and
    stored atomically. More than MAX_OPERATING_COUNTIES entries is a 422.
    """
    fips = CoverageRepository(db).set_fips(profile_id, body.fips)
    return await _coverage_response(profile_id, fips, index)
