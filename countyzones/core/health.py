"""
@file health.py
@brief Component probes behind the /health endpoints

@details
Three components are probed:
- database: coverage storage; losing it puts the service in maintenance
- cache: shared Redis grid tier; optional, grids are rebuilt per worker
- dataset: county reference geometry; reported, never loaded, by the probe

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from countyzones.core.cache import cache
from countyzones.db.database import SessionLocal
from countyzones.geo.geometry_index import GeometryIndex

logger = logging.getLogger(__name__)


class HealthStatus:
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


## @brief Overall status -> sentence shown to operators
STATUS_MESSAGES = {
    HealthStatus.HEALTHY: "System is operational",
    HealthStatus.DEGRADED: "System is running with reduced functionality",
    HealthStatus.UNHEALTHY: "System is in maintenance mode (coverage storage unavailable)",
}


def _report(component: str, status: str, message: str, error: Optional[Exception] = None) -> Dict[str, Any]:
    report = {"status": status, "message": message, "component": component}
    if error is not None:
        report["error"] = str(error)
    return report


async def check_database() -> Dict[str, Any]:
    """
    @brief Round-trip a trivial query through a fresh session
    """
    session = SessionLocal()
    try:
        session.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"Coverage database probe failed: {e}")
        return _report("database", HealthStatus.UNHEALTHY, "Coverage database is unavailable", e)
    except Exception as e:
        logger.error(f"Coverage database probe raised unexpectedly: {e}")
        return _report("database", HealthStatus.DEGRADED, "Database health check encountered an error", e)
    finally:
        session.close()
    return _report("database", HealthStatus.HEALTHY, "Coverage database is healthy")


async def check_cache() -> Dict[str, Any]:
    if cache.client is None:
        return _report("cache", HealthStatus.DEGRADED, "Redis cache is not connected (grids are built per worker)")
    try:
        await cache.client.ping()
    except Exception as e:
        logger.warning(f"Redis probe failed: {e}")
        return _report("cache", HealthStatus.DEGRADED, "Redis cache is unavailable (running in degraded mode)", e)
    return _report("cache", HealthStatus.HEALTHY, "Redis cache is healthy")


def check_dataset(index: Optional[GeometryIndex]) -> Dict[str, Any]:
    """Loaded or not; a pending or failed load reports degraded."""
    if index is not None and index.loaded:
        return _report("dataset", HealthStatus.HEALTHY, f"County dataset loaded ({len(index)} counties)")
    return _report("dataset", HealthStatus.DEGRADED, "County dataset is not loaded yet")


def get_status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, "Unknown status")


async def get_system_health(index: Optional[GeometryIndex] = None) -> Dict[str, Any]:
    """
    @brief Probe every component and fold them into one status

    @details
    Database down is UNHEALTHY. Any other non-healthy component is DEGRADED.
    """
    components = {
        "database": await check_database(),
        "cache": await check_cache(),
        "dataset": check_dataset(index),
    }

    statuses = {c["status"] for c in components.values()}
    if components["database"]["status"] == HealthStatus.UNHEALTHY:
        overall = HealthStatus.UNHEALTHY
    elif statuses == {HealthStatus.HEALTHY}:
        overall = HealthStatus.HEALTHY
    else:
        overall = HealthStatus.DEGRADED

    return {"status": overall, "components": components, "message": get_status_message(overall)}
