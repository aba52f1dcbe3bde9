"""
@file health.py
@brief Probe endpoints for load balancers and orchestrators
@details
/health answers 200 while degraded (no Redis, dataset pending) and 503
only in maintenance. /health/ready insists on every component being healthy.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from countyzones.api.routes import get_index
from countyzones.core.health import HealthStatus, get_system_health
from countyzones.geo.geometry_index import GeometryIndex

router = APIRouter(prefix="/health", tags=["Health"])

## @brief Extra note attached while coverage storage is down
MAINTENANCE_NOTE = "System is in maintenance mode. Saved coverage cannot be read or written."


@router.get("")
async def health_check(index: GeometryIndex = Depends(get_index)):
    health = await get_system_health(index)
    if health["status"] != HealthStatus.UNHEALTHY:
        return health
    return JSONResponse(status_code=503, content={**health, "note": MAINTENANCE_NOTE})


@router.get("/ready")
async def readiness_check(index: GeometryIndex = Depends(get_index)):
    """
    @brief 200 only when database, cache and dataset are all healthy
    """
    health = await get_system_health(index)
    ready = health["status"] == HealthStatus.HEALTHY
    body = {"ready": ready, "status": "System is ready" if ready else "System is not ready"}
    if ready:
        return body
    body["reason"] = health["message"]
    return JSONResponse(status_code=503, content=body)


@router.get("/live")
async def liveness_check():
    return {"alive": True, "status": "Application is running"}
