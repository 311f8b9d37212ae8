"""
Water service registry endpoints.

Reads are public. Create, update, delete, status changes and maintenance
logging require an administrator.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from hydrowatch.core.errors import AppError, NotFoundError
from hydrowatch.core.settings import settings
from hydrowatch.models.base import MessageResponse
from hydrowatch.models.water_service import (
    MaintenanceLogRequest,
    NearbyWaterService,
    WaterServiceCreate,
    WaterServiceResponse,
    WaterServiceStatusResponse,
    WaterServiceStatusUpdate,
)
from hydrowatch.services.water_service_registry import get_water_service_registry
from hydrowatch.utils.concurrency import run_sync
from hydrowatch.utils.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/water-services", tags=["Water Services"])


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


async def _require_service(service_id: str) -> Dict:
    service = await run_sync(get_water_service_registry().get_service, service_id)
    if not service:
        raise NotFoundError("Water service not found")
    return service


@router.get("", response_model=List[WaterServiceResponse])
async def list_water_services():
    try:
        return await run_sync(get_water_service_registry().list_services)
    except Exception as e:
        raise _server_error("list water services", e)


# Declared before /{service_id} so "nearby" is not taken for an id
@router.get("/nearby", response_model=List[NearbyWaterService])
async def nearby_water_services(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, description="Search radius in metres"),
):
    """Services within radius metres of (lat, lng), closest first."""
    radius = radius or settings.NEAREST_SERVICE_RADIUS_METERS
    try:
        return await run_sync(get_water_service_registry().find_nearby, lat, lng, radius)
    except Exception as e:
        raise _server_error("search nearby water services", e)


@router.get("/{service_id}", response_model=WaterServiceResponse)
async def get_water_service(service_id: str):
    return await _require_service(service_id)


@router.post("", response_model=WaterServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_water_service(request: WaterServiceCreate, admin: Dict = Depends(require_admin)):
    try:
        return await run_sync(get_water_service_registry().create_service, request.model_dump(mode="json"))
    except AppError:
        raise
    except Exception as e:
        raise _server_error("create water service", e)


@router.put("/{service_id}", response_model=WaterServiceResponse)
async def update_water_service(
    service_id: str,
    request: WaterServiceCreate,
    admin: Dict = Depends(require_admin),
):
    try:
        return await run_sync(
            get_water_service_registry().update_service, service_id, request.model_dump(mode="json")
        )
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"update water service {service_id}", e)


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_water_service(service_id: str, admin: Dict = Depends(require_admin)):
    try:
        await run_sync(get_water_service_registry().delete_service, service_id)
        return MessageResponse(message="Water service deleted successfully")
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"delete water service {service_id}", e)


@router.get("/{service_id}/status", response_model=WaterServiceStatusResponse)
async def get_water_service_status(service_id: str):
    return await _require_service(service_id)


@router.patch("/{service_id}/status", response_model=WaterServiceResponse)
async def update_water_service_status(
    service_id: str,
    request: WaterServiceStatusUpdate,
    admin: Dict = Depends(require_admin),
):
    """
    Set operational status and, optionally, current usage.
    Usage above capacity is accepted.
    """
    try:
        return await run_sync(
            get_water_service_registry().update_status,
            service_id,
            request.status.value,
            request.current_usage,
        )
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"update status of water service {service_id}", e)


@router.post("/{service_id}/maintenance", response_model=WaterServiceResponse)
async def log_maintenance(
    service_id: str,
    request: MaintenanceLogRequest,
    admin: Dict = Depends(require_admin),
):
    try:
        return await run_sync(
            get_water_service_registry().log_maintenance,
            service_id,
            request.description,
            admin["id"],
            request.date,
            request.next_maintenance,
        )
    except AppError:
        raise
    except Exception as e:
        raise _server_error(f"log maintenance on water service {service_id}", e)
