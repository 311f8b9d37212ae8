"""Map routes - marker data and public configuration for the browser map."""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from hydrowatch.core.settings import settings
from hydrowatch.models.issue import IssueStatus
from hydrowatch.services.map_service import get_issue_markers, get_water_service_markers
from hydrowatch.utils.concurrency import run_sync
from hydrowatch.utils.security import get_current_user

logger = logging.getLogger(__name__)


class MapMarker(BaseModel):
    id: str
    title: str
    kind: str
    status: str
    lat: float
    lng: float


class MapConfig(BaseModel):
    googleMapsApiKey: Optional[str] = None


router = APIRouter(prefix="/api/map", tags=["Map"])


@router.get("/config", response_model=MapConfig)
async def map_config():
    """Public key the browser client needs to load the map."""
    return MapConfig(googleMapsApiKey=settings.GOOGLE_MAPS_API_KEY)


@router.get("/water-services", response_model=List[MapMarker])
async def map_water_services():
    try:
        return await run_sync(get_water_service_markers)
    except Exception as e:
        logger.error(f"Failed to get water service markers: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.get("/issues", response_model=List[MapMarker])
async def map_issues(
    issue_status: Optional[IssueStatus] = Query(None, alias="status"),
    user: Dict = Depends(get_current_user),
):
    try:
        return await run_sync(get_issue_markers, issue_status.value if issue_status else None)
    except Exception as e:
        logger.error(f"Failed to get issue markers: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")
