"""
Pydantic models for water infrastructure assets.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field

from hydrowatch.models.base import CamelModel, Location


class WaterServiceType(str, Enum):
    TREATMENT = "treatment"
    DISTRIBUTION = "distribution"
    COLLECTION = "collection"


class WaterServiceStatus(str, Enum):
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class WaterServiceCreate(CamelModel):
    """Body for creating or replacing a water service (admin only)."""
    name: str = Field(..., min_length=1, max_length=200)
    location: Location
    type: WaterServiceType
    description: Optional[str] = Field(None, max_length=2000)
    capacity: float = Field(..., ge=0, description="Design capacity, same unit as current usage")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Plant1",
                "location": {"lat": 10, "lng": 10},
                "type": "distribution",
                "capacity": 100,
            }
        }
    )


class WaterServiceStatusUpdate(CamelModel):
    status: WaterServiceStatus
    current_usage: Optional[float] = Field(None, ge=0)


class MaintenanceLogRequest(CamelModel):
    description: str = Field(..., min_length=1, max_length=1000)
    date: Optional[datetime] = Field(None, description="When the work was done (defaults to now)")
    next_maintenance: Optional[datetime] = Field(None, description="Defaults to 30 days after date")


class MaintenanceEntry(CamelModel):
    date: datetime
    description: str
    performed_by: Optional[str] = None


class WaterServiceSummary(CamelModel):
    """Display-friendly expansion of a water service reference."""
    id: str
    name: Optional[str] = None
    type: Optional[str] = None


class WaterServiceResponse(CamelModel):
    id: str
    name: str
    location: Location
    type: WaterServiceType
    description: Optional[str] = None
    capacity: float
    current_usage: float = 0
    status: WaterServiceStatus = WaterServiceStatus.OPERATIONAL
    last_maintenance: Optional[datetime] = None
    next_maintenance: Optional[datetime] = None
    maintenance_history: List[MaintenanceEntry] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Derived on read, never stored
    usage_percentage: Optional[float] = None
    needs_maintenance: bool = False


class WaterServiceStatusResponse(CamelModel):
    status: WaterServiceStatus
    last_maintenance: Optional[datetime] = None
    next_maintenance: Optional[datetime] = None
    capacity: float
    current_usage: float
    usage_percentage: Optional[float] = None
    needs_maintenance: bool = False


class NearbyWaterService(WaterServiceResponse):
    distance_meters: float
