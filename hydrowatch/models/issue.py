"""
Pydantic models for citizen-reported issues.
These models handle validation for issue submission, lifecycle updates and responses.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from hydrowatch.models.base import CamelModel, Location, UserSummary
from hydrowatch.models.water_service import WaterServiceSummary


class IssueCategory(str, Enum):
    LEAK = "leak"
    WATER_QUALITY = "water_quality"
    PRESSURE = "pressure"
    OTHER = "other"


class IssuePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IssueStatus(str, Enum):
    """
    Issue lifecycle:
    reported → assigned → in_progress → resolved → closed
    """
    REPORTED = "reported"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


def _strip_required(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


class IssueCreate(CamelModel):
    """
    Model for creating a new issue.
    The reporter is never taken from the body; it comes from the bearer token.
    """
    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=5000)
    category: IssueCategory = Field(..., validation_alias=AliasChoices("category", "type"))
    priority: IssuePriority = IssuePriority.MEDIUM
    location: Location

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Burst main on Elm St",
                "description": "Water pooling across the road since this morning.",
                "category": "leak",
                "priority": "high",
                "location": {"lat": 10.001, "lng": 10.001},
            }
        },
    )

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        return _strip_required(v, "Title")

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str) -> str:
        return _strip_required(v, "Description")


class IssueStatusUpdate(CamelModel):
    status: IssueStatus
    resolution_description: Optional[str] = Field(None, max_length=2000)


class IssueAssignRequest(CamelModel):
    assigned_to: str = Field(..., min_length=1, description="User ID of the assignee")


class CommentCreate(CamelModel):
    text: str = Field(..., max_length=1000)

    @field_validator("text")
    @classmethod
    def text_required(cls, v: str) -> str:
        return _strip_required(v, "Comment text")


class Photo(CamelModel):
    url: str
    caption: str = ""
    uploaded_at: Optional[datetime] = None


class Comment(CamelModel):
    text: str
    author: Optional[Union[UserSummary, str]] = None
    created_at: Optional[datetime] = None


class Resolution(CamelModel):
    description: Optional[str] = None
    resolved_by: Optional[Union[UserSummary, str]] = None
    resolved_at: Optional[datetime] = None


class StatusHistoryEntry(CamelModel):
    from_status: Optional[str] = None
    to_status: str
    changed_by: Optional[str] = None
    timestamp: Optional[datetime] = None
    note: Optional[str] = None


class IssueResponse(CamelModel):
    """
    What the API returns for an issue.
    Reference fields are ids, or summaries when the read expands them.
    """
    id: str = Field(..., description="Firestore document ID")
    title: str
    description: str
    category: IssueCategory
    priority: IssuePriority
    status: IssueStatus
    location: Location
    reported_by: Union[UserSummary, str]
    assigned_to: Optional[Union[UserSummary, str]] = None
    water_service: Optional[Union[WaterServiceSummary, str]] = None
    photos: List[Photo] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    resolution: Optional[Resolution] = None
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
