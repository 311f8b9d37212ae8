"""
Pydantic base models for request/response validation.

DESIGN PRINCIPLE:
- Models reflect data structure, not business logic
- Stored documents use snake_case; the JSON API speaks camelCase
- Request bodies accept either spelling
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(CamelModel):
    """A geographic point. Also accepts latitude/longitude as input keys."""

    lat: float = Field(
        ..., ge=-90, le=90,
        validation_alias=AliasChoices("lat", "latitude"),
        description="Latitude in decimal degrees",
    )
    lng: float = Field(
        ..., ge=-180, le=180,
        validation_alias=AliasChoices("lng", "longitude"),
        description="Longitude in decimal degrees",
    )


class UserSummary(CamelModel):
    """Display-friendly expansion of a user reference."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class MessageResponse(CamelModel):
    message: str
