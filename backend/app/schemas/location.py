"""
Location tracking schemas.
"""

from pydantic import BaseModel, Field, AliasChoices, StrictInt, StrictFloat
from datetime import datetime
from typing import List, Optional, Union

from backend.app.models.enums import LocationType

# JSON numbers only; strings like "12.5" are rejected
Number = Union[StrictInt, StrictFloat]

# Display label for points recorded without a place name
FUTURE_PLACEHOLDER = "Future"


class LocationUpdateRequest(BaseModel):
    """
    Schema for a location ping.
    
    latitude/longitude are optional at the schema level so that a missing
    value is reported with the ledger's own validation message.
    """
    latitude: Optional[Number] = None
    longitude: Optional[Number] = None
    location_name: Optional[str] = Field(
        None, max_length=500, validation_alias=AliasChoices("location_name", "locationName")
    )
    accuracy: Optional[Number] = None
    speed: Optional[Number] = None
    heading: Optional[Number] = None
    is_tracking: Optional[bool] = Field(None, validation_alias=AliasChoices("is_tracking", "isTracking"))
    location_type: Optional[LocationType] = Field(
        None, validation_alias=AliasChoices("location_type", "locationType")
    )


class CurrentLocationResponse(BaseModel):
    """Current-location snapshot."""
    latitude: float
    longitude: float
    location_name: Optional[str]
    location_type: Optional[LocationType]
    last_updated: Optional[datetime]


class LocationUpdateResponse(BaseModel):
    """Response after a location update."""
    message: str
    recorded: bool
    current_location: Optional[CurrentLocationResponse]
    total_distance: float
    distance_increment: float
    is_online: bool
    is_tracking: bool


class LocationPointResponse(BaseModel):
    """One recorded history point."""
    id: int
    latitude: float
    longitude: float
    location_name: Optional[str]
    location_type: LocationType
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    recorded_at: datetime
    
    class Config:
        from_attributes = True


class TrackedEntityLocationResponse(BaseModel):
    """Entity row on the live overview."""
    id: int
    label: str
    current_location: Optional[CurrentLocationResponse]
    total_distance: float
    is_online: bool
    is_tracking: bool


class OfflineResponse(BaseModel):
    message: str
    is_online: bool
    is_tracking: bool


def present_history(points, placeholder: Optional[str] = None) -> List[LocationPointResponse]:
    """
    Serialize history points, optionally labelling unnamed points.
    
    The placeholder is a display convention only and is never persisted.
    """
    presented = []
    for point in points:
        item = LocationPointResponse.model_validate(point)
        if placeholder is not None and item.location_name is None:
            item = item.model_copy(update={"location_name": placeholder})
        presented.append(item)
    return presented


def present_update(result, message: str) -> LocationUpdateResponse:
    """Build the update response from a LocationUpdateResult."""
    entity = result.entity
    snapshot = entity.current_location
    return LocationUpdateResponse(
        message=message,
        recorded=result.recorded,
        current_location=CurrentLocationResponse(**snapshot) if snapshot else None,
        total_distance=entity.total_distance,
        distance_increment=result.distance_increment,
        is_online=entity.is_online,
        is_tracking=entity.is_tracking,
    )
