"""
QR code schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from backend.app.models.enums import EntityType
from backend.app.schemas.location import LocationPointResponse


class QRGenerateRequest(BaseModel):
    count: int = Field(..., ge=1, le=100, description="Number of codes to generate (1-100)")


class QRGenerateResponse(BaseModel):
    message: str
    codes: List[str]


class QRLookupLocation(BaseModel):
    latitude: float
    longitude: float
    location_name: Optional[str]


class QRLookupResponse(BaseModel):
    """Public scan result."""
    qr_number: str
    entity_type: EntityType
    scanned_by: str
    location: Optional[QRLookupLocation]
    timestamp: Optional[datetime]
    status: str  # active / inactive


class QRLocationUpdateResponse(BaseModel):
    """Response after a scan-driven location update."""
    message: str
    qr_code: str
    entity_type: EntityType
    recorded: bool
    latitude: Optional[float]
    longitude: Optional[float]
    location_name: Optional[str]
    last_updated: Optional[datetime]
    total_distance: float
    location_history: List[LocationPointResponse]


class QRHistoryResponse(BaseModel):
    qr_code: str
    entity_type: EntityType
    location_history: List[LocationPointResponse]


class QRFixNamesResponse(BaseModel):
    message: str
    updated: int
    location_history: List[LocationPointResponse]
