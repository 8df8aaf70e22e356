"""
Device schemas.
"""

from pydantic import BaseModel, Field, AliasChoices
from datetime import datetime
from typing import Optional

from backend.app.schemas.location import CurrentLocationResponse


class DeviceAdd(BaseModel):
    """Schema for claiming a device by its printed QR code."""
    qr_code: str = Field(
        ...,
        pattern=r"^\d{16}$",
        validation_alias=AliasChoices("qr_code", "qrCode"),
        description="16-digit QR code printed on the device",
    )


class DeviceResponse(BaseModel):
    id: int
    qr_code: str
    user_id: int
    is_active: bool
    total_distance: float
    is_online: bool
    is_tracking: bool
    current_location: Optional[CurrentLocationResponse] = None
    created_at: datetime
    
    class Config:
        from_attributes = True
