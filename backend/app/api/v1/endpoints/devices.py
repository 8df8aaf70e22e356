"""
Device API Endpoints.

Users claim QR-coded devices and report their positions.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from typing import List, Optional
import logging

from backend.app.db.session import get_db, utcnow
from backend.app.models.device import Device
from backend.app.models.generated_qr_code import GeneratedQRCode
from backend.app.models.enums import EntityType, ADMIN_ROLES
from backend.app.schemas.device import DeviceAdd, DeviceResponse
from backend.app.schemas.location import (
    LocationUpdateRequest, LocationUpdateResponse, LocationPointResponse,
    TrackedEntityLocationResponse, CurrentLocationResponse, OfflineResponse,
    present_history, present_update
)
from backend.app.core.dependencies import get_current_user, get_location_ledger
from backend.app.core.guards import require_role, OwnershipGuard
from backend.app.domain.location.ledger import LocationLedger
from backend.app.domain.location.policies import ALWAYS_APPEND
from backend.app.domain.location.sample import LocationSample
from backend.app.services.entity_store import get_entity, list_located

router = APIRouter(prefix="/devices", tags=["Devices"])
ownership_guard = OwnershipGuard()
logger = logging.getLogger("tracker.devices")


async def _get_owned_device(db: AsyncSession, device_id: int, current_user: dict) -> Device:
    device = await get_entity(db, EntityType.DEVICE, device_id)
    ownership_guard.enforce(device.user_id, current_user, "device")
    return device


@router.post("/add", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def add_device(
    device_data: DeviceAdd,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Claim a device by its QR code.
    
    Codes from a generated batch must be unused and are marked used by
    the caller.
    """
    user_id = current_user["user_id"]
    
    existing = (await db.execute(
        select(Device).where(Device.qr_code == device_data.qr_code)
    )).scalar_one_or_none()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Device with this QR code is already registered"
        )
    
    generated = (await db.execute(
        select(GeneratedQRCode).where(GeneratedQRCode.qr_code == device_data.qr_code)
    )).scalar_one_or_none()
    if generated:
        if generated.is_used:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="QR code has already been used"
            )
        generated.is_used = True
        generated.used_by = user_id
        generated.used_at = utcnow()
    
    device = Device(qr_code=device_data.qr_code, user_id=user_id)
    db.add(device)
    await db.commit()
    
    logger.info("User %s registered device %s", user_id, device.qr_code)
    return DeviceResponse.model_validate(device)


@router.get("", response_model=List[DeviceResponse])
async def get_user_devices(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List the caller's devices."""
    result = await db.execute(
        select(Device).where(Device.user_id == current_user["user_id"]).order_by(Device.id)
    )
    return [DeviceResponse.model_validate(device) for device in result.scalars().all()]


@router.get("/all-locations", response_model=List[TrackedEntityLocationResponse])
async def get_all_devices_with_locations(
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """All devices that have a current location (admin only)."""
    devices = await list_located(db, EntityType.DEVICE)
    return [
        TrackedEntityLocationResponse(
            id=device.id,
            label=device.qr_code,
            current_location=CurrentLocationResponse(**device.current_location),
            total_distance=device.total_distance,
            is_online=device.is_online,
            is_tracking=device.is_tracking,
        )
        for device in devices
    ]


@router.put("/{device_id}/location", response_model=LocationUpdateResponse)
async def update_device_location(
    payload: LocationUpdateRequest,
    device_id: int = Path(..., description="Device ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """Record a location ping for a device (owner or admin)."""
    await _get_owned_device(db, device_id, current_user)
    
    sample = LocationSample.build(**payload.model_dump())
    result = await ledger.record_location_update(EntityType.DEVICE, device_id, sample, ALWAYS_APPEND)
    
    return present_update(result, "Device location updated successfully")


@router.put("/{device_id}/offline", response_model=OfflineResponse)
async def mark_device_offline(
    device_id: int = Path(..., description="Device ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """Mark a device offline and stop tracking."""
    await _get_owned_device(db, device_id, current_user)
    
    device = await ledger.mark_offline(EntityType.DEVICE, device_id)
    return OfflineResponse(
        message="Device marked as offline",
        is_online=device.is_online,
        is_tracking=device.is_tracking,
    )


@router.get("/{device_id}/history", response_model=List[LocationPointResponse])
async def get_device_location_history(
    device_id: int = Path(..., description="Device ID"),
    limit: Optional[int] = Query(None, ge=1, le=10000),
    since: Optional[datetime] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """Location history for a device, oldest first."""
    await _get_owned_device(db, device_id, current_user)
    
    points = await ledger.get_history(
        EntityType.DEVICE, device_id, since=since, start=start, end=end, limit=limit
    )
    return present_history(points)
