"""
QR Code API Endpoints.

Batch generation, public scan lookup and scan-driven location updates for
whatever entity a code belongs to (device first, then user).
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging

from backend.app.db.session import get_db
from backend.app.models.device import Device
from backend.app.models.generated_qr_code import GeneratedQRCode
from backend.app.models.user import User
from backend.app.models.enums import EntityType, ADMIN_ROLES
from backend.app.schemas.location import LocationUpdateRequest, present_history, FUTURE_PLACEHOLDER
from backend.app.schemas.qr_code import (
    QRGenerateRequest, QRGenerateResponse, QRLookupResponse, QRLookupLocation,
    QRLocationUpdateResponse, QRHistoryResponse, QRFixNamesResponse
)
from backend.app.core.dependencies import get_location_ledger
from backend.app.core.guards import require_role
from backend.app.domain.location.ledger import LocationLedger
from backend.app.domain.location.policies import APPEND_IF_MOVED
from backend.app.domain.location.sample import LocationSample
from backend.app.services.code_generator import qr_code_generator
from backend.app.services.entity_store import resolve_code

router = APIRouter(prefix="/qrcodes", tags=["QR Codes"])
logger = logging.getLogger("tracker.qrcodes")


def _code_of(entity) -> str:
    return entity.qr_code if isinstance(entity, Device) else entity.unique_code


@router.post("/generate", response_model=QRGenerateResponse)
async def generate_codes(
    request: QRGenerateRequest,
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Generate and store a batch of 16-digit QR codes (admin only)."""
    codes = await qr_code_generator(db).generate_batch(request.count)
    
    db.add_all([
        GeneratedQRCode(qr_code=code, generated_by=current_user["user_id"])
        for code in codes
    ])
    await db.commit()
    
    logger.info("Admin %s generated %d QR codes", current_user["user_id"], len(codes))
    return QRGenerateResponse(
        message=f"{len(codes)} QR codes generated successfully.",
        codes=codes,
    )


@router.post("/{qr_code}", response_model=QRLookupResponse)
async def lookup_qr_code(
    qr_code: str = Path(..., description="Device QR code or user unique code"),
    db: AsyncSession = Depends(get_db)
):
    """Public scan lookup: owner, last known location and status."""
    entity = await resolve_code(db, qr_code)
    
    if isinstance(entity, Device):
        owner = (await db.execute(select(User).where(User.id == entity.user_id))).scalar_one_or_none()
        scanned_by = owner.name if owner else "Unknown"
    else:
        scanned_by = entity.name
    
    location = None
    if entity.has_location:
        location = QRLookupLocation(
            latitude=entity.current_latitude,
            longitude=entity.current_longitude,
            location_name=entity.current_location_name,
        )
    
    return QRLookupResponse(
        qr_number=_code_of(entity),
        entity_type=entity.entity_type,
        scanned_by=scanned_by,
        location=location,
        timestamp=entity.location_updated_at or entity.created_at,
        status="active" if entity.is_online else "inactive",
    )


@router.post("/{qr_code}/location", response_model=QRLocationUpdateResponse)
async def update_qr_location(
    payload: LocationUpdateRequest,
    qr_code: str = Path(..., description="Device QR code or user unique code"),
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """
    Record a scan location for the entity behind a code (admin only).
    
    Missing place names are reverse geocoded. A scan at exactly the last
    recorded coordinates changes nothing. The response carries the full
    history oldest first, with unnamed points labelled for display.
    """
    sample = LocationSample.build(**payload.model_dump())
    entity = await resolve_code(db, qr_code)
    
    result = await ledger.record_location_update(entity.entity_type, entity.id, sample, APPEND_IF_MOVED)
    entity = result.entity
    history = await ledger.get_history(entity.entity_type, entity.id)
    
    label = "Device" if entity.entity_type == EntityType.DEVICE else "User"
    return QRLocationUpdateResponse(
        message=f"{label} location updated" if result.recorded else f"{label} location unchanged",
        qr_code=_code_of(entity),
        entity_type=entity.entity_type,
        recorded=result.recorded,
        latitude=entity.current_latitude,
        longitude=entity.current_longitude,
        location_name=entity.current_location_name,
        last_updated=entity.location_updated_at,
        total_distance=entity.total_distance,
        location_history=present_history(history, placeholder=FUTURE_PLACEHOLDER),
    )


@router.get("/{qr_code}/history", response_model=QRHistoryResponse)
async def get_qr_history(
    qr_code: str = Path(..., description="Device QR code or user unique code"),
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """Full location history for the entity behind a code (admin only)."""
    entity = await resolve_code(db, qr_code)
    history = await ledger.get_history(entity.entity_type, entity.id)
    
    return QRHistoryResponse(
        qr_code=_code_of(entity),
        entity_type=entity.entity_type,
        location_history=present_history(history),
    )


@router.put("/{qr_code}/fix-location-names", response_model=QRFixNamesResponse)
async def fix_location_names(
    qr_code: str = Path(..., description="Device QR code or user unique code"),
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """Reverse geocode history points that have no place name (admin only)."""
    entity = await resolve_code(db, qr_code)
    updated = await ledger.backfill_location_names(entity.entity_type, entity.id)
    history = await ledger.get_history(entity.entity_type, entity.id)
    
    label = "Device" if entity.entity_type == EntityType.DEVICE else "User"
    return QRFixNamesResponse(
        message=f"{label} location names fixed",
        updated=updated,
        location_history=present_history(history),
    )
