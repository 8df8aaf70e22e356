"""
User Location API Endpoints.

Users report their position; admins watch the live overview and histories.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.models.enums import EntityType, ADMIN_ROLES
from backend.app.schemas.location import (
    LocationUpdateRequest, LocationUpdateResponse, LocationPointResponse,
    TrackedEntityLocationResponse, CurrentLocationResponse, OfflineResponse,
    present_history, present_update
)
from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_user, get_location_ledger
from backend.app.core.guards import require_role, OwnershipGuard
from backend.app.domain.location.ledger import LocationLedger
from backend.app.domain.location.policies import ALWAYS_APPEND
from backend.app.domain.location.sample import LocationSample
from backend.app.services.entity_store import list_located

router = APIRouter(prefix="/locations", tags=["Locations"])
ownership_guard = OwnershipGuard()


@router.get("/users", response_model=List[TrackedEntityLocationResponse])
async def get_all_user_locations(
    current_user: dict = Depends(require_role(ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """All users that have a current location (admin only)."""
    users = await list_located(db, EntityType.USER)
    return [
        TrackedEntityLocationResponse(
            id=user.id,
            label=user.name,
            current_location=CurrentLocationResponse(**user.current_location),
            total_distance=user.total_distance,
            is_online=user.is_online,
            is_tracking=user.is_tracking,
        )
        for user in users
    ]


@router.get("/history/{user_id}", response_model=List[LocationPointResponse])
async def get_user_location_history(
    user_id: int = Path(..., description="User ID"),
    limit: Optional[int] = Query(None, ge=1, le=10000),
    since: Optional[datetime] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """
    Location history for a user, oldest first.
    
    Without any date bounds the most recent `limit` points are returned
    (default 100).
    """
    ownership_guard.enforce(user_id, current_user, "user")
    
    if limit is None and since is None and start is None and end is None:
        limit = settings.default_history_limit
    
    points = await ledger.get_history(
        EntityType.USER, user_id, since=since, start=start, end=end, limit=limit
    )
    return present_history(points)


@router.put("/{user_id}", response_model=LocationUpdateResponse)
async def update_location(
    payload: LocationUpdateRequest,
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(get_current_user),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """
    Record a location ping for a user.
    
    Every ping is appended to history; distance from the previous
    snapshot is added to the running total.
    """
    ownership_guard.enforce(user_id, current_user, "user")
    
    sample = LocationSample.build(**payload.model_dump())
    result = await ledger.record_location_update(EntityType.USER, user_id, sample, ALWAYS_APPEND)
    
    return present_update(result, "Location updated successfully")


@router.put("/{user_id}/offline", response_model=OfflineResponse)
async def mark_user_offline(
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(get_current_user),
    ledger: LocationLedger = Depends(get_location_ledger)
):
    """Mark a user offline and stop tracking."""
    ownership_guard.enforce(user_id, current_user, "user")
    
    user = await ledger.mark_offline(EntityType.USER, user_id)
    return OfflineResponse(
        message="User marked as offline",
        is_online=user.is_online,
        is_tracking=user.is_tracking,
    )
