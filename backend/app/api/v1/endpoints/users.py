"""
User API endpoints.

Registration (identity + unique code) and profile lookup.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
import logging

from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.user import UserRegister, UserResponse
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import NotFoundError
from backend.app.core.guards import OwnershipGuard
from backend.app.services.code_generator import user_code_generator

router = APIRouter(prefix="/users", tags=["Users"])
ownership_guard = OwnershipGuard()
logger = logging.getLogger("tracker.users")


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user and issue their unique code.
    
    The code is 16 characters from A-Z0-9 and is what the user's QR code
    encodes.
    """
    conditions = [User.email == user_data.email]
    if user_data.phone:
        conditions.append(User.phone == user_data.phone)
    existing = (await db.execute(select(User).where(or_(*conditions)))).scalars().first()
    
    if existing:
        detail = "Email already registered" if existing.email == user_data.email else "Phone already registered"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    
    unique_code = await user_code_generator(db).generate()
    
    user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone,
        role=UserRole.USER,
        unique_code=unique_code,
    )
    db.add(user)
    await db.commit()
    
    logger.info("Registered user %s with code %s", user.id, unique_code)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a user profile (self or admin)."""
    ownership_guard.enforce(user_id, current_user, "user")
    
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)
    
    return UserResponse.model_validate(user)
