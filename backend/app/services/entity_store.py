"""
Entity store helpers.

Resolve tracked entities (users and devices) by id or by printed code.
"""

from typing import List, Type, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import NotFoundError
from backend.app.models.device import Device
from backend.app.models.enums import EntityType
from backend.app.models.user import User

TrackedEntity = Union[User, Device]

MODEL_BY_TYPE = {
    EntityType.USER: User,
    EntityType.DEVICE: Device,
}


def model_for(entity_type: EntityType) -> Type[TrackedEntity]:
    return MODEL_BY_TYPE[EntityType(entity_type)]


async def get_entity(db: AsyncSession, entity_type: EntityType, entity_id: int) -> TrackedEntity:
    """
    Load a tracked entity with fresh state from the database.
    
    Raises:
        NotFoundError: no such user/device
    """
    model = model_for(entity_type)
    result = await db.execute(
        select(model)
        .where(model.id == entity_id)
        .execution_options(populate_existing=True)
    )
    entity = result.scalar_one_or_none()
    if entity is None:
        raise NotFoundError(model.__name__, entity_id)
    return entity


async def resolve_code(db: AsyncSession, code: str) -> TrackedEntity:
    """
    Resolve a scanned code to a device first, then to a user by unique code.
    
    Raises:
        NotFoundError: the code matches neither
    """
    device = (await db.execute(select(Device).where(Device.qr_code == code))).scalar_one_or_none()
    if device is not None:
        return device
    
    user = (await db.execute(select(User).where(User.unique_code == code))).scalar_one_or_none()
    if user is not None:
        return user
    
    raise NotFoundError("QR code", code)


async def list_located(db: AsyncSession, entity_type: EntityType) -> List[TrackedEntity]:
    """All entities of a kind that have a current location."""
    model = model_for(entity_type)
    result = await db.execute(
        select(model).where(
            model.current_latitude.is_not(None),
            model.current_longitude.is_not(None),
        ).order_by(model.id)
    )
    return list(result.scalars().all())
