"""
Device database model.

A device is a secondary QR-coded trackable owned by a user.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from backend.app.db.session import Base, utcnow
from backend.app.models.enums import EntityType
from backend.app.models.tracked_entity import TrackedEntityMixin


class Device(TrackedEntityMixin, Base):
    """
    Device model.
    
    Identified by the 16-digit QR code printed on it.
    """
    __tablename__ = "devices"
    
    entity_type = EntityType.DEVICE
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    qr_code = Column(String(32), unique=True, index=True, nullable=False)
    
    # Ownership
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    
    is_active = Column(Boolean, default=True, nullable=False)
    
    version = Column(Integer, nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<Device(id={self.id}, qr_code='{self.qr_code}', user_id={self.user_id})>"
