"""
Location point database model.

Append-only history of recorded samples for users and devices.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, Index
from backend.app.db.session import Base
from backend.app.models.enums import EntityType, LocationType


class LocationPoint(Base):
    """
    Location Point model.
    
    One recorded sample in an entity's history. Rows are only ever inserted;
    a null location_name may later be filled by name backfill.
    """
    __tablename__ = "location_points"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Owner (user or device)
    entity_type = Column(Enum(EntityType), nullable=False)
    entity_id = Column(Integer, nullable=False)
    
    # GPS coordinates
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    location_name = Column(String(500), nullable=True)
    location_type = Column(Enum(LocationType), nullable=False, default=LocationType.GPS)
    
    # Descriptive only
    accuracy = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)
    
    recorded_at = Column(DateTime(timezone=True), nullable=False)
    
    __table_args__ = (
        Index('ix_location_points_entity_time', 'entity_type', 'entity_id', 'recorded_at'),
    )
    
    def __repr__(self):
        return f"<LocationPoint({self.entity_type.value}={self.entity_id}, lat={self.latitude}, lng={self.longitude})>"
