"""
Tracked entity mixin.

Columns shared by every model whose position is monitored: the current
location snapshot, the running distance total and the presence flags.
"""

from sqlalchemy import Column, String, Float, Boolean, DateTime, Enum

from backend.app.models.enums import LocationType


class TrackedEntityMixin:
    """
    Current-location snapshot and tracking state.
    
    The snapshot is null until the first location update and always mirrors
    the most recently recorded LocationPoint.
    """
    entity_type = None  # EntityType, set by concrete models
    
    # Snapshot (currentLocation)
    current_latitude = Column(Float, nullable=True)
    current_longitude = Column(Float, nullable=True)
    current_location_name = Column(String(500), nullable=True)
    current_location_type = Column(Enum(LocationType), nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)
    
    # Running total in kilometers over recorded points
    total_distance = Column(Float, default=0.0, nullable=False)
    
    # Presence
    is_online = Column(Boolean, default=False, nullable=False)
    is_tracking = Column(Boolean, default=False, nullable=False)
    
    @property
    def has_location(self) -> bool:
        return self.current_latitude is not None and self.current_longitude is not None
    
    @property
    def current_location(self):
        """Snapshot as a dict, or None before the first update."""
        if not self.has_location:
            return None
        return {
            "latitude": self.current_latitude,
            "longitude": self.current_longitude,
            "location_name": self.current_location_name,
            "location_type": self.current_location_type,
            "last_updated": self.location_updated_at,
        }
