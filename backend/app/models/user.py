"""
User database model.

A user is a tracked entity identified publicly by a 16-character unique code.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from backend.app.db.session import Base, utcnow
from backend.app.models.enums import UserRole, EntityType
from backend.app.models.tracked_entity import TrackedEntityMixin


class User(TrackedEntityMixin, Base):
    """
    User model.
    
    Credentials live with the external authentication service; this model
    carries identity, role, unique code and tracking state.
    """
    __tablename__ = "users"
    
    entity_type = EntityType.USER
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), unique=True, nullable=True)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False)
    
    # Public identifier printed in the user's QR code
    unique_code = Column(String(32), unique=True, index=True, nullable=False)
    
    # Optimistic concurrency counter for location updates
    version = Column(Integer, nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
