"""
Enumerations shared by the tracking models.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        USER: Registered user tracking themselves and their devices (default role)
        ADMIN: Views live maps and location histories, manages QR batches
        SUPERADMIN: Admin with full system access
    """
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


ADMIN_ROLES = [UserRole.ADMIN, UserRole.SUPERADMIN]


class LocationType(str, enum.Enum):
    """How a location sample was obtained."""
    MANUAL = "manual"
    GPS = "gps"


class EntityType(str, enum.Enum):
    """Kinds of tracked entity owning a location history."""
    USER = "user"
    DEVICE = "device"
