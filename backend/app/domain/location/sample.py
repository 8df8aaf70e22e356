"""
Incoming location sample and its validation.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from backend.app.core.exceptions import ValidationError
from backend.app.models.enums import LocationType


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite_float(value: Any, message: str, field: str) -> float:
    """Convert a JSON number to float; huge integers and nan/inf are rejected."""
    try:
        converted = float(value)
    except OverflowError:
        raise ValidationError(message, details={"field": field})
    if not math.isfinite(converted):
        raise ValidationError(message, details={"field": field})
    return converted


def _optional_float(value: Any, field: str) -> Optional[float]:
    if value is None:
        return None
    if not _is_number(value):
        raise ValidationError(f"{field} must be a finite number", details={"field": field})
    return _finite_float(value, f"{field} must be a finite number", field)


def normalize_location_name(name: Optional[str]) -> Optional[str]:
    """Blank names are stored as null, never as an empty string."""
    if name is None:
        return None
    name = name.strip()
    return name or None


@dataclass(frozen=True)
class LocationSample:
    """A validated raw location reading for one tracked entity."""
    latitude: float
    longitude: float
    location_name: Optional[str] = None
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    is_tracking: Optional[bool] = None
    location_type: Optional[LocationType] = None

    @classmethod
    def build(
        cls,
        latitude: Any,
        longitude: Any,
        location_name: Optional[str] = None,
        accuracy: Any = None,
        speed: Any = None,
        heading: Any = None,
        is_tracking: Optional[bool] = None,
        location_type: Optional[LocationType] = None,
    ) -> "LocationSample":
        """
        Validate raw inputs and build a sample.
        
        Raises:
            ValidationError: latitude/longitude missing, non-numeric, non-finite
                or out of range; optional metrics non-numeric
        """
        if latitude is None or longitude is None:
            raise ValidationError()
        if not _is_number(latitude) or not _is_number(longitude):
            raise ValidationError("latitude and longitude must be numbers")
        latitude = _finite_float(latitude, "latitude and longitude must be finite", "latitude")
        longitude = _finite_float(longitude, "latitude and longitude must be finite", "longitude")
        if not -90 <= latitude <= 90:
            raise ValidationError("latitude must be between -90 and 90", details={"latitude": latitude})
        if not -180 <= longitude <= 180:
            raise ValidationError("longitude must be between -180 and 180", details={"longitude": longitude})
        
        return cls(
            latitude=latitude,
            longitude=longitude,
            location_name=normalize_location_name(location_name),
            accuracy=_optional_float(accuracy, "accuracy"),
            speed=_optional_float(speed, "speed"),
            heading=_optional_float(heading, "heading"),
            is_tracking=is_tracking,
            location_type=location_type,
        )

    def resolved_location_type(self) -> LocationType:
        """Explicit type wins; otherwise a caller-supplied name means manual."""
        if self.location_type is not None:
            return self.location_type
        return LocationType.MANUAL if self.location_name else LocationType.GPS
