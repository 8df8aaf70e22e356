"""
Location update policies.

A policy decides whether an incoming sample becomes a history point and
whether a missing place name is looked up. Distance is accumulated the same
way under every policy: only recorded points count.
"""

from dataclasses import dataclass
from typing import Optional

from backend.app.models.location_point import LocationPoint


@dataclass(frozen=True)
class UpdatePolicy:
    name: str
    append_when_unmoved: bool
    reverse_geocode: bool

    def should_record(self, last_point: Optional[LocationPoint], latitude: float, longitude: float) -> bool:
        if self.append_when_unmoved or last_point is None:
            return True
        # Exact comparison: any coordinate change counts as movement
        return (last_point.latitude, last_point.longitude) != (latitude, longitude)


# Direct user/device pings: every sample is recorded
ALWAYS_APPEND = UpdatePolicy(name="always_append", append_when_unmoved=True, reverse_geocode=False)

# QR scans: repeated scans at the same spot are ignored, names are geocoded
APPEND_IF_MOVED = UpdatePolicy(name="append_if_moved", append_when_unmoved=False, reverse_geocode=True)
