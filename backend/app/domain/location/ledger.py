"""
Location Ledger (Domain Logic).

Records location samples for users and devices, keeps the current-location
snapshot and the running distance total in step with the append-only
history, and serves history queries.

Every mutation runs as one transaction per entity. User and Device carry a
version counter; a concurrent writer makes the commit fail with
StaleDataError, the transaction is rolled back and the mutation re-applied
against fresh state.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    ConcurrentUpdateError,
    PersistenceError,
    UpstreamDependencyError,
)
from backend.app.db.session import utcnow
from backend.app.domain.location.geo import haversine_km
from backend.app.domain.location.policies import UpdatePolicy, ALWAYS_APPEND
from backend.app.domain.location.sample import LocationSample
from backend.app.models.enums import EntityType
from backend.app.models.location_point import LocationPoint
from backend.app.services.entity_store import TrackedEntity, get_entity

logger = logging.getLogger("tracker.ledger")

T = TypeVar("T")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive query bounds are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class LocationUpdateResult:
    """Outcome of one location update."""
    entity: TrackedEntity
    recorded: bool
    distance_increment: float
    point: Optional[LocationPoint] = None


class LocationLedger:

    def __init__(self, db: AsyncSession, geocoder=None, max_attempts: int = None):
        self.db = db
        self.geocoder = geocoder
        self.max_attempts = max_attempts or settings.location_update_max_attempts

    async def record_location_update(
        self,
        entity_type: EntityType,
        entity_id: int,
        sample: LocationSample,
        policy: UpdatePolicy = ALWAYS_APPEND,
    ) -> LocationUpdateResult:
        """
        Apply a location sample to a tracked entity.

        Flow:
        1. Ask the policy whether the sample is recorded
        2. Resolve a missing place name for recorded samples (policies that geocode only)
        3. Add the haversine distance from the previous snapshot
        4. Overwrite the snapshot and append the history point
        5. Mark the entity online, update tracking flag if given

        Args:
            entity_type: USER or DEVICE
            entity_id: Entity primary key
            sample: Validated location sample
            policy: Recording policy

        Returns:
            LocationUpdateResult (recorded=False when the policy skipped the sample)

        Raises:
            NotFoundError: entity does not exist (nothing mutated)
            ConcurrentUpdateError: entity kept changing across all attempts
            PersistenceError: store rejected the write
        """
        # Name and type are fixed before the transaction so retries reuse them
        location_type = sample.resolved_location_type()
        location_name = sample.location_name
        if location_name is None and policy.reverse_geocode:
            # Fail fast on unknown entities before calling out
            await get_entity(self.db, entity_type, entity_id)
            last_point = await self._last_point(entity_type, entity_id)
            # Samples the policy will skip need no name
            if policy.should_record(last_point, sample.latitude, sample.longitude):
                location_name = await self._lookup_name(sample.latitude, sample.longitude)

        async def apply() -> LocationUpdateResult:
            entity = await get_entity(self.db, entity_type, entity_id)

            if not policy.append_when_unmoved:
                last_point = await self._last_point(entity_type, entity_id)
                if not policy.should_record(last_point, sample.latitude, sample.longitude):
                    return LocationUpdateResult(entity=entity, recorded=False, distance_increment=0.0)

            distance_increment = 0.0
            if entity.has_location:
                distance_increment = haversine_km(
                    entity.current_latitude,
                    entity.current_longitude,
                    sample.latitude,
                    sample.longitude,
                )

            now = utcnow()
            entity.current_latitude = sample.latitude
            entity.current_longitude = sample.longitude
            entity.current_location_name = location_name
            entity.current_location_type = location_type
            entity.location_updated_at = now
            entity.total_distance = (entity.total_distance or 0.0) + distance_increment
            entity.is_online = True
            if sample.is_tracking is not None:
                entity.is_tracking = sample.is_tracking

            point = LocationPoint(
                entity_type=entity_type,
                entity_id=entity_id,
                latitude=sample.latitude,
                longitude=sample.longitude,
                location_name=location_name,
                location_type=location_type,
                accuracy=sample.accuracy,
                speed=sample.speed,
                heading=sample.heading,
                recorded_at=now,
            )
            self.db.add(point)
            return LocationUpdateResult(
                entity=entity,
                recorded=True,
                distance_increment=distance_increment,
                point=point,
            )

        result = await self._run_atomically(entity_type, entity_id, apply)
        if result.recorded:
            logger.info(
                "Recorded %s %s at (%s, %s), +%.4f km (policy=%s)",
                entity_type.value, entity_id, sample.latitude, sample.longitude,
                result.distance_increment, policy.name,
            )
        else:
            logger.debug("Skipped unmoved sample for %s %s", entity_type.value, entity_id)
        return result

    async def get_history(
        self,
        entity_type: EntityType,
        entity_id: int,
        since: Optional[datetime] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[LocationPoint]:
        """
        Recorded points in ascending time order.

        `since` and `start`/`end` bounds are inclusive. With a limit and no
        bounds the most recent points are kept; with bounds the earliest
        points inside the range are kept.

        Raises:
            NotFoundError: entity does not exist
        """
        since, start, end = (_as_utc(value) for value in (since, start, end))
        await get_entity(self.db, entity_type, entity_id)

        query = select(LocationPoint).where(
            LocationPoint.entity_type == entity_type,
            LocationPoint.entity_id == entity_id,
        )
        bounded = False
        for lower in (since, start):
            if lower is not None:
                query = query.where(LocationPoint.recorded_at >= lower)
                bounded = True
        if end is not None:
            query = query.where(LocationPoint.recorded_at <= end)
            bounded = True

        if limit is not None and not bounded:
            query = query.order_by(LocationPoint.recorded_at.desc(), LocationPoint.id.desc()).limit(limit)
            points = list((await self.db.execute(query)).scalars().all())
            points.reverse()
            return points

        query = query.order_by(LocationPoint.recorded_at.asc(), LocationPoint.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return list((await self.db.execute(query)).scalars().all())

    async def mark_offline(self, entity_type: EntityType, entity_id: int) -> TrackedEntity:
        """Clear online and tracking flags. Location and distance are untouched."""
        async def apply() -> TrackedEntity:
            entity = await get_entity(self.db, entity_type, entity_id)
            if entity.is_online or entity.is_tracking:
                entity.is_online = False
                entity.is_tracking = False
            return entity

        entity = await self._run_atomically(entity_type, entity_id, apply)
        logger.info("Marked %s %s offline", entity_type.value, entity_id)
        return entity

    async def backfill_location_names(self, entity_type: EntityType, entity_id: int) -> int:
        """
        Fill null place names in an entity's history by reverse geocoding.

        Failed lookups leave the name null.

        Returns:
            Number of points that received a name
        """
        await get_entity(self.db, entity_type, entity_id)
        unnamed = (await self.db.execute(
            select(LocationPoint.id, LocationPoint.latitude, LocationPoint.longitude).where(
                LocationPoint.entity_type == entity_type,
                LocationPoint.entity_id == entity_id,
                LocationPoint.location_name.is_(None),
            )
        )).all()

        names: Dict[int, str] = {}
        by_coords: Dict[Tuple[float, float], Optional[str]] = {}
        for point_id, latitude, longitude in unnamed:
            coords = (latitude, longitude)
            if coords not in by_coords:
                by_coords[coords] = await self._lookup_name(latitude, longitude)
            if by_coords[coords]:
                names[point_id] = by_coords[coords]

        if not names:
            return 0

        async def apply() -> int:
            entity = await get_entity(self.db, entity_type, entity_id)
            points = (await self.db.execute(
                select(LocationPoint).where(LocationPoint.id.in_(list(names)))
            )).scalars().all()
            filled = 0
            for point in points:
                if point.location_name is None:
                    point.location_name = names[point.id]
                    filled += 1

            # Keep the snapshot mirroring the latest point
            last_point = await self._last_point(entity_type, entity_id)
            if last_point is not None and last_point.id in names and entity.current_location_name is None:
                entity.current_location_name = names[last_point.id]
            return filled

        filled = await self._run_atomically(entity_type, entity_id, apply)
        logger.info("Backfilled %d location names for %s %s", filled, entity_type.value, entity_id)
        return filled

    async def _last_point(self, entity_type: EntityType, entity_id: int) -> Optional[LocationPoint]:
        result = await self.db.execute(
            select(LocationPoint)
            .where(LocationPoint.entity_type == entity_type, LocationPoint.entity_id == entity_id)
            .order_by(LocationPoint.recorded_at.desc(), LocationPoint.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _lookup_name(self, latitude: float, longitude: float) -> Optional[str]:
        if self.geocoder is None:
            return None
        try:
            return await self.geocoder.reverse(latitude, longitude)
        except UpstreamDependencyError as exc:
            logger.warning("Reverse geocoding (%s, %s) failed, continuing without name: %s",
                           latitude, longitude, exc.message)
            return None

    async def _run_atomically(
        self,
        entity_type: EntityType,
        entity_id: int,
        apply: Callable[[], Awaitable[T]],
    ) -> T:
        """Run `apply` and commit, retrying from scratch on version conflicts."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                outcome = await apply()
                await self.db.commit()
                return outcome
            except StaleDataError:
                await self.db.rollback()
                logger.warning(
                    "Concurrent update on %s %s (attempt %d/%d)",
                    entity_type.value, entity_id, attempt, self.max_attempts,
                )
            except SQLAlchemyError as exc:
                await self.db.rollback()
                logger.error("Persisting %s %s failed: %s", entity_type.value, entity_id, exc)
                raise PersistenceError() from exc
            except Exception:
                await self.db.rollback()
                raise
        raise ConcurrentUpdateError(entity_type.value, entity_id, self.max_attempts)
