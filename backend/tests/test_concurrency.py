"""
Concurrency Tests.

Validates that racing location writers never lose an update.
"""

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from backend.app.core.exceptions import ConcurrentUpdateError, PersistenceError
from backend.app.domain.location.geo import haversine_km
from backend.app.domain.location.ledger import LocationLedger
from backend.app.domain.location.sample import LocationSample
from backend.app.models.enums import EntityType
from backend.app.models.location_point import LocationPoint
from backend.app.models.user import User


async def count_points(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(
            select(func.count(LocationPoint.id)).where(LocationPoint.entity_id == user_id)
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_stale_commit_is_retried(db_session, user, session_factory, mocker):
    """A version conflict on commit re-applies the update once."""
    user_id = user.id
    real_commit = db_session.commit
    attempts = []
    
    async def flaky_commit():
        attempts.append(1)
        if len(attempts) == 1:
            raise StaleDataError("UPDATE statement on table 'users' expected to update 1 row(s)")
        await real_commit()
    
    mocker.patch.object(db_session, "commit", side_effect=flaky_commit)
    ledger = LocationLedger(db_session)
    
    result = await ledger.record_location_update(
        EntityType.USER, user_id, LocationSample.build(10.0, 20.0)
    )
    
    assert result.recorded is True
    assert len(attempts) == 2
    assert await count_points(session_factory, user_id) == 1


@pytest.mark.asyncio
async def test_retries_are_bounded(db_session, user, session_factory, mocker):
    user_id = user.id
    mocker.patch.object(db_session, "commit", side_effect=StaleDataError("conflict"))
    ledger = LocationLedger(db_session, max_attempts=3)
    
    with pytest.raises(ConcurrentUpdateError) as exc_info:
        await ledger.record_location_update(
            EntityType.USER, user_id, LocationSample.build(10.0, 20.0)
        )
    
    assert exc_info.value.status_code == 409
    assert db_session.commit.await_count == 3
    assert await count_points(session_factory, user_id) == 0


@pytest.mark.asyncio
async def test_interleaved_writer_is_not_lost(db_session, user, session_factory, fetch, mocker):
    """
    A second writer commits between our read and our commit.
    
    Our first commit must fail on the version check, and the retry must
    measure distance from the other writer's position.
    """
    user_id = user.id
    real_commit = db_session.commit
    interleaved = []
    
    async def commit_after_rival():
        if not interleaved:
            interleaved.append(1)
            async with session_factory() as rival_session:
                await LocationLedger(rival_session).record_location_update(
                    EntityType.USER, user_id, LocationSample.build(0.0, 0.0)
                )
        await real_commit()
    
    mocker.patch.object(db_session, "commit", side_effect=commit_after_rival)
    ledger = LocationLedger(db_session)
    
    result = await ledger.record_location_update(
        EntityType.USER, user_id, LocationSample.build(0.0, 1.0)
    )
    
    expected = haversine_km(0.0, 0.0, 0.0, 1.0)
    assert result.distance_increment == pytest.approx(expected)
    
    stored = await fetch(User, user_id)
    assert stored.total_distance == pytest.approx(expected)
    assert stored.current_longitude == 1.0
    assert stored.version == 3
    assert await count_points(session_factory, user_id) == 2


@pytest.mark.asyncio
async def test_version_column_detects_conflicts(user, session_factory):
    """Plain ORM writes on a stale row are refused."""
    async with session_factory() as first, session_factory() as second:
        stale = await first.get(User, user.id)
        fresh = await second.get(User, user.id)
        
        fresh.total_distance = 5.0
        await second.commit()
        
        stale.total_distance = 7.0
        with pytest.raises(StaleDataError):
            await first.commit()
        await first.rollback()


@pytest.mark.asyncio
async def test_database_errors_become_persistence_errors(db_session, user, session_factory, mocker):
    user_id = user.id
    mocker.patch.object(
        db_session, "commit",
        side_effect=OperationalError("UPDATE users", {}, Exception("database is locked")),
    )
    ledger = LocationLedger(db_session)
    
    with pytest.raises(PersistenceError):
        await ledger.record_location_update(
            EntityType.USER, user_id, LocationSample.build(10.0, 20.0)
        )
    
    assert db_session.commit.await_count == 1
    assert await count_points(session_factory, user_id) == 0
