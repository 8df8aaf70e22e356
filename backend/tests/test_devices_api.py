"""
Device claiming and device location tracking.
"""

import pytest
from sqlalchemy import select

from backend.app.models.device import Device
from backend.app.models.generated_qr_code import GeneratedQRCode


@pytest.mark.asyncio
async def test_add_device(client, user, auth_headers):
    response = await client.post(
        "/v1/devices/add", json={"qrCode": "9876543210987654"}, headers=auth_headers(user)
    )
    
    assert response.status_code == 201
    data = response.json()
    assert data["qr_code"] == "9876543210987654"
    assert data["user_id"] == user.id
    assert data["is_online"] is False
    assert data["current_location"] is None


@pytest.mark.asyncio
async def test_add_duplicate_device(client, other_user, device, auth_headers):
    response = await client.post(
        "/v1/devices/add", json={"qr_code": device.qr_code}, headers=auth_headers(other_user)
    )
    
    assert response.status_code == 400
    assert response.json()["message"] == "Device with this QR code is already registered"


@pytest.mark.asyncio
@pytest.mark.parametrize("qr_code", ["12345", "abcdefghijklmnop", "12345678901234567"])
async def test_add_device_requires_sixteen_digits(client, user, auth_headers, qr_code):
    response = await client.post("/v1/devices/add", json={"qr_code": qr_code}, headers=auth_headers(user))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_generated_code_is_consumed(client, db_session, user, admin, auth_headers, session_factory):
    db_session.add(GeneratedQRCode(qr_code="1111222233334444", generated_by=admin.id))
    await db_session.commit()
    
    first = await client.post(
        "/v1/devices/add", json={"qr_code": "1111222233334444"}, headers=auth_headers(user)
    )
    assert first.status_code == 201
    
    async with session_factory() as session:
        generated = (await session.execute(
            select(GeneratedQRCode).where(GeneratedQRCode.qr_code == "1111222233334444")
        )).scalar_one()
    assert generated.is_used is True
    assert generated.used_by == user.id
    assert generated.used_at is not None


@pytest.mark.asyncio
async def test_used_generated_code_rejected(client, db_session, user, admin, auth_headers):
    db_session.add(GeneratedQRCode(qr_code="5555666677778888", generated_by=admin.id, is_used=True))
    await db_session.commit()
    
    response = await client.post(
        "/v1/devices/add", json={"qr_code": "5555666677778888"}, headers=auth_headers(user)
    )
    
    assert response.status_code == 400
    assert response.json()["message"] == "QR code has already been used"


@pytest.mark.asyncio
async def test_list_only_own_devices(client, db_session, user, other_user, device, auth_headers):
    db_session.add(Device(qr_code="0000000000000001", user_id=other_user.id))
    await db_session.commit()
    
    response = await client.get("/v1/devices", headers=auth_headers(user))
    
    assert response.status_code == 200
    assert [item["qr_code"] for item in response.json()] == [device.qr_code]


@pytest.mark.asyncio
async def test_device_location_update(client, user, device, auth_headers, fetch):
    headers = auth_headers(user)
    
    await client.put(f"/v1/devices/{device.id}/location", json={"latitude": 0.0, "longitude": 0.0}, headers=headers)
    response = await client.put(
        f"/v1/devices/{device.id}/location", json={"latitude": 0.0, "longitude": 1.0}, headers=headers
    )
    
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Device location updated successfully"
    assert data["total_distance"] == pytest.approx(111.19, abs=0.01)
    
    stored = await fetch(Device, device.id)
    assert stored.is_online is True
    assert stored.current_longitude == 1.0


@pytest.mark.asyncio
async def test_device_update_rejects_missing_coordinates(client, user, device, auth_headers):
    response = await client.put(
        f"/v1/devices/{device.id}/location", json={"longitude": 1.0}, headers=auth_headers(user)
    )
    
    assert response.status_code == 400
    assert response.json()["message"] == "latitude and longitude are required"


@pytest.mark.asyncio
async def test_device_access_is_owner_or_admin(client, user, other_user, admin, device, auth_headers):
    body = {"latitude": 1.0, "longitude": 1.0}
    
    denied = await client.put(f"/v1/devices/{device.id}/location", json=body, headers=auth_headers(other_user))
    assert denied.status_code == 403
    
    allowed = await client.put(f"/v1/devices/{device.id}/location", json=body, headers=auth_headers(admin))
    assert allowed.status_code == 200
    
    history = await client.get(f"/v1/devices/{device.id}/history", headers=auth_headers(other_user))
    assert history.status_code == 403


@pytest.mark.asyncio
async def test_unknown_device(client, admin, auth_headers):
    response = await client.put(
        "/v1/devices/9999/location", json={"latitude": 1.0, "longitude": 1.0}, headers=auth_headers(admin)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_device_offline_and_history(client, user, device, auth_headers):
    headers = auth_headers(user)
    for longitude in (1.0, 2.0, 3.0):
        await client.put(
            f"/v1/devices/{device.id}/location", json={"latitude": 0.0, "longitude": longitude}, headers=headers
        )
    
    offline = await client.put(f"/v1/devices/{device.id}/offline", headers=headers)
    assert offline.json()["is_online"] is False
    
    history = await client.get(f"/v1/devices/{device.id}/history", headers=headers)
    assert [point["longitude"] for point in history.json()] == [1.0, 2.0, 3.0]
    
    latest = await client.get(f"/v1/devices/{device.id}/history", params={"limit": 1}, headers=headers)
    assert [point["longitude"] for point in latest.json()] == [3.0]


@pytest.mark.asyncio
async def test_all_device_locations(client, user, admin, device, auth_headers):
    await client.put(
        f"/v1/devices/{device.id}/location", json={"latitude": 2.0, "longitude": 3.0}, headers=auth_headers(user)
    )
    
    response = await client.get("/v1/devices/all-locations", headers=auth_headers(admin))
    
    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["label"] == device.qr_code
    assert rows[0]["is_online"] is True
    
    denied = await client.get("/v1/devices/all-locations", headers=auth_headers(user))
    assert denied.status_code == 403
