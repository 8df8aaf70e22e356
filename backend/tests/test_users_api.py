"""
User registration and profile access.
"""

import pytest

from backend.app.models.user import User


@pytest.mark.asyncio
async def test_register_issues_unique_code(client, fetch):
    response = await client.post("/v1/users/register", json={
        "name": "Carol",
        "email": "carol@test.com",
        "phone": "+15550001",
    })
    
    assert response.status_code == 201
    data = response.json()
    assert data["role"] == "user"
    assert len(data["unique_code"]) == 16
    assert data["unique_code"].isalnum() and data["unique_code"].upper() == data["unique_code"]
    assert data["total_distance"] == 0.0
    assert data["is_online"] is False
    
    stored = await fetch(User, data["id"])
    assert stored.unique_code == data["unique_code"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client, user):
    response = await client.post("/v1/users/register", json={"name": "Alice 2", "email": user.email})
    
    assert response.status_code == 400
    assert response.json()["message"] == "Email already registered"


@pytest.mark.asyncio
async def test_register_duplicate_phone(client):
    first = await client.post("/v1/users/register", json={
        "name": "Dan", "email": "dan@test.com", "phone": "555-1234"
    })
    assert first.status_code == 201
    
    response = await client.post("/v1/users/register", json={
        "name": "Erin", "email": "erin@test.com", "phone": "555-1234"
    })
    
    assert response.status_code == 400
    assert response.json()["message"] == "Phone already registered"


@pytest.mark.asyncio
async def test_register_rejects_bad_email(client):
    response = await client.post("/v1/users/register", json={"name": "X", "email": "not-an-email"})
    
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_get_own_profile(client, user, auth_headers):
    response = await client.get(f"/v1/users/{user.id}", headers=auth_headers(user))
    
    assert response.status_code == 200
    assert response.json()["email"] == user.email


@pytest.mark.asyncio
async def test_cannot_read_other_profile(client, user, other_user, auth_headers):
    response = await client.get(f"/v1/users/{other_user.id}", headers=auth_headers(user))
    
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"


@pytest.mark.asyncio
async def test_admin_reads_any_profile(client, user, admin, auth_headers):
    response = await client.get(f"/v1/users/{user.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    
    response = await client.get("/v1/users/9999", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_profile_requires_token(client, user):
    response = await client.get(f"/v1/users/{user.id}")
    assert response.status_code in (401, 403)
    
    response = await client.get(f"/v1/users/{user.id}", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
