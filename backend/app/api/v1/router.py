"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import users, locations, devices, qr_codes

router = APIRouter()

# User registration and profiles
router.include_router(users.router)

# User location tracking
router.include_router(locations.router)

# Devices and their tracking
router.include_router(devices.router)

# QR batches and scan-driven updates
router.include_router(qr_codes.router)
