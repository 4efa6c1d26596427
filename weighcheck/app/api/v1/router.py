"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from weighcheck.app.api.v1.endpoints import (
    entries, evidence, location, geocode, scanner,
    earnings, leaderboard, settings, admin
)

router = APIRouter()

# Entry capture
router.include_router(entries.router)
router.include_router(evidence.router)
router.include_router(scanner.router)

# Location
router.include_router(location.router)
router.include_router(geocode.router)

# Compensation
router.include_router(earnings.router)
router.include_router(leaderboard.router)
router.include_router(settings.router)

# Admin
router.include_router(admin.router)
