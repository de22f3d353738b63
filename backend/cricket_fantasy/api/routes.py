"""API route definitions - Read-only consumer endpoints."""

from fastapi import APIRouter

from cricket_fantasy.api.fixtures import router as fixtures_router
from cricket_fantasy.api.leaderboard import router as leaderboard_router

router = APIRouter()

router.include_router(leaderboard_router)
router.include_router(fixtures_router)
