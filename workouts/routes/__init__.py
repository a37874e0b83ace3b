"""Workout API routes."""

from fastapi import APIRouter

from workouts.routes import sync

# Main router that aggregates all workout-related routes
router = APIRouter()
router.include_router(sync.router, tags=["workouts-import"])

__all__ = ["router", "sync"]
