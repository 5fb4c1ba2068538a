"""
Main API router for VoicePrep

Aggregates all API routes and provides the main application router.
"""

from fastapi import APIRouter

from voiceprep.api.endpoints import audio, interview

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    interview.router,
    prefix="/interview",
    tags=["Interview"]
)

api_router.include_router(
    audio.router,
    prefix="/audio",
    tags=["Audio"]
)
