"""Main API router aggregator."""

from fastapi import APIRouter

from preview_engine.api import files, server, sessions, tools

# Create main router with API version prefix
api_router = APIRouter(prefix="/api/v1")

# Include all sub-routers
api_router.include_router(server.router)
api_router.include_router(sessions.router)
api_router.include_router(files.router)
api_router.include_router(tools.router)
