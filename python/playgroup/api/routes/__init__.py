"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from playgroup.api.routes.admin import router as admin_router
from playgroup.api.routes.albums import router as albums_router
from playgroup.api.routes.community import router as community_router
from playgroup.api.routes.cycles import router as cycles_router
from playgroup.api.routes.health import router as health_router
from playgroup.api.routes.users import router as users_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(cycles_router)
    api_router.include_router(albums_router)
    api_router.include_router(community_router)
    api_router.include_router(users_router)
    api_router.include_router(admin_router)
    return api_router


__all__ = ["create_api_router"]
