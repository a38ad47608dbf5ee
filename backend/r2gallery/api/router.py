"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter

from r2gallery.api import files, health, pages

api_router = APIRouter()

# Paths are served from the root, the gallery page calls them directly
api_router.include_router(pages.router, tags=["pages"])
api_router.include_router(files.router, tags=["files"])
api_router.include_router(health.router, tags=["health"])
