"""
FastAPI dependencies.
Services are built once in create_app() and stored on app.state.
"""
from fastapi import Request

from r2gallery.config import Settings
from r2gallery.services.gallery_service import GalleryService


def get_gallery_service(request: Request) -> GalleryService:
    """Shared GalleryService for the running app."""
    return request.app.state.gallery_service


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings
