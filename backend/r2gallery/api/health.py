"""
Health check endpoint.
Verifies the object store is reachable with the configured credentials.
"""
from fastapi import APIRouter, Depends, HTTPException

from r2gallery.api.dependencies import get_gallery_service
from r2gallery.services.gallery_service import GalleryService
from r2gallery.storage.base import StorageError

router = APIRouter()


@router.get("/health")
async def health_check(service: GalleryService = Depends(get_gallery_service)):
    """
    Health check endpoint.
    Returns status of the object store connection.
    """
    health_status = {
        "status": "healthy",
        "storage": "unknown"
    }

    try:
        await service.check_storage()
        health_status["storage"] = "connected"
    except StorageError:
        health_status["storage"] = "unreachable"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
