"""
Business logic services.
"""
from r2gallery.services.gallery_service import GalleryService, UploadRejected

__all__ = [
    "GalleryService",
    "UploadRejected",
]
