"""
Pydantic schemas for API request/response validation.
"""
from r2gallery.schemas.files import (
    ErrorResponse,
    FileEntry,
    IncomingFile,
    StoredObject,
    UploadResponse,
)

__all__ = [
    "ErrorResponse",
    "FileEntry",
    "IncomingFile",
    "StoredObject",
    "UploadResponse",
]
