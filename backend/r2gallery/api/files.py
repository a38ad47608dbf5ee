"""
Upload and listing endpoints.

- POST /upload      - store one multipart file (field "file")
- GET  /list-files  - most recent uploads for the gallery

Client errors are answered with 400 {"error": ...}; store failures
with 500 and a generic message, the detail only goes to the logs.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from r2gallery.api.dependencies import get_gallery_service
from r2gallery.api.upload_stream import FILE_FIELD, UploadStreamReader
from r2gallery.schemas.files import ErrorResponse, FileEntry, UploadResponse
from r2gallery.services.gallery_service import GalleryService
from r2gallery.storage.base import StorageError

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid upload"},
    500: {"model": ErrorResponse, "description": "Object store failure"},
}


UPLOAD_FORM_SCHEMA = {
    "requestBody": {
        "required": True,
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {FILE_FIELD: {"type": "string", "format": "binary"}},
                    "required": [FILE_FIELD],
                }
            }
        },
    }
}


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=UPLOAD_FORM_SCHEMA,
)
async def upload_file(
    request: Request,
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Upload a single image to the object store.

    The body is streamed rather than spooled. Validation order:
    1. Declared Content-Length must be within the limit plus form overhead
    2. Declared content type must be allow-listed (checked when the part headers arrive)
    3. Size must not exceed the configured limit (reading stops past it)
    4. A non-empty file must be present

    Returns the generated key and its public URL.
    """
    incoming = await UploadStreamReader(request, service).read()

    try:
        return await service.upload(incoming)
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="File upload failed"
        )


@router.get("/list-files", response_model=List[FileEntry], responses={500: ERROR_RESPONSES[500]})
async def list_files(
    response: Response,
    service: GalleryService = Depends(get_gallery_service),
):
    """
    Most recently uploaded files, newest first.

    The gallery must always see fresh data, so the response
    disables caching for browsers and intermediaries.
    """
    response.headers.update(NO_CACHE_HEADERS)

    try:
        return await service.list_recent()
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list files",
            headers=NO_CACHE_HEADERS,
        )
