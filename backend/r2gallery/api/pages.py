"""
Gallery page.
Serves the single HTML page with the upload form and the 3-slot gallery.
"""
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from r2gallery.api.dependencies import get_app_settings, get_gallery_service
from r2gallery.config import Settings
from r2gallery.services.gallery_service import GalleryService, format_size

router = APIRouter()
templates = Jinja2Templates(
    directory=str(Path(__file__).resolve().parents[1] / "templates")
)

# Client-side retry policy for the listing call
LIST_RETRIES = 3
LIST_RETRY_DELAY_MS = 500


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(
    request: Request,
    service: GalleryService = Depends(get_gallery_service),
    settings: Settings = Depends(get_app_settings),
):
    """Render the upload page."""
    allowed = service.allowed_content_types
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "allowed_types": allowed,
            "allowed_extensions": [t.split("/", 1)[-1] for t in allowed],
            "max_size_label": format_size(service.max_upload_bytes),
            "slots": settings.list_limit,
            "list_retries": LIST_RETRIES,
            "list_retry_delay_ms": LIST_RETRY_DELAY_MS,
        },
    )
