"""
Public site routes: the portfolio page and the gallery API it loads from.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from typing import List
import logging

from photoflow.backend import BackendClient
from photoflow.dependencies import get_public_client
from photoflow.errors import BackendError
from photoflow.schemas import PhotoPublicResponse
from photoflow.services.photo_service import list_photos
from photoflow.templating import templates
from photoflow.utils.view_cache import GALLERY_VIEW, view_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def portfolio_page(request: Request):
    """
    Render the portfolio page (hero, #gallery, #about).
    The gallery grid is fetched from /api/photos once the page loads.
    """
    return templates.TemplateResponse(request, "index.html", {"gallery_url": "/api/photos"})


@router.get("/api/photos", response_model=List[PhotoPublicResponse], tags=["gallery"])
async def get_gallery_photos(client: BackendClient = Depends(get_public_client)):
    """
    Photos for the public gallery, ordered by display_order.
    Records without a usable http(s) src are never returned.

    Raises:
        503 with an error body if the backend query fails
    """
    async def load():
        photos = await list_photos(client, scope="public")
        return [PhotoPublicResponse.model_validate(photo) for photo in photos]

    try:
        photos = await view_cache.get_or_load(GALLERY_VIEW, load)
    except BackendError as e:
        logger.error(f"Failed to retrieve gallery photos: {str(e)}", exc_info=e.original is not None)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "Failed to retrieve photos",
                "detail": "The gallery is temporarily unavailable. Please try again."
            }
        )

    logger.info(f"Serving {len(photos)} gallery photos")
    return photos
