"""
Admin panel routes: login/logout and the photo management page.

Every /admin path except the login page sits behind the route guard
middleware. Form actions redirect back to /admin/photos on success and
re-render the page with inline errors on failure.
"""
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.datastructures import UploadFile
from typing import Optional
import logging
import re

from photoflow.backend import BackendClient
from photoflow.config import settings
from photoflow.dependencies import get_admin_client
from photoflow.errors import BackendError
from photoflow.schemas import ActionState, LoginState
from photoflow.services import photo_service
from photoflow.templating import templates
from photoflow.utils.auth import clear_session_cookie, login, set_session_cookie
from photoflow.utils.rate_limit import RATE_LIMITS, limiter
from photoflow.utils.view_cache import ADMIN_PHOTOS_VIEW, view_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", include_in_schema=False)

NOTICES = {
    "created": "Photo added successfully!",
    "updated": "Photo details updated successfully!",
    "deleted": "Photo deleted successfully!",
    "reordered": "Photo order saved.",
}

_UPDATABLE_FIELDS = ("alt", "description", "display_order")


def _status_for(state) -> int:
    if getattr(state, "server_error", False):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


def _redirect_to_photos(notice: Optional[str] = None) -> RedirectResponse:
    url = "/admin/photos"
    if notice:
        url = f"{url}?notice={notice}"
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("")
async def admin_home():
    return _redirect_to_photos()


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"state": LoginState()})


@router.post("/login", response_class=HTMLResponse)
@limiter.limit(RATE_LIMITS["login"])
async def login_action(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
):
    """
    Check the admin credentials. On success set the session cookie and go to
    the photo page; otherwise re-render the form with the errors.
    """
    state = login(username, password)
    if state.success:
        response = RedirectResponse(url="/admin/photos", status_code=status.HTTP_303_SEE_OTHER)
        set_session_cookie(response, state.token)
        return response

    status_code = status.HTTP_400_BAD_REQUEST if state.errors else status.HTTP_500_INTERNAL_SERVER_ERROR
    return templates.TemplateResponse(
        request,
        "login.html",
        {"state": state, "username": username},
        status_code=status_code,
    )


@router.post("/logout")
async def logout_action():
    response = RedirectResponse(url="/admin/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response


async def _render_photos_page(
    request: Request,
    client: BackendClient,
    state: Optional[ActionState] = None,
    status_code: int = status.HTTP_200_OK,
    notice: Optional[str] = None,
    action: Optional[str] = None,
    photo_id: Optional[str] = None,
):
    """
    Render the photo page. action and photo_id tell the template which form
    the field errors in state belong to.
    """
    list_error = None
    try:
        photos = await view_cache.get_or_load(
            ADMIN_PHOTOS_VIEW,
            lambda: photo_service.list_photos(client, scope="admin"),
        )
    except BackendError as e:
        logger.error(f"Error fetching admin photos: {str(e)}", exc_info=e.original is not None)
        photos = []
        list_error = "Could not load photos. Please try again."
        if status_code == status.HTTP_200_OK:
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return templates.TemplateResponse(
        request,
        "admin/photos.html",
        {
            "photos": photos,
            "state": state,
            "notice": NOTICES.get(notice) if notice else None,
            "list_error": list_error,
            "action": action,
            "error_photo_id": photo_id,
            "source_mode": settings.PHOTO_SOURCE_MODE,
            "max_upload_mb": settings.MAX_UPLOAD_BYTES // (1024 * 1024),
        },
        status_code=status_code,
    )


@router.get("/photos", response_class=HTMLResponse)
async def photos_page(
    request: Request,
    notice: Optional[str] = None,
    client: BackendClient = Depends(get_admin_client),
):
    """List all photos with the create, edit, delete and reorder forms."""
    return await _render_photos_page(request, client, notice=notice)


@router.post("/photos", response_class=HTMLResponse)
async def create_photo_action(request: Request, client: BackendClient = Depends(get_admin_client)):
    """Create a photo from the upload or link form, depending on PHOTO_SOURCE_MODE."""
    form = await request.form()
    data = {
        "alt": form.get("alt"),
        "description": form.get("description"),
        "display_order": form.get("display_order"),
        "src": form.get("src"),
    }
    upload = form.get("file")
    if isinstance(upload, UploadFile) and upload.filename:
        # Size of the spooled part, checked before the bytes are read into memory
        oversized = photo_service.reject_oversized_upload(upload.size)
        if oversized:
            return await _render_photos_page(request, client, oversized, _status_for(oversized), action="create")
        data.update({
            "filename": upload.filename,
            "content_type": upload.content_type,
            "data": await upload.read(),
        })

    state = await photo_service.create_photo(client, data)
    if state.success:
        return _redirect_to_photos("created")
    return await _render_photos_page(request, client, state, _status_for(state), action="create")


@router.post("/photos/reorder", response_class=HTMLResponse)
async def reorder_photos_action(request: Request, client: BackendClient = Depends(get_admin_client)):
    """Accepts repeated "ids" fields or one comma/whitespace separated "ids" value."""
    form = await request.form()
    ids = []
    for value in form.getlist("ids"):
        if isinstance(value, str):
            ids.extend(part for part in re.split(r"[\s,]+", value) if part)

    state = await photo_service.reorder_photos(client, {"ids": ids})
    if state.success:
        return _redirect_to_photos("reordered")
    return await _render_photos_page(request, client, state, _status_for(state), action="reorder")


@router.post("/photos/{photo_id}", response_class=HTMLResponse)
async def update_photo_action(
    request: Request,
    photo_id: str,
    client: BackendClient = Depends(get_admin_client),
):
    """Partial update: only the fields present in the submitted form change."""
    form = await request.form()
    data = {"id": photo_id}
    for field in _UPDATABLE_FIELDS:
        if field in form:
            data[field] = form.get(field)

    state = await photo_service.update_photo(client, data)
    if state.success:
        return _redirect_to_photos("updated")
    return await _render_photos_page(request, client, state, _status_for(state), action="update", photo_id=photo_id)


@router.post("/photos/{photo_id}/delete", response_class=HTMLResponse)
async def delete_photo_action(
    request: Request,
    photo_id: str,
    src: str = Form(""),
    client: BackendClient = Depends(get_admin_client),
):
    state = await photo_service.delete_photo(client, {"id": photo_id, "src": src})
    if state.success:
        return _redirect_to_photos("deleted")
    return await _render_photos_page(request, client, state, _status_for(state), action="delete", photo_id=photo_id)
