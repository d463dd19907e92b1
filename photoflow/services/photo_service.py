"""
Photo record service: the admin actions behind the photo pages.

Every action validates its input, talks to the backend through the given
BackendClient and returns an ActionState instead of raising. Successful
mutations invalidate the admin list and the public gallery views.
"""
import asyncio
import functools
import logging
import re
import time
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional

from pydantic import ValidationError

from photoflow.backend import BackendClient
from photoflow.config import settings
from photoflow.errors import BackendError, ConfigurationError, NotFoundError
from photoflow.models import Photo
from photoflow.schemas import (
    ActionState,
    PhotoDelete,
    PhotoLinkCreate,
    PhotoResponse,
    PhotoUpdate,
    PhotoUploadCreate,
    ReorderRequest,
    field_errors,
    is_http_url,
)
from photoflow.utils.image_converter import convert_to_webp
from photoflow.utils.view_cache import revalidate_photo_views

logger = logging.getLogger(__name__)

Scope = Literal["admin", "public"]
SourceMode = Literal["upload", "link"]

FIRST_DISPLAY_ORDER = 1
CONFIG_ERROR_MESSAGE = "Server configuration error. Please contact support."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."
INVALID_SRC_MESSAGE = "Invalid photo source URL format."

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

# Upload model fields all surface on the form's "file" input
_UPLOAD_FIELD_ALIASES = {"data": "file", "content_type": "file", "filename": "file"}


def _failure(message: str, errors: Optional[Dict[str, List[str]]] = None, server_error: bool = False) -> ActionState:
    return ActionState(success=False, message=message, errors=errors, server_error=server_error)


def _validation_failure(exc: ValidationError, aliases: Optional[Dict[str, str]] = None) -> ActionState:
    errors: Dict[str, List[str]] = {}
    for field, messages in field_errors(exc).items():
        key = (aliases or {}).get(field, field)
        errors.setdefault(key, []).extend(messages)
    return _failure("Validation failed.", errors)


def action_boundary(operation: str) -> Callable:
    """
    Convert configuration and unexpected errors raised inside an action into
    a generic ActionState. Detail goes to the log only.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ActionState:
            try:
                return await func(*args, **kwargs)
            except ConfigurationError as e:
                logger.error(f"{operation} failed, configuration error: {str(e)}")
                return _failure(CONFIG_ERROR_MESSAGE, server_error=True)
            except Exception as e:
                logger.error(f"{operation} failed unexpectedly: {str(e)}", exc_info=True)
                return _failure(UNEXPECTED_ERROR_MESSAGE, server_error=True)
        return wrapper
    return decorator


def is_publishable(photo: Photo) -> bool:
    return is_http_url(photo.src)


async def list_photos(client: BackendClient, scope: Scope = "admin") -> List[Photo]:
    """
    Photos ordered by display_order ascending, newest first within a tie.

    The public scope drops records whose src is empty or not an absolute
    http(s) URL.

    Raises:
        BackendError: If the backend query fails (both scopes)
    """
    photos = await client.select_photos()
    if scope == "public":
        visible = [photo for photo in photos if is_publishable(photo)]
        if len(visible) != len(photos):
            logger.warning(f"Filtered {len(photos) - len(visible)} photo(s) with unusable src from the public gallery")
        return visible
    return photos


async def next_display_order(client: BackendClient) -> int:
    """Current max display_order plus one; FIRST_DISPLAY_ORDER on an empty table."""
    current_max = await client.max_display_order()
    if current_max is None:
        return FIRST_DISPLAY_ORDER
    return current_max + 1


def sanitize_filename(filename: str) -> str:
    """Keep alphanumerics, dot, dash and underscore; replace everything else."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).lstrip(".")
    return name or "upload"


def build_storage_path(filename: str, now_ms: Optional[int] = None) -> str:
    """Collision-resistant bucket path: public/<epoch-ms>-<sanitized name>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"public/{now_ms}-{sanitize_filename(filename)}"


async def _remove_orphan(client: BackendClient, path: str) -> None:
    """Best-effort cleanup of an uploaded object; failures are logged only."""
    try:
        await client.storage.remove([path])
        logger.info(f"Removed orphaned upload: {path}")
    except Exception as e:
        logger.error(f"Failed to remove orphaned upload {path}: {str(e)}", exc_info=True)


async def _prepare_upload(payload: PhotoUploadCreate) -> tuple[bytes, str, Optional[str]]:
    """Convert to WebP when that shrinks the file; returns (data, filename, content_type)."""
    converted, is_webp = await asyncio.to_thread(convert_to_webp, payload.data)
    if is_webp and len(converted) < len(payload.data):
        stem = payload.filename.rsplit(".", 1)[0] if "." in payload.filename else payload.filename
        logger.info(f"Converted {payload.filename} to WebP: {len(payload.data):,} bytes → {len(converted):,} bytes")
        return converted, f"{stem}.webp", "image/webp"
    return payload.data, payload.filename, payload.content_type


def reject_oversized_upload(size: Optional[int]) -> Optional[ActionState]:
    """Failure state for an upload over MAX_UPLOAD_BYTES; None when the size is unknown or fits."""
    if size is None or size <= settings.MAX_UPLOAD_BYTES:
        return None
    limit_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
    return _failure("Validation failed.", {"file": [f"File must be {limit_mb:g} MB or smaller."]})


def _reject_other_contract(data: Mapping[str, Any], mode: SourceMode) -> Optional[ActionState]:
    if mode == "upload" and data.get("src"):
        return _failure("Validation failed.", {"src": ["Photos are added by file upload, not by URL."]})
    if mode == "link" and data.get("data"):
        return _failure("Validation failed.", {"file": ["Photos are added by URL, not by file upload."]})
    return None


@action_boundary("Create photo")
async def create_photo(
    client: BackendClient,
    data: Mapping[str, Any],
    mode: Optional[SourceMode] = None,
) -> ActionState:
    """
    Create a photo record.

    In upload mode data carries filename, content_type, data (bytes); in link
    mode it carries src. Both accept alt, description and an optional
    display_order, which defaults to max + 1.

    An upload whose metadata insert fails is removed from the bucket again.
    """
    mode = mode or settings.PHOTO_SOURCE_MODE
    rejected = _reject_other_contract(data, mode)
    if rejected:
        return rejected

    if mode == "link":
        try:
            link = PhotoLinkCreate.model_validate(dict(data))
        except ValidationError as e:
            return _validation_failure(e)
        return await _insert_record(client, link.src, link.alt, link.description, link.display_order)

    try:
        upload = PhotoUploadCreate.model_validate(dict(data))
    except ValidationError as e:
        return _validation_failure(e, _UPLOAD_FIELD_ALIASES)

    oversized = reject_oversized_upload(len(upload.data))
    if oversized:
        return oversized

    content, filename, content_type = await _prepare_upload(upload)
    path = build_storage_path(filename)

    try:
        public_url = await client.storage.upload(content, path, content_type)
    except BackendError as e:
        logger.error(f"Storage upload error for {path}: {str(e)}", exc_info=e.original is not None)
        return _failure("Could not upload the photo. Please try again.", server_error=True)

    if not is_http_url(public_url):
        logger.error(f"Storage returned an unusable public URL for {path}: {public_url!r}")
        await _remove_orphan(client, path)
        return _failure("Could not get public URL for the uploaded file.", server_error=True)

    state = await _insert_record(client, public_url, upload.alt, upload.description, upload.display_order)
    if not state.success:
        await _remove_orphan(client, path)
    return state


async def _insert_record(
    client: BackendClient,
    src: str,
    alt: Optional[str],
    description: Optional[str],
    display_order: Optional[int],
) -> ActionState:
    try:
        if display_order is None:
            display_order = await next_display_order(client)
        photo = await client.insert_photo(src=src, alt=alt, description=description, display_order=display_order)
    except BackendError as e:
        logger.error(f"Database insert error: {str(e)}", exc_info=e.original is not None)
        return _failure("Could not save the photo. Please try again.", server_error=True)

    revalidate_photo_views()
    return ActionState(
        success=True,
        message="Photo added successfully!",
        photo=PhotoResponse.model_validate(photo),
    )


@action_boundary("Update photo")
async def update_photo(client: BackendClient, data: Mapping[str, Any]) -> ActionState:
    """
    Apply a partial update of alt, description and display_order.
    Keys absent from data are left unchanged; src is never touched.
    """
    try:
        payload = PhotoUpdate.model_validate(dict(data))
    except ValidationError as e:
        return _validation_failure(e)

    try:
        photo = await client.update_photo(payload.id, payload.changes())
    except NotFoundError:
        return _failure("Photo not found.", server_error=False)
    except BackendError as e:
        logger.error(f"Update photo error for {payload.id}: {str(e)}", exc_info=e.original is not None)
        return _failure("Could not update the photo. Please try again.", server_error=True)

    revalidate_photo_views()
    return ActionState(
        success=True,
        message="Photo details updated successfully!",
        photo=PhotoResponse.model_validate(photo),
    )


@action_boundary("Delete photo")
async def delete_photo(
    client: BackendClient,
    data: Mapping[str, Any],
    mode: Optional[SourceMode] = None,
) -> ActionState:
    """
    Delete a photo row and, in upload mode, its stored object.

    The storage path is derived from src; if it cannot be, nothing is changed.
    A failed storage delete is logged and the row is deleted anyway.
    """
    mode = mode or settings.PHOTO_SOURCE_MODE
    try:
        payload = PhotoDelete.model_validate(dict(data))
    except ValidationError as e:
        return _validation_failure(e)

    if mode == "upload":
        path = client.storage.path_from_url(payload.src)
        if not path:
            logger.warning(f"Cannot derive storage path from src {payload.src!r} for photo {payload.id}")
            return _failure(INVALID_SRC_MESSAGE, {"src": [INVALID_SRC_MESSAGE]})
        try:
            await client.storage.remove([path])
        except Exception as e:
            # Proceed with the row delete; the object may already be gone
            logger.error(f"Storage delete error for {path} (proceeding with database delete): {str(e)}")

    try:
        removed = await client.delete_photo(payload.id)
    except BackendError as e:
        logger.error(f"Database delete error for {payload.id}: {str(e)}", exc_info=e.original is not None)
        return _failure("Could not delete the photo. Please try again.", server_error=True)

    if removed == 0:
        logger.warning(f"Delete matched no rows for photo {payload.id}")
    else:
        logger.info(f"Deleted photo {payload.id}")

    revalidate_photo_views()
    return ActionState(success=True, message="Photo deleted successfully!")


@action_boundary("Reorder photos")
async def reorder_photos(client: BackendClient, data: Mapping[str, Any]) -> ActionState:
    """
    Assign display_order 1..n in the given order. Photos not listed follow,
    keeping their current relative order.
    """
    try:
        payload = ReorderRequest.model_validate(dict(data))
    except ValidationError as e:
        return _validation_failure(e)

    try:
        photos = await client.select_photos()
    except BackendError as e:
        logger.error(f"Reorder failed reading photos: {str(e)}", exc_info=e.original is not None)
        return _failure("Could not reorder photos. Please try again.", server_error=True)

    known_ids = {photo.id for photo in photos}
    missing = [str(photo_id) for photo_id in payload.ids if photo_id not in known_ids]
    if missing:
        return _failure("Validation failed.", {"ids": [f"Photo IDs not found: {', '.join(missing)}"]})

    listed = set(payload.ids)
    ordered_ids = list(payload.ids) + [photo.id for photo in photos if photo.id not in listed]

    try:
        await client.set_display_orders(ordered_ids)
    except BackendError as e:
        logger.error(f"Reorder failed: {str(e)}", exc_info=e.original is not None)
        return _failure("Could not reorder photos. Please try again.", server_error=True)

    logger.info(f"Reordered {len(payload.ids)} photo(s)")
    revalidate_photo_views()
    return ActionState(success=True, message=f"Reordered {len(payload.ids)} photo(s).")
