"""
Pydantic schemas for request and response data validation.
Defines the form inputs of the admin actions, the photo responses and the
structured results every action returns.
"""
import uuid
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from datetime import datetime
from typing import Optional, List, Dict
from urllib.parse import urlparse


def is_http_url(value: Optional[str]) -> bool:
    """
    True for an absolute http(s) URL with a host, taken as stored: surrounding
    whitespace or an upper-case scheme does not count.
    """
    if not value or not isinstance(value, str):
        return False
    if value != value.strip() or not value.startswith(("http://", "https://")):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.netloc)


def field_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """
    Flatten a ValidationError into {field: [messages]}.
    Errors not tied to a field are collected under "_form".
    """
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else "_form"
        message = error.get("msg", "Invalid value")
        # Messages raised from our validators arrive as "Value error, <message>"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def _clean_text(value):
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


class PhotoResponse(BaseModel):
    """
    Full photo record, used by the admin panel.
    """
    id: uuid.UUID
    src: str
    alt: Optional[str] = None
    description: Optional[str] = None
    display_order: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PhotoPublicResponse(BaseModel):
    """
    Photo as served to the public gallery.
    Excludes timestamps not needed by the frontend.
    """
    id: uuid.UUID
    src: str
    alt: Optional[str] = None
    description: Optional[str] = None
    display_order: int

    model_config = ConfigDict(from_attributes=True)


class PhotoMetadata(BaseModel):
    """Fields shared by every create contract."""
    alt: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None

    @field_validator("alt", "description", mode="before")
    @classmethod
    def clean_text(cls, v):
        return _clean_text(v)

    @field_validator("display_order", mode="before")
    @classmethod
    def empty_order_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PhotoLinkCreate(PhotoMetadata):
    """
    Create contract for the link mode: the photo lives at an external URL.
    """
    src: str

    @field_validator("src", mode="before")
    @classmethod
    def validate_src(cls, v):
        v = _clean_text(v)
        if not v:
            raise ValueError("Image URL is required.")
        if not is_http_url(v):
            raise ValueError("Image URL must be an absolute http(s) URL.")
        return v


class PhotoUploadCreate(PhotoMetadata):
    """
    Create contract for the upload mode: a binary image stored in the bucket.
    Size limits are checked by the service against MAX_UPLOAD_BYTES.
    """
    filename: str = "upload"
    content_type: Optional[str] = None
    data: bytes

    @field_validator("data")
    @classmethod
    def file_not_empty(cls, v):
        if not v:
            raise ValueError("File is required.")
        return v

    @field_validator("content_type")
    @classmethod
    def must_be_image(cls, v):
        if v and not v.startswith("image/"):
            raise ValueError("File must be an image.")
        return v


class _PhotoIdentified(BaseModel):
    id: uuid.UUID

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v):
        if isinstance(v, uuid.UUID):
            return v
        try:
            return uuid.UUID(str(v).strip())
        except (ValueError, AttributeError, TypeError):
            raise ValueError("Invalid photo id.")


class PhotoUpdate(_PhotoIdentified):
    """
    Partial update of a photo's details. Only fields present in the
    submission are applied (see model_fields_set); src is never updatable.
    """
    alt: Optional[str] = None
    description: Optional[str] = None
    display_order: Optional[int] = None

    @field_validator("alt", "description", mode="before")
    @classmethod
    def clean_text(cls, v):
        return _clean_text(v)

    @field_validator("display_order", mode="before")
    @classmethod
    def empty_order_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def changes(self) -> dict:
        values = self.model_dump(include=self.model_fields_set - {"id"})
        # A blank order field means "leave as is", not "clear"
        if values.get("display_order", 0) is None:
            values.pop("display_order")
        return values


class PhotoDelete(_PhotoIdentified):
    src: str = ""


class ReorderRequest(BaseModel):
    """
    Ordered list of photo IDs. Photos not listed keep their relative order
    after the listed ones.
    """
    ids: List[uuid.UUID]

    @field_validator("ids")
    @classmethod
    def validate_unique_ids(cls, v):
        if not v:
            raise ValueError("At least one photo id is required.")
        if len(v) != len(set(v)):
            raise ValueError("Duplicate photo IDs are not allowed.")
        return v


class LoginForm(BaseModel):
    username: str = ""
    password: str = ""

    model_config = ConfigDict(validate_default=True)

    @field_validator("username")
    @classmethod
    def username_required(cls, v):
        if not v:
            raise ValueError("Username is required")
        return v

    @field_validator("password")
    @classmethod
    def password_required(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


class LoginState(BaseModel):
    """Result of a login attempt, rendered by the login page."""
    errors: Optional[Dict[str, List[str]]] = None
    message: Optional[str] = None
    token: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.token is not None


class ActionState(BaseModel):
    """
    Structured result of every photo action.
    Field-level errors render inline; message renders as a banner or toast.
    """
    success: bool = False
    message: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None
    photo: Optional[PhotoResponse] = None
    # Set on server-side failures so routes can pick a status code
    server_error: bool = False
