"""
Exception types shared by the backend client and the photo service.
"""
from typing import Optional


class PhotoFlowError(Exception):
    """Base class for application errors."""


class ConfigurationError(PhotoFlowError):
    """A required setting is missing. The message is safe to log, never to show."""


class BackendError(PhotoFlowError):
    """A database or storage call failed."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class NotFoundError(BackendError):
    """The backend reported that no rows matched."""


class PermissionDeniedError(BackendError):
    """A write was attempted through the unprivileged client."""
