"""
In-process cache for the photo lists behind the admin list and the public gallery.
Photo actions invalidate both views after every successful mutation.
"""
import time
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

ADMIN_PHOTOS_VIEW = "/admin/photos"
GALLERY_VIEW = "/"

# Bounds staleness when several worker processes serve the site
DEFAULT_TTL_SECONDS = 60.0


class ViewCache:
    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS):
        self.ttl = ttl
        self._entries: Dict[str, Tuple[float, Any]] = {}
        # Bumped on every invalidate; a load started before the bump is not stored
        self._generations: Dict[str, int] = {}

    def get(self, path: str) -> Optional[Any]:
        entry = self._entries.get(path)
        if entry is None:
            return None
        stored_at, value = entry
        if time.monotonic() - stored_at > self.ttl:
            self._entries.pop(path, None)
            return None
        return value

    def set(self, path: str, value: Any) -> None:
        self._entries[path] = (time.monotonic(), value)

    async def get_or_load(self, path: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        value = self.get(path)
        if value is not None:
            return value

        generation = self._generations.get(path, 0)
        value = await loader()
        if self._generations.get(path, 0) == generation:
            self.set(path, value)
        else:
            logger.debug(f"Discarding view {path} loaded before an invalidation")
        return value

    def invalidate(self, *paths: str) -> None:
        for path in paths:
            self._entries.pop(path, None)
            self._generations[path] = self._generations.get(path, 0) + 1
        logger.debug(f"Invalidated views: {', '.join(paths)}")

    def clear(self) -> None:
        self._entries.clear()
        self._generations.clear()


view_cache = ViewCache()


def revalidate_photo_views() -> None:
    """Drop the admin list and the public gallery."""
    view_cache.invalidate(ADMIN_PHOTOS_VIEW, GALLERY_VIEW)
