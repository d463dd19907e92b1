"""
Cloudinary-backed object storage for photo uploads.
The bucket is a Cloudinary folder; objects under its "public/" prefix are
served from the Cloudinary CDN.
"""
import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from photoflow.config import settings
from photoflow.errors import BackendError, ConfigurationError
import logging
import asyncio
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    """Bucket operations the photo service relies on. Paths are bucket-relative."""

    async def upload(self, data: bytes, path: str, content_type: Optional[str] = None) -> str:
        ...

    async def remove(self, paths: Iterable[str]) -> None:
        ...

    def path_from_url(self, url: str) -> Optional[str]:
        ...


class CloudinaryStorage:
    """
    Object storage on Cloudinary.

    A bucket-relative path such as "public/1700000000000-beach.jpg" maps to the
    public_id "<bucket>/public/1700000000000-beach" (Cloudinary keeps the file
    extension out of the public_id).
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        bucket: str,
        max_retries: int = 3,
    ):
        self.cloud_name = cloud_name
        self.bucket = bucket.strip("/")
        self.max_retries = max_retries
        self._configured = bool(cloud_name and api_key and api_secret)
        if self._configured:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True  # Always use HTTPS for secure URLs
            )

    @property
    def public_prefix(self) -> str:
        return f"https://res.cloudinary.com/{self.cloud_name}/image/upload/"

    def _require_config(self) -> None:
        if not self._configured:
            raise ConfigurationError("Cloudinary credentials are not configured")

    def _public_id(self, path: str) -> str:
        path = path.strip("/")
        head, _, name = path.rpartition("/")
        if "." in name:
            name = name.rsplit(".", 1)[0]
        return f"{self.bucket}/{head}/{name}" if head else f"{self.bucket}/{name}"

    async def upload(self, data: bytes, path: str, content_type: Optional[str] = None) -> str:
        """
        Upload bytes under the given bucket path with retry on transient failures.

        Returns:
            str: Secure public URL of the stored image

        Raises:
            ConfigurationError: If Cloudinary credentials are missing
            BackendError: If upload fails after all retries
        """
        self._require_config()
        public_id = self._public_id(path)

        for attempt in range(self.max_retries):
            try:
                result = await asyncio.to_thread(
                    cloudinary.uploader.upload,
                    data,
                    public_id=public_id,
                    resource_type="image",
                    overwrite=False,
                    # Limit max dimensions, maintain aspect ratio
                    transformation=[{"width": 3840, "height": 3840, "crop": "limit"}],
                )
                logger.info(f"Successfully uploaded image: {result['public_id']}")
                return result.get("secure_url", "")

            except CloudinaryError as e:
                logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{self.max_retries}): {str(e)}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                    continue
                logger.error(f"Cloudinary upload failed after {self.max_retries} attempts: {str(e)}")
                raise BackendError("Storage upload failed", e) from e

        raise BackendError("Storage upload failed")

    async def remove(self, paths: Iterable[str]) -> None:
        """
        Delete objects by bucket path, invalidating the CDN cache.
        A missing object counts as deleted.

        Raises:
            BackendError: If any deletion fails after all retries
        """
        self._require_config()
        failures: List[str] = []

        for path in paths:
            public_id = self._public_id(path)
            if not await self._destroy(public_id):
                failures.append(public_id)

        if failures:
            raise BackendError(f"Storage delete failed for: {', '.join(failures)}")

    async def _destroy(self, public_id: str) -> bool:
        for attempt in range(self.max_retries):
            try:
                result = await asyncio.to_thread(
                    cloudinary.uploader.destroy,
                    public_id,
                    invalidate=True,
                    resource_type="image",
                )
                outcome = result.get("result")
                if outcome in ("ok", "not found"):
                    logger.info(f"Deleted image from Cloudinary: {public_id} (result: {outcome})")
                    return True
                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
                return False

            except CloudinaryError as e:
                logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{self.max_retries}) for {public_id}: {str(e)}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue
                logger.error(f"Cloudinary delete failed after {self.max_retries} attempts for {public_id}: {str(e)}")
                return False

        return False

    def path_from_url(self, url: str) -> Optional[str]:
        """
        Derive the bucket path from a delivery URL.

        Cloudinary URLs look like:
        https://res.cloudinary.com/{cloud_name}/image/upload/v{version}/{bucket}/{path}.{format}

        Returns:
            The bucket-relative path (with extension), or None when the URL
            does not belong to this bucket.
        """
        if not url or not self.cloud_name or not url.startswith(self.public_prefix):
            return None
        remainder = url[len(self.public_prefix):]
        # Skip an optional version segment
        remainder = re.sub(r"^v\d+/", "", remainder)
        bucket_prefix = f"{self.bucket}/"
        if not remainder.startswith(bucket_prefix):
            return None
        path = remainder[len(bucket_prefix):].split("?", 1)[0]
        return path or None

    def is_configured(self) -> bool:
        return self._configured


@lru_cache(maxsize=1)
def get_storage() -> CloudinaryStorage:
    """
    The process-wide storage client, built from settings on first use.
    cloudinary.config() is global, so it is applied once rather than per request.
    """
    return CloudinaryStorage(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        bucket=settings.PHOTO_BUCKET_NAME,
    )


def validate_cloudinary_config() -> bool:
    """
    Validate that Cloudinary is properly configured.

    Returns:
        bool: True if Cloudinary is configured, False otherwise
    """
    if not settings.CLOUDINARY_CLOUD_NAME:
        logger.warning("CLOUDINARY_CLOUD_NAME not configured")
        return False
    if not settings.CLOUDINARY_API_KEY:
        logger.warning("CLOUDINARY_API_KEY not configured")
        return False
    if not settings.CLOUDINARY_API_SECRET:
        logger.warning("CLOUDINARY_API_SECRET not configured")
        return False

    logger.info("Cloudinary configuration validated successfully")
    return True
