"""
Remote data client: the photos table plus the object storage bucket.

The privileged client (service role) reads and writes both. The unprivileged
client (anon role) can only list photos; any other call raises
PermissionDeniedError.
"""
import uuid
import logging
from typing import List, Optional

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photoflow.errors import BackendError, NotFoundError, PermissionDeniedError
from photoflow.models import Photo, utcnow
from photoflow.services.cloudinary_service import ObjectStorage

logger = logging.getLogger(__name__)


class BackendClient:
    def __init__(
        self,
        session: AsyncSession,
        storage: Optional[ObjectStorage] = None,
        privileged: bool = False,
    ):
        self.session = session
        self._storage = storage
        self.privileged = privileged

    def _require_privileged(self, operation: str) -> None:
        if not self.privileged:
            raise PermissionDeniedError(f"{operation} requires the privileged client")

    @property
    def storage(self) -> ObjectStorage:
        self._require_privileged("Storage access")
        if self._storage is None:
            raise BackendError("No object storage attached to this client")
        return self._storage

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback failed: {str(e)}")

    async def select_photos(self) -> List[Photo]:
        """All photos, display_order ascending, newest first within a tie."""
        try:
            result = await self.session.execute(
                select(Photo).order_by(Photo.display_order.asc(), Photo.created_at.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise BackendError("Failed to select photos", e) from e

    async def get_photo(self, photo_id: uuid.UUID) -> Photo:
        try:
            result = await self.session.execute(select(Photo).where(Photo.id == photo_id))
            photo = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise BackendError("Failed to select photo", e) from e
        if photo is None:
            raise NotFoundError(f"Photo {photo_id} does not exist")
        return photo

    async def max_display_order(self) -> Optional[int]:
        """Highest display_order in the table, None when it is empty."""
        self._require_privileged("Reading display order")
        try:
            result = await self.session.execute(select(func.max(Photo.display_order)))
            return result.scalar()
        except SQLAlchemyError as e:
            raise BackendError("Failed to read max display order", e) from e

    async def insert_photo(
        self,
        src: str,
        alt: Optional[str],
        description: Optional[str],
        display_order: int,
    ) -> Photo:
        self._require_privileged("Insert")
        photo = Photo(src=src, alt=alt, description=description, display_order=display_order)
        try:
            self.session.add(photo)
            await self.session.commit()
            await self.session.refresh(photo)
        except SQLAlchemyError as e:
            await self._rollback()
            raise BackendError("Failed to insert photo", e) from e
        logger.info(f"Inserted photo {photo.id} with display_order={photo.display_order}")
        return photo

    async def update_photo(self, photo_id: uuid.UUID, values: dict) -> Photo:
        """
        Apply a partial update and stamp updated_at.

        Raises:
            NotFoundError: If no row has this id
        """
        self._require_privileged("Update")
        values = dict(values, updated_at=utcnow())
        try:
            result = await self.session.execute(
                update(Photo)
                .where(Photo.id == photo_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._rollback()
                raise NotFoundError(f"Photo {photo_id} does not exist")
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise BackendError("Failed to update photo", e) from e

        photo = await self.get_photo(photo_id)
        await self.session.refresh(photo)
        return photo

    async def delete_photo(self, photo_id: uuid.UUID) -> int:
        """Delete a row by id; returns the number of rows removed."""
        self._require_privileged("Delete")
        try:
            result = await self.session.execute(delete(Photo).where(Photo.id == photo_id))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise BackendError("Failed to delete photo", e) from e
        return result.rowcount

    async def set_display_orders(self, ordered_ids: List[uuid.UUID]) -> None:
        """Rewrite display_order as 1..n following ordered_ids, in one transaction."""
        self._require_privileged("Reorder")
        try:
            for position, photo_id in enumerate(ordered_ids, start=1):
                await self.session.execute(
                    update(Photo)
                    .where(Photo.id == photo_id)
                    .values(display_order=position, updated_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise BackendError("Failed to reorder photos", e) from e
