"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, Index, Uuid
from sqlalchemy.sql import func
from photoflow.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Photo(Base):
    """
    Portfolio photo.
    Stores the image URL (bucket public URL or external link) and its display metadata.
    """
    __tablename__ = "photos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    src = Column(Text, nullable=False)
    alt = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_photos_order_created", "display_order", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Photo id={self.id} display_order={self.display_order}>"
