"""SQLAlchemy ORM models for the SMARTMARK database."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class BookmarkRecord(Base):
    """A saved URL owned by a Supabase Auth user.

    user_id references auth.users.id. Access from the app goes through the
    Supabase REST API so the row-level policies apply; this mapping exists
    for schema migrations.
    """

    __tablename__ = "bookmarks"
    __table_args__ = (
        Index("idx_bookmarks_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
