"""
Pinboard Backend: Position SQLAlchemy Model
============================================

What:  ORM model representing the `positions` table (a user-created place
       with a geocoded address and an image).
Who:   Used by PositionService for every read and write, and by Alembic.

Table Design:
    - UUID primary key
    - title / description: the only mutable fields after creation
    - address plus lat/lng: coordinates resolved from the address at creation
    - image: public path of the uploaded image (uploads/images/<uuid>.<ext>)
    - creator_id: NOT NULL foreign key to users.id; together with
      User.positions it forms the ownership invariant
    - created_at indexed for stable listing order
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pinboard.database import Base

if TYPE_CHECKING:
    from pinboard.models.user import User


class Position(Base):
    """
    Represents a position (place) in the database.

    Lifecycle:
        1. Created together with the owner's membership entry (one commit)
        2. title/description may be edited by the creator
        3. Deleted together with the owner's membership entry (one commit);
           the image file is removed afterwards
    """

    __tablename__ = "positions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    address: Mapped[str] = mapped_column(String(512), nullable=False)

    # ── Location ──────────────────────────────────────────────────────────
    # Resolved once from `address`; immutable afterwards.
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)

    image: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Public path of the uploaded image",
    )

    creator_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    creator: Mapped["User"] = relationship(back_populates="positions")

    __table_args__ = (
        Index("idx_positions_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Position(id={self.id}, title='{self.title}', "
            f"creator_id={self.creator_id})>"
        )
