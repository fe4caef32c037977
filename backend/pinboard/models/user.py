"""
Pinboard Backend: User SQLAlchemy Model
========================================

What:  ORM model representing the `users` table.
Who:   Used by UserService (signup, login, listing) and PositionService
       (the owner side of the position invariant).

Table Design:
    - UUID primary key, generated in Python so SQLite and PostgreSQL agree
    - email: unique, stored lower-cased by the signup validator
    - password: bcrypt hash; never leaves the service layer
    - image: public path of the uploaded avatar (uploads/images/<uuid>.<ext>)
    - positions: the set of positions this user created, backed by
      positions.creator_id
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pinboard.database import Base

if TYPE_CHECKING:
    from pinboard.models.position import Position


class User(Base):
    """
    A registered account that can own positions.

    Lifecycle:
        1. Created by signup with an empty positions set
        2. Gains a position each time the user creates one (same transaction)
        3. Loses it when that position is deleted (same transaction)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the user's password",
    )

    image: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Public path of the uploaded avatar image",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Owned Positions ───────────────────────────────────────────────────
    # The owner side of the Position.creator reference. Services load it
    # eagerly (selectinload) before appending or removing, since lazy loads
    # are not available on AsyncSession.
    positions: Mapped[List["Position"]] = relationship(
        back_populates="creator",
        cascade="all, delete-orphan",
        order_by="Position.created_at",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
