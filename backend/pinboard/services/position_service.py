"""
Pinboard Backend: Position Service (Business Logic)
====================================================

What:  Create, read, update and delete positions while keeping every
       position consistent with its owner's `positions` set.
How:   Each method receives the request's AsyncSession explicitly. Create
       and delete write both sides of the ownership relation inside one
       `atomic()` block, so either both writes commit or neither does.
Who:   Called by routes/positions.py; tests call it directly with an
       in-memory SQLite session.

Ownership Invariant:
    Every Position's creator is a User whose `positions` contains that
    Position, and vice versa.

    create:  geocode → load user → [insert position + append to user.positions] → commit
    delete:  load position+creator → check owner → [remove from user.positions + delete] → commit
    update:  load position → check owner → overwrite title/description → commit

Error Handling:
    Store failures are logged with detail and re-raised as DatabaseError with
    a user-facing "...please try again" message. Domain conditions raise
    NotFoundError / NotAuthorizedError with specific messages.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pinboard.database import atomic
from pinboard.exceptions import (
    DatabaseError,
    NotAuthorizedError,
    NotFoundError,
)
from pinboard.models.position import Position
from pinboard.models.user import User
from pinboard.services.geocoding_base import GeocodingService
from pinboard.services.geocoding_service import geocoding_service

logger = logging.getLogger(__name__)


class PositionService:
    """
    Business logic for positions.

    The geocoder is injected so tests (and alternative providers) can
    replace it; the database session is passed to every call.
    """

    def __init__(self, geocoder: Optional[GeocodingService] = None):
        self.geocoder = geocoder or geocoding_service

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_positions(self, db: AsyncSession) -> List[Position]:
        """
        Return every position, oldest first.

        Raises:
            NotFoundError: No positions exist (→ 404)
            DatabaseError: Query failed (→ 500)
        """
        try:
            result = await db.execute(select(Position).order_by(Position.created_at))
            positions = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing positions: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Fetching positions failed, please try again later.",
                context={"error_type": type(e).__name__},
            )

        if not positions:
            raise NotFoundError(message="Could not find any positions.", resource="position")
        return positions

    async def get_position(self, db: AsyncSession, position_id: uuid.UUID) -> Position:
        """
        Retrieve a single position by id.

        Raises:
            NotFoundError: No position with that id (→ 404)
            DatabaseError: Query failed (→ 500)
        """
        try:
            position = await db.get(Position, position_id)
        except Exception as e:
            logger.error("Database error fetching position %s: %s", position_id, str(e))
            raise DatabaseError(
                message="Something went wrong, could not find a position.",
                context={"position_id": str(position_id)},
            )

        if position is None:
            raise NotFoundError(
                message="Could not find position for the provided id.",
                resource="position",
                resource_id=str(position_id),
            )
        return position

    async def list_positions_for_user(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> List[Position]:
        """
        Return the positions owned by a user.

        A missing user and a user without positions both answer 404.
        """
        try:
            result = await db.execute(
                select(User)
                .options(selectinload(User.positions))
                .where(User.id == user_id)
            )
            user = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching positions of user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Fetching positions failed, please try again later.",
                context={"user_id": str(user_id)},
            )

        if user is None or not user.positions:
            raise NotFoundError(
                message="Could not find positions for the provided user id.",
                resource="position",
                resource_id=str(user_id),
            )
        return list(user.positions)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_position(
        self,
        db: AsyncSession,
        title: str,
        description: str,
        address: str,
        image: str,
        requester_id: uuid.UUID,
    ) -> Position:
        """
        Create a position owned by the requester.

        Workflow Steps:
            1. Geocode the address (errors propagate unchanged)
            2. Load the requester with their positions
            3. In one transaction: insert the position and append it to
               user.positions
            4. Return the committed position

        Preconditions:
            Fields were validated by the route; `image` is the public path
            of an already stored upload.

        Raises:
            AddressNotFoundError / GeocodingServiceError: from the geocoder
            NotFoundError: Requester does not exist (→ 404)
            DatabaseError: Lookup or transaction failed (→ 500); nothing
                           was written
        """
        coordinates = await self.geocoder.get_coordinates(address)

        try:
            user = await self._load_user_with_positions(db, requester_id)
        except Exception as e:
            logger.error("Database error loading user %s: %s", requester_id, str(e))
            raise DatabaseError(
                message="Creating position failed, please try again.",
                context={"user_id": str(requester_id)},
            )

        if user is None:
            raise NotFoundError(
                message="Could not find user for provided id.",
                resource="user",
                resource_id=str(requester_id),
            )

        position = Position(
            id=uuid.uuid4(),
            title=title,
            description=description,
            address=address,
            lat=coordinates.lat,
            lng=coordinates.lng,
            image=image,
            creator_id=user.id,
        )

        try:
            async with atomic(db):
                db.add(position)
                user.positions.append(position)
        except Exception as e:
            logger.error(
                "Create transaction rolled back for user %s: %s",
                requester_id,
                str(e),
                exc_info=True,
            )
            raise DatabaseError(
                message="Creating position failed, please try again.",
                context={"user_id": str(requester_id), "error_type": type(e).__name__},
            )

        logger.info("Position %s created by user %s", position.id, user.id)
        return position

    async def update_position(
        self,
        db: AsyncSession,
        position_id: uuid.UUID,
        title: str,
        description: str,
        requester_id: uuid.UUID,
    ) -> Position:
        """
        Overwrite title and description of a position the requester owns.

        address, location, image and creator never change here.

        Raises:
            NotFoundError: No position with that id (→ 404)
            NotAuthorizedError: Requester is not the creator (→ 401), nothing mutated
            DatabaseError: Lookup or save failed (→ 500)
        """
        try:
            position = await db.get(Position, position_id)
        except Exception as e:
            logger.error("Database error loading position %s: %s", position_id, str(e))
            raise DatabaseError(
                message="Something went wrong, could not update position.",
                context={"position_id": str(position_id)},
            )

        if position is None:
            raise NotFoundError(
                message="Could not find position for the provided id.",
                resource="position",
                resource_id=str(position_id),
            )

        if not self._is_owner(position, requester_id):
            raise NotAuthorizedError(
                message="You are not allowed to edit this position.",
                context={"position_id": str(position_id), "requester_id": str(requester_id)},
            )

        try:
            async with atomic(db):
                position.title = title
                position.description = description
        except Exception as e:
            logger.error("Update of position %s failed: %s", position_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Something went wrong, could not update position.",
                context={"position_id": str(position_id)},
            )

        logger.info("Position %s updated by user %s", position_id, requester_id)
        return position

    async def delete_position(
        self,
        db: AsyncSession,
        position_id: uuid.UUID,
        requester_id: uuid.UUID,
    ) -> str:
        """
        Delete a position the requester owns and detach it from the owner.

        Returns:
            The public image path of the deleted position. The caller removes
            the file after the transaction committed.

        Raises:
            NotFoundError: No position with that id (→ 404)
            NotAuthorizedError: Requester is not the creator (→ 401), nothing mutated
            DatabaseError: Lookup or transaction failed (→ 500); nothing deleted
        """
        try:
            result = await db.execute(
                select(Position)
                .options(selectinload(Position.creator).selectinload(User.positions))
                .where(Position.id == position_id)
            )
            position = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error loading position %s: %s", position_id, str(e))
            raise DatabaseError(
                message="Something went wrong, could not delete position.",
                context={"position_id": str(position_id)},
            )

        if position is None:
            raise NotFoundError(
                message="Could not find position for this id.",
                resource="position",
                resource_id=str(position_id),
            )

        if not self._is_owner(position, requester_id):
            raise NotAuthorizedError(
                message="You are not allowed to delete this position.",
                context={"position_id": str(position_id), "requester_id": str(requester_id)},
            )

        image = position.image
        owner = position.creator

        try:
            async with atomic(db):
                owner.positions.remove(position)
                await db.delete(position)
        except Exception as e:
            logger.error(
                "Delete transaction rolled back for position %s: %s",
                position_id,
                str(e),
                exc_info=True,
            )
            raise DatabaseError(
                message="Something went wrong, could not delete position.",
                context={"position_id": str(position_id), "error_type": type(e).__name__},
            )

        logger.info("Position %s deleted by user %s", position_id, requester_id)
        return image

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _load_user_with_positions(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> Optional[User]:
        result = await db.execute(
            select(User)
            .options(selectinload(User.positions))
            .where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _is_owner(position: Position, requester_id: uuid.UUID) -> bool:
        """Single ownership rule for update and delete: compare UUIDs."""
        return position.creator_id == requester_id


# ── Singleton Instance ────────────────────────────────────────────────────
position_service = PositionService()


def get_position_service() -> PositionService:
    """FastAPI dependency returning the shared PositionService."""
    return position_service
