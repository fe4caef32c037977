"""
Pinboard Backend: Position Service Tests
=========================================

What:  Business-logic tests for PositionService against a real (in-memory
       SQLite) database.

What we test:
    ✅ create: position row and owner membership are written together
    ✅ create: a failed commit leaves neither the row nor the membership
    ✅ create: unknown address and unknown requester
    ✅ update: owner can change title/description only
    ✅ update/delete by another user: NotAuthorizedError, nothing mutated
    ✅ delete: row and membership removed together, image path returned
    ✅ delete: a failed commit keeps both sides
    ✅ reads: 404 messages for empty results and unknown ids
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import selectinload

from pinboard.exceptions import (
    AddressNotFoundError,
    DatabaseError,
    NotAuthorizedError,
    NotFoundError,
)
from pinboard.models.position import Position
from pinboard.models.user import User

ADDRESS = "20 W 34th St, New York, NY 10001"


async def _count_positions(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Position))


async def _owned_ids(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(
            select(User).options(selectinload(User.positions)).where(User.id == user_id)
        )
        return [p.id for p in result.scalar_one().positions]


def _failing_commit(session):
    """A commit that flushes the pending writes, then fails."""

    async def _commit():
        await session.flush()
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    return AsyncMock(side_effect=_commit)


async def _create(service, db, requester_id, title="Empire State Building"):
    return await service.create_position(
        db,
        title=title,
        description="Very tall building downtown",
        address=ADDRESS,
        image="uploads/images/empire.jpg",
        requester_id=requester_id,
    )


class TestCreatePosition:

    @pytest.mark.asyncio
    async def test_create_writes_position_and_membership(
        self, position_service, db_session, session_factory, make_user, fake_geocoder
    ):
        alice = await make_user()

        position = await _create(position_service, db_session, alice.id)

        assert position.creator_id == alice.id
        assert position.lat == pytest.approx(40.7484405)
        assert position.lng == pytest.approx(-73.9878584)
        assert fake_geocoder.calls == [ADDRESS]
        assert await _count_positions(session_factory) == 1
        assert await _owned_ids(session_factory, alice.id) == [position.id]

    @pytest.mark.asyncio
    async def test_failed_commit_leaves_nothing(
        self, position_service, db_session, session_factory, make_user
    ):
        alice = await make_user()
        db_session.commit = _failing_commit(db_session)

        with pytest.raises(DatabaseError, match="Creating position failed"):
            await _create(position_service, db_session, alice.id)

        assert await _count_positions(session_factory) == 0
        assert await _owned_ids(session_factory, alice.id) == []

    @pytest.mark.asyncio
    async def test_unknown_address_writes_nothing(
        self, position_service, db_session, session_factory, make_user
    ):
        alice = await make_user()

        with pytest.raises(AddressNotFoundError):
            await position_service.create_position(
                db_session,
                title="Nowhere",
                description="Does not exist",
                address="Nowhere Street 0",
                image="uploads/images/x.jpg",
                requester_id=alice.id,
            )

        assert await _count_positions(session_factory) == 0

    @pytest.mark.asyncio
    async def test_unknown_requester(self, position_service, db_session, session_factory):
        with pytest.raises(NotFoundError, match="Could not find user for provided id."):
            await _create(position_service, db_session, uuid.uuid4())

        assert await _count_positions(session_factory) == 0


class TestUpdatePosition:

    @pytest.mark.asyncio
    async def test_owner_updates_title_and_description(
        self, position_service, db_session, make_user
    ):
        alice = await make_user()
        position = await _create(position_service, db_session, alice.id)

        updated = await position_service.update_position(
            db_session,
            position_id=position.id,
            title="New title",
            description="A brand new description",
            requester_id=alice.id,
        )

        assert updated.title == "New title"
        assert updated.description == "A brand new description"
        assert updated.address == ADDRESS
        assert updated.image == "uploads/images/empire.jpg"
        assert updated.creator_id == alice.id

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update(
        self, position_service, db_session, session_factory, make_user
    ):
        alice = await make_user()
        bob = await make_user(email="bob@example.com", name="Bob")
        position = await _create(position_service, db_session, alice.id)

        with pytest.raises(NotAuthorizedError, match="not allowed to edit"):
            await position_service.update_position(
                db_session,
                position_id=position.id,
                title="Hijacked",
                description="Hijacked description",
                requester_id=bob.id,
            )

        async with session_factory() as session:
            stored = await session.get(Position, position.id)
            assert stored.title == "Empire State Building"

    @pytest.mark.asyncio
    async def test_update_unknown_position(self, position_service, db_session, make_user):
        alice = await make_user()

        with pytest.raises(NotFoundError):
            await position_service.update_position(
                db_session,
                position_id=uuid.uuid4(),
                title="Title",
                description="Description",
                requester_id=alice.id,
            )


class TestDeletePosition:

    @pytest.mark.asyncio
    async def test_delete_removes_position_and_membership(
        self, position_service, db_session, session_factory, make_user
    ):
        alice = await make_user()
        first = await _create(position_service, db_session, alice.id)
        second = await _create(position_service, db_session, alice.id, title="Second")

        image = await position_service.delete_position(
            db_session, position_id=first.id, requester_id=alice.id
        )

        assert image == "uploads/images/empire.jpg"
        assert await _count_positions(session_factory) == 1
        assert await _owned_ids(session_factory, alice.id) == [second.id]

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(
        self, position_service, db_session, session_factory, make_user
    ):
        alice = await make_user()
        bob = await make_user(email="bob@example.com", name="Bob")
        position = await _create(position_service, db_session, alice.id)

        with pytest.raises(NotAuthorizedError, match="not allowed to delete"):
            await position_service.delete_position(
                db_session, position_id=position.id, requester_id=bob.id
            )

        assert await _count_positions(session_factory) == 1
        assert await _owned_ids(session_factory, alice.id) == [position.id]

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_both_sides(
        self, position_service, db_session, session_factory, make_user
    ):
        alice = await make_user()
        position = await _create(position_service, db_session, alice.id)
        db_session.commit = _failing_commit(db_session)

        with pytest.raises(DatabaseError):
            await position_service.delete_position(
                db_session, position_id=position.id, requester_id=alice.id
            )

        assert await _count_positions(session_factory) == 1
        assert await _owned_ids(session_factory, alice.id) == [position.id]

    @pytest.mark.asyncio
    async def test_delete_unknown_position(self, position_service, db_session, make_user):
        alice = await make_user()

        with pytest.raises(NotFoundError, match="Could not find position for this id."):
            await position_service.delete_position(
                db_session, position_id=uuid.uuid4(), requester_id=alice.id
            )


class TestReads:

    @pytest.mark.asyncio
    async def test_list_empty_is_not_found(self, position_service, db_session):
        with pytest.raises(NotFoundError, match="Could not find any positions."):
            await position_service.list_positions(db_session)

    @pytest.mark.asyncio
    async def test_list_for_user_without_positions(
        self, position_service, db_session, make_user
    ):
        alice = await make_user()

        with pytest.raises(NotFoundError, match="Could not find positions for the provided user id."):
            await position_service.list_positions_for_user(db_session, alice.id)

    @pytest.mark.asyncio
    async def test_list_for_user_returns_only_theirs(
        self, position_service, db_session, make_user
    ):
        alice = await make_user()
        bob = await make_user(email="bob@example.com", name="Bob")
        mine = await _create(position_service, db_session, alice.id)
        await _create(position_service, db_session, bob.id, title="Bob's place")

        positions = await position_service.list_positions_for_user(db_session, alice.id)

        assert [p.id for p in positions] == [mine.id]

    @pytest.mark.asyncio
    async def test_get_unknown_position(self, position_service, db_session):
        with pytest.raises(NotFoundError, match="Could not find position for the provided id."):
            await position_service.get_position(db_session, uuid.uuid4())
