"""
Pinboard Backend: User Service
===============================

What:  User listing, signup and login.
How:   Passwords go through AuthService (bcrypt); successful signup and
       login return an access token for the user.
Who:   Called by routes/users.py.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pinboard.database import atomic
from pinboard.exceptions import DatabaseError, InvalidCredentialsError, UserExistsError
from pinboard.models.user import User
from pinboard.services.auth_service import AuthService, auth_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """A signed-in user and the token issued for them."""

    user: User
    token: str


class UserService:
    def __init__(self, auth: Optional[AuthService] = None):
        self.auth = auth or auth_service

    async def list_users(self, db: AsyncSession) -> List[User]:
        """Return every user with their positions loaded."""
        try:
            result = await db.execute(
                select(User).options(selectinload(User.positions)).order_by(User.created_at)
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Fetching users failed, please try again later.",
                context={"error_type": type(e).__name__},
            )

    async def signup(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
        image: str,
    ) -> AuthResult:
        """
        Register a new user.

        `email` must already be normalized by the caller.

        Raises:
            UserExistsError: Email is taken (→ 422)
            DatabaseError: Lookup or insert failed (→ 500)
        """
        try:
            existing = await self._find_by_email(db, email)
        except Exception as e:
            logger.error("Database error checking email during signup: %s", str(e))
            raise DatabaseError(message="Signing up failed, please try again later.")

        if existing is not None:
            raise UserExistsError()

        hashed = await self.auth.hash_password(password)
        user = User(
            id=uuid.uuid4(),
            name=name.strip(),
            email=email,
            password=hashed,
            image=image,
            positions=[],
        )
        # Issued before the insert so a signing failure leaves no account behind
        token = self.auth.create_access_token(user.id, user.email)

        try:
            async with atomic(db):
                db.add(user)
        except IntegrityError:
            # Another signup with the same email committed first
            raise UserExistsError()
        except Exception as e:
            logger.error("Signup insert failed: %s", str(e), exc_info=True)
            raise DatabaseError(message="Signing up failed, please try again later.")

        logger.info("User %s signed up", user.id)
        return AuthResult(user=user, token=token)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResult:
        """
        Check credentials and issue a token.

        Unknown email and wrong password produce the same 403 so the response
        does not reveal which accounts exist.
        """
        try:
            user = await self._find_by_email(db, email)
        except Exception as e:
            logger.error("Database error during login: %s", str(e))
            raise DatabaseError(message="Logging in failed, please try again later.")

        if user is None or not await self.auth.verify_password(password, user.password):
            logger.warning("Rejected login attempt")
            raise InvalidCredentialsError()

        return AuthResult(user=user, token=self.auth.create_access_token(user.id, user.email))

    async def _find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()


def get_user_service() -> UserService:
    """FastAPI dependency returning the shared UserService."""
    return user_service
