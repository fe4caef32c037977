"""
Pinboard Backend: Authentication Service
=========================================

What:  Password hashing (bcrypt) and access token issuance/verification
       (PyJWT, HS256).
Who:   UserService hashes and checks passwords and issues tokens on signup
       and login; the `get_requester` route dependency verifies tokens.

Token claims:
    userId: the user's UUID as a string
    email:  the user's email
    exp:    expiry, settings.jwt_expires_minutes after issuance

bcrypt is CPU-bound, so hashing and checking run in a worker thread to keep
the event loop responsive.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from pinboard.config import settings
from pinboard.exceptions import AuthenticationError, TokenSigningError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Requester:
    """The identity extracted from a verified access token."""

    user_id: uuid.UUID
    email: str


class AuthService:
    """Issues and verifies access tokens and handles password hashes."""

    def __init__(
        self,
        secret: Optional[str] = None,
        expires_minutes: Optional[int] = None,
        bcrypt_rounds: Optional[int] = None,
    ):
        self.secret = secret if secret is not None else settings.jwt_key
        self.expires_minutes = expires_minutes or settings.jwt_expires_minutes
        self.bcrypt_rounds = bcrypt_rounds or settings.bcrypt_rounds

    # ── Passwords ─────────────────────────────────────────────────────────

    async def hash_password(self, password: str) -> str:
        def _hash() -> str:
            salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
            return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

        return await asyncio.to_thread(_hash)

    async def verify_password(self, password: str, hashed: str) -> bool:
        """Return True if `password` matches the stored bcrypt hash."""

        def _check() -> bool:
            try:
                return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
            except ValueError:
                # Stored value is not a bcrypt hash
                logger.error("Stored password hash is malformed")
                return False

        return await asyncio.to_thread(_check)

    # ── Tokens ────────────────────────────────────────────────────────────

    def create_access_token(self, user_id: uuid.UUID, email: str) -> str:
        """
        Sign a token for the user.

        Raises:
            TokenSigningError if no signing key is configured or PyJWT
            rejects it.
        """
        if not self.secret:
            logger.error("Cannot issue access token: JWT_KEY is not set")
            raise TokenSigningError(context={"reason": "missing_key"})

        now = datetime.now(timezone.utc)
        claims = {
            "userId": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + timedelta(minutes=self.expires_minutes),
        }
        try:
            return jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)
        except jwt.PyJWTError as e:
            logger.error("Cannot issue access token: %s", str(e))
            raise TokenSigningError(context={"reason": type(e).__name__})

    def verify_access_token(self, token: str) -> Requester:
        """
        Decode and verify a token.

        Raises:
            AuthenticationError for expired, badly signed or malformed tokens,
            for tokens without a valid userId claim, and for every token while
            no signing key is configured.
        """
        if not self.secret:
            logger.warning("Rejecting access token: JWT_KEY is not set")
            raise AuthenticationError(context={"reason": "missing_key"})

        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "userId"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError(context={"reason": "expired"})
        except jwt.PyJWTError as e:
            raise AuthenticationError(context={"reason": type(e).__name__})

        try:
            user_id = uuid.UUID(str(claims["userId"]))
        except ValueError:
            raise AuthenticationError(context={"reason": "invalid_user_id"})

        return Requester(user_id=user_id, email=str(claims.get("email", "")))


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()


def get_auth_service() -> AuthService:
    """FastAPI dependency returning the shared AuthService."""
    return auth_service
