"""
Pinboard Backend: User Request/Response Schemas
================================================

What:  Pydantic models for the /api/users contract. The password hash is
       never part of any response model.
"""

import uuid
from typing import List

from pydantic import BaseModel, Field

from pinboard.models.user import User


class UserResponse(BaseModel):
    """Public view of a user, including the ids of the positions they own."""
    id: uuid.UUID
    name: str
    email: str
    image: str
    positions: List[uuid.UUID] = Field(default_factory=list)

    @classmethod
    def from_orm_row(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            positions=[position.id for position in user.positions],
        )


class UserListResponse(BaseModel):
    users: List[UserResponse]


class LoginRequest(BaseModel):
    """JSON body of POST /api/users/login."""
    email: str = ""
    password: str = ""


class AuthResponse(BaseModel):
    """
    Returned by signup (201) and login (200).

    The field names match what the frontend stores: userId, email, token.
    """
    userId: uuid.UUID
    email: str
    token: str
