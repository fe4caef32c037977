"""
Pinboard Backend: Position Request/Response Schemas
====================================================

What:  Pydantic models for the /api/positions contract.
How:   Response models are built from ORM rows with `from_orm_row`, which
       folds lat/lng into `location` and exposes `creator_id` as `creator`.

Request bodies declare plain strings; the length/emptiness rules live in
pinboard.validation so every endpoint reports field errors the same way.
"""

import uuid
from typing import List

from pydantic import BaseModel, Field

from pinboard.models.position import Position


class Location(BaseModel):
    """Latitude/longitude pair resolved from an address."""
    lat: float = Field(description="Latitude in decimal degrees")
    lng: float = Field(description="Longitude in decimal degrees")


class PositionResponse(BaseModel):
    """
    Full representation of a position.

    Example:
        {
            "id": "5c1e...",
            "title": "Cafe",
            "description": "Nice spot downtown",
            "address": "1 Main St",
            "location": {"lat": 40.7, "lng": -74.0},
            "image": "uploads/images/0b6e....png",
            "creator": "9f2a..."
        }
    """
    id: uuid.UUID = Field(description="Unique position identifier")
    title: str
    description: str
    address: str
    location: Location
    image: str = Field(description="Path of the image, relative to the server root")
    creator: uuid.UUID = Field(description="Id of the user who created the position")

    @classmethod
    def from_orm_row(cls, position: Position) -> "PositionResponse":
        return cls(
            id=position.id,
            title=position.title,
            description=position.description,
            address=position.address,
            location=Location(lat=position.lat, lng=position.lng),
            image=position.image,
            creator=position.creator_id,
        )


class PositionEnvelope(BaseModel):
    """Single position wrapper: {"position": {...}}."""
    position: PositionResponse


class PositionListResponse(BaseModel):
    """Position list wrapper: {"positions": [...]}."""
    positions: List[PositionResponse]


class PositionUpdateRequest(BaseModel):
    """JSON body of PUT/PATCH /api/positions/{id}."""
    title: str = ""
    description: str = ""
