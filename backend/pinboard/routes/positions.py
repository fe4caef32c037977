"""
Pinboard Backend: Positions Route Handlers
===========================================

What:  HTTP surface for positions (places).
How:   Public read endpoints call PositionService directly. Mutating
       endpoints first pass the authorization gate (get_requester), then the
       explicit field validator, and only then touch storage or the database.
Who:   Called by the frontend map/list views and the "new place" form.

Request Flow (POST /api/positions):
    1. Bearer token verified → Requester
    2. title/description/address validated → 422 on failure, nothing stored
    3. Image validated and stored → public path
    4. PositionService.create_position() geocodes and commits both writes
    5. On any failure after step 3 the stored image is removed
    6. 201 {"position": {...}}
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pinboard.database import get_db_session
from pinboard.exceptions import ValidationError
from pinboard.routes.dependencies import get_requester
from pinboard.schemas.common import ErrorResponse, MessageResponse
from pinboard.schemas.position import (
    PositionEnvelope,
    PositionListResponse,
    PositionResponse,
    PositionUpdateRequest,
)
from pinboard.services.auth_service import Requester
from pinboard.services.file_service import FileService, get_file_service
from pinboard.services.position_service import PositionService, get_position_service
from pinboard.validation import (
    raise_for_errors,
    validate_position_create,
    validate_position_update,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/positions", tags=["Positions"])


# ══════════════════════════════════════════════════════════════════════════
# Reads (public)
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "",
    response_model=PositionListResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="List all positions",
)
async def list_positions(
    db: AsyncSession = Depends(get_db_session),
    service: PositionService = Depends(get_position_service),
) -> PositionListResponse:
    positions = await service.list_positions(db)
    return PositionListResponse(
        positions=[PositionResponse.from_orm_row(p) for p in positions]
    )


@router.get(
    "/user/{user_id}",
    response_model=PositionListResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="List the positions created by a user",
)
async def list_positions_for_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
    service: PositionService = Depends(get_position_service),
) -> PositionListResponse:
    positions = await service.list_positions_for_user(db, user_id)
    return PositionListResponse(
        positions=[PositionResponse.from_orm_row(p) for p in positions]
    )


@router.get(
    "/{position_id}",
    response_model=PositionEnvelope,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Get a single position by id",
)
async def get_position(
    position_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
    service: PositionService = Depends(get_position_service),
) -> PositionEnvelope:
    position = await service.get_position(db, position_id)
    return PositionEnvelope(position=PositionResponse.from_orm_row(position))


# ══════════════════════════════════════════════════════════════════════════
# Writes (require a valid access token)
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "",
    status_code=201,
    response_model=PositionEnvelope,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Requester does not exist", "model": ErrorResponse},
        422: {"description": "Invalid fields, image or address", "model": ErrorResponse},
        500: {"description": "Creating position failed", "model": ErrorResponse},
    },
    summary="Create a position",
    description=(
        "Multipart form with title, description (min 5 chars), address and an "
        "image (PNG/JPEG). The address is geocoded; the position and the "
        "owner's membership are committed together."
    ),
)
async def create_position(
    title: str = Form(""),
    description: str = Form(""),
    address: str = Form(""),
    image: Optional[UploadFile] = File(None),
    requester: Requester = Depends(get_requester),
    db: AsyncSession = Depends(get_db_session),
    service: PositionService = Depends(get_position_service),
    files: FileService = Depends(get_file_service),
) -> PositionEnvelope:
    raise_for_errors(validate_position_create(title, description, address))

    if image is None:
        raise ValidationError(message="An image is required.", field="image")

    try:
        content = await image.read()
        image_path = await files.validate_and_store(
            filename=image.filename or "upload.jpg",
            content=content,
            content_type=image.content_type,
        )
    finally:
        await image.close()

    try:
        position = await service.create_position(
            db,
            title=title,
            description=description,
            address=address,
            image=image_path,
            requester_id=requester.user_id,
        )
    except Exception:
        # Nothing references the stored image now
        await files.cleanup_file(image_path)
        raise

    return PositionEnvelope(position=PositionResponse.from_orm_row(position))


@router.api_route(
    "/{position_id}",
    methods=["PUT", "PATCH"],
    response_model=PositionEnvelope,
    responses={
        401: {"description": "Missing token or not the creator", "model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Update title and description of a position",
)
async def update_position(
    position_id: uuid.UUID,
    body: PositionUpdateRequest,
    requester: Requester = Depends(get_requester),
    db: AsyncSession = Depends(get_db_session),
    service: PositionService = Depends(get_position_service),
) -> PositionEnvelope:
    raise_for_errors(validate_position_update(body.title, body.description))

    position = await service.update_position(
        db,
        position_id=position_id,
        title=body.title,
        description=body.description,
        requester_id=requester.user_id,
    )
    return PositionEnvelope(position=PositionResponse.from_orm_row(position))


@router.delete(
    "/{position_id}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Missing token or not the creator", "model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Delete a position",
)
async def delete_position(
    position_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    requester: Requester = Depends(get_requester),
    db: AsyncSession = Depends(get_db_session),
    service: PositionService = Depends(get_position_service),
    files: FileService = Depends(get_file_service),
) -> MessageResponse:
    image_path = await service.delete_position(
        db,
        position_id=position_id,
        requester_id=requester.user_id,
    )

    # Runs after the response is sent; cleanup_file logs and swallows errors.
    background_tasks.add_task(files.cleanup_file, image_path)

    return MessageResponse(message="Deleted position.")
