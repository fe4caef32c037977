"""
Pinboard Backend: Users Route Handlers
=======================================

What:  User listing, signup (multipart with avatar image) and login.
Who:   Called by the frontend's users page and auth form.

Signup Flow:
    1. name/email/password validated → 422, nothing stored
    2. Avatar validated and stored → public path
    3. UserService.signup() checks uniqueness, hashes, inserts
    4. On any failure after step 2 the stored avatar is removed
    5. 201 {"userId", "email", "token"}
"""

import logging
from typing import Optional

from email_validator import EmailNotValidError
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pinboard.database import get_db_session
from pinboard.exceptions import ValidationError
from pinboard.schemas.common import ErrorResponse
from pinboard.schemas.user import (
    AuthResponse,
    LoginRequest,
    UserListResponse,
    UserResponse,
)
from pinboard.services.file_service import FileService, get_file_service
from pinboard.services.user_service import UserService, get_user_service
from pinboard.validation import normalize_email, raise_for_errors, validate_signup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get(
    "",
    response_model=UserListResponse,
    responses={500: {"model": ErrorResponse}},
    summary="List all users",
)
async def list_users(
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    users = await service.list_users(db)
    return UserListResponse(users=[UserResponse.from_orm_row(u) for u in users])


@router.post(
    "/signup",
    status_code=201,
    response_model=AuthResponse,
    responses={
        422: {"description": "Invalid inputs, bad image or email taken", "model": ErrorResponse},
        500: {"description": "Signing up failed", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
    files: FileService = Depends(get_file_service),
) -> AuthResponse:
    raise_for_errors(validate_signup(name, email, password))

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
        result = await service.signup(
            db,
            name=name,
            email=normalize_email(email),
            password=password,
            image=image_path,
        )
    except Exception:
        await files.cleanup_file(image_path)
        raise

    return AuthResponse(userId=result.user.id, email=result.user.email, token=result.token)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        403: {"description": "Invalid credentials", "model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Log in and receive an access token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> AuthResponse:
    try:
        email = normalize_email(body.email)
    except EmailNotValidError:
        # Unknown to the store either way; login answers 403 below
        email = body.email.strip().lower()

    result = await service.login(db, email=email, password=body.password)
    return AuthResponse(userId=result.user.id, email=result.user.email, token=result.token)
