"""
Pinboard Backend: Uploaded Image Serving
=========================================

What:  GET /uploads/images/{name} returns a stored image.
Who:   <img> tags in the frontend that reference a position's or user's
       `image` path.

Security:
    Only files directly inside the images directory are served. Any path
    that resolves elsewhere (e.g. ../../etc/passwd) answers 404.
"""

import logging
import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from pinboard.exceptions import NotFoundError
from pinboard.services.file_service import FileService, get_file_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


@router.get(
    "/uploads/images/{file_name:path}",
    response_class=FileResponse,
    summary="Serve an uploaded image",
)
async def serve_image(
    file_name: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    images_dir = files.images_dir.resolve()
    full_path = (images_dir / file_name).resolve()

    if full_path.parent != images_dir or not full_path.is_file():
        if full_path.parent != images_dir:
            logger.warning("Rejected image path outside storage: %s", file_name)
        raise NotFoundError(
            message="Could not find this image.",
            resource="image",
            resource_id=file_name,
        )

    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=86400"},
    )
