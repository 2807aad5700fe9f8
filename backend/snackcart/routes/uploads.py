"""
SnackCart Backend — Uploaded Photo Serving
===========================================

What:  GET /uploads/{path} returns a stored snack photo.
Who:   <img> tags in the admin grid, via the client's image resolution
       (server-relative `img` values are joined to the asset base URL).

Security:
    - The path is resolved against UPLOADS_ROOT and must stay inside it
    - Only files FileService wrote are reachable
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from snackcart.config import settings
from snackcart.exceptions import NotFoundError, ValidationError
from snackcart.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.uploads_url_path, tags=["Uploads"])


@router.get(
    "/{file_path:path}",
    summary="Serve an uploaded snack photo",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Invalid path"},
        404: {"description": "File not found"},
    },
)
async def serve_upload(file_path: str) -> FileResponse:
    full_path = file_service.resolve_public_path(f"{file_service.url_path}/{file_path}")
    if full_path is None:
        logger.warning("Rejected upload path outside storage root: %s", file_path)
        raise ValidationError(message="Invalid file path")

    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    # media type is guessed from the extension
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
