"""
SnackCart Backend — Snack Route Handlers
=========================================

What:  The catalog REST surface.

    GET    /api/snacks          list, newest first
    POST   /api/snacks          create (multipart: name, price, category, img file or URL)
    GET    /api/snacks/{id}     single snack
    PUT    /api/snacks/{id}     partial update (multipart or JSON)
    DELETE /api/snacks/{id}     permanent delete

How:   Handlers read the body (multipart form or JSON), hand the raw field
       values to SnackService, and return its result. Validation and merge
       rules live in the service; errors are formatted by the global handlers.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from snackcart.database import get_db_session
from snackcart.exceptions import ValidationError
from snackcart.schemas.snack import (
    DeleteResponse,
    ErrorResponse,
    SnackResponse,
    SnackUpdate,
)
from snackcart.services.file_service import file_service
from snackcart.services.snack_service import ImageUpload, snack_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/snacks", tags=["Snacks"])

_TEXT_FIELDS = ("name", "price", "category")


async def _read_snack_body(request: Request) -> Tuple[Dict[str, Any], Optional[ImageUpload]]:
    """
    Extracts snack fields and an optional photo from a JSON or form body.

    Returns:
        (fields, upload): fields holds name/price/category/img as sent;
        upload is set when the `img` form field carries a file.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            payload = SnackUpdate.model_validate(await request.json())
        except (ValueError, PydanticValidationError):
            raise ValidationError(
                message="Request body must be a JSON object with name, price, category or img.",
            )
        return payload.model_dump(), None

    form = await request.form()
    fields: Dict[str, Any] = {
        key: form.get(key) for key in _TEXT_FIELDS if isinstance(form.get(key), str)
    }

    upload: Optional[ImageUpload] = None
    img = form.get("img")
    if isinstance(img, UploadFile):
        try:
            if img.filename:
                content = await img.read()
                upload = ImageUpload(
                    filename=img.filename,
                    content=content,
                    content_length=img.size,
                )
                logger.info("Received upload: filename=%s, size=%d bytes", img.filename, len(content))
        finally:
            await img.close()
    elif isinstance(img, str):
        fields["img"] = img

    return fields, upload


@router.get(
    "",
    response_model=List[SnackResponse],
    responses={500: {"description": "Store error", "model": ErrorResponse}},
    summary="List all snacks, newest first",
)
async def list_snacks(db: AsyncSession = Depends(get_db_session)) -> List[SnackResponse]:
    return await snack_service.list_snacks(db)


@router.post(
    "",
    status_code=201,
    response_model=SnackResponse,
    responses={
        400: {"description": "Missing or invalid field", "model": ErrorResponse},
        500: {"description": "Store error", "model": ErrorResponse},
    },
    summary="Add a snack",
    description=(
        "Multipart form with name, price, category and img. `img` may be an image "
        "file (stored under /uploads) or an absolute image URL."
    ),
)
async def create_snack(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> SnackResponse:
    fields, upload = await _read_snack_body(request)
    return await snack_service.create_snack(db, upload=upload, **fields)


@router.get(
    "/{snack_id}",
    response_model=SnackResponse,
    responses={
        404: {"description": "Snack not found", "model": ErrorResponse},
        500: {"description": "Store error", "model": ErrorResponse},
    },
    summary="Get a single snack",
)
async def get_snack(snack_id: str, db: AsyncSession = Depends(get_db_session)) -> SnackResponse:
    return await snack_service.get_snack(db, snack_id)


@router.put(
    "/{snack_id}",
    response_model=SnackResponse,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        404: {"description": "Snack not found", "model": ErrorResponse},
        500: {"description": "Store error", "model": ErrorResponse},
    },
    summary="Update a snack",
    description=(
        "Any of name, price, category, img. Omitted or empty fields keep their "
        "stored value; a price of 0 is applied."
    ),
)
async def update_snack(
    snack_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> SnackResponse:
    fields, upload = await _read_snack_body(request)
    updated, replaced_img = await snack_service.update_snack(db, snack_id, upload=upload, **fields)
    if replaced_img:
        # Runs after the response, once the session dependency has committed
        background_tasks.add_task(file_service.cleanup_public_path, replaced_img)
    return updated


@router.delete(
    "/{snack_id}",
    response_model=DeleteResponse,
    responses={
        404: {"description": "Snack not found", "model": ErrorResponse},
        500: {"description": "Store error", "model": ErrorResponse},
    },
    summary="Delete a snack",
)
async def delete_snack(
    snack_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> DeleteResponse:
    result, image_ref = await snack_service.delete_snack(db, snack_id)
    if image_ref:
        background_tasks.add_task(file_service.cleanup_public_path, image_ref)
    return result
