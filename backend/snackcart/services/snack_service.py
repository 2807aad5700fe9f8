"""
SnackCart Backend — Snack Service (Business Logic)
===================================================

What:  The five catalog operations behind /api/snacks: list, get, create,
       update, delete.
How:   Validates and normalizes the submitted fields, stores an uploaded photo
       through FileService, and maps each operation onto a single read or
       write against the snacks table.
Who:   Called by the snack route handlers.

Field rules:
    create  name, price, category and an image source are all required.
            A price of 0 is present, not missing.
    update  name, category and img are "non-empty-or-unchanged";
            price is "supplied-or-unchanged" (0 is a valid new price).
    both    price must parse as a finite non-negative number and category
            must be one of CATEGORIES.

Error translation:
    None from the store       → NotFoundError (404)
    SQLAlchemyError           → StoreError (500, details logged only)
    ValidationError / FileStorageError from FileService propagate as-is.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snackcart.exceptions import NotFoundError, StoreError, ValidationError
from snackcart.models.snack import IMG_MAX_LENGTH, NAME_MAX_LENGTH, Snack
from snackcart.schemas.snack import CATEGORIES, DeleteResponse, SnackResponse
from snackcart.services.file_service import file_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    """A photo received in the multipart `img` field."""
    filename: str
    content: bytes
    content_length: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Field normalization
# ══════════════════════════════════════════════════════════════════════════

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_price(value: Any) -> float:
    """
    Parses a submitted price into a float.

    Accepts numbers and numeric strings ("30", " 12.50 "). Rejects booleans,
    blanks, non-numeric text, NaN/infinity and negatives with a ValidationError.
    """
    if isinstance(value, bool) or _is_blank(value):
        raise ValidationError(message="Price must be a number.", field="price")
    try:
        price = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValidationError(
            message=f"Price '{value}' is not a valid number.",
            field="price",
            context={"value": str(value)},
        )
    if not math.isfinite(price) or price < 0:
        raise ValidationError(
            message="Price must be a non-negative number.",
            field="price",
            context={"value": str(value)},
        )
    return price


def validate_category(value: str) -> str:
    category = value.strip()
    if category not in CATEGORIES:
        raise ValidationError(
            message=f"Category '{category}' is not supported. Choose one of: {', '.join(CATEGORIES)}",
            field="category",
            context={"allowed": list(CATEGORIES)},
        )
    return category


def check_length(value: str, field: str, limit: int) -> str:
    if len(value) > limit:
        raise ValidationError(
            message=f"Field '{field}' must be at most {limit} characters.",
            field=field,
            context={"max_length": limit, "length": len(value)},
        )
    return value


def _parse_id(snack_id: str) -> uuid.UUID:
    # A malformed identifier can never match a stored snack
    try:
        return uuid.UUID(str(snack_id))
    except ValueError:
        raise NotFoundError(resource="snack", resource_id=str(snack_id), message="Snack not found")


class SnackService:
    """
    Stateless business logic layer for snack operations.

    Each method receives the request's AsyncSession; the commit happens in
    get_db_session once the handler returns.
    """

    async def list_snacks(self, db: AsyncSession) -> List[SnackResponse]:
        """
        Returns every snack, newest first.

        Query plan:
            SELECT * FROM snacks ORDER BY created_at DESC
            → idx_snacks_created_at
        """
        try:
            result = await db.execute(select(Snack).order_by(desc(Snack.created_at)))
            snacks = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing snacks: %s", str(e), exc_info=True)
            raise StoreError(
                message="Error fetching snacks. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.debug("Listed %d snacks", len(snacks))
        return [SnackResponse.model_validate(snack) for snack in snacks]

    async def get_snack(self, db: AsyncSession, snack_id: str) -> SnackResponse:
        snack = await self._load(db, snack_id)
        return SnackResponse.model_validate(snack)

    async def create_snack(
        self,
        db: AsyncSession,
        name: Optional[str] = None,
        price: Any = None,
        category: Optional[str] = None,
        img: Optional[str] = None,
        upload: Optional[ImageUpload] = None,
    ) -> SnackResponse:
        """
        Validates the four required fields, stores the photo, inserts the row.

        A file upload wins over an `img` string when both are sent.

        Raises:
            ValidationError: a required field is missing or invalid (→ 400)
            FileStorageError: the photo could not be written (→ 500)
            StoreError: the insert failed (→ 500); the stored photo is removed
        """
        missing = [
            field
            for field, value in (("name", name), ("price", price), ("category", category))
            if _is_blank(value)
        ]
        if upload is None and _is_blank(img):
            missing.append("img")
        if missing:
            raise ValidationError(
                message="All fields are required",
                context={"missing": missing},
            )

        clean_name = check_length(name.strip(), "name", NAME_MAX_LENGTH)
        parsed_price = parse_price(price)
        parsed_category = validate_category(category)
        if upload is None:
            check_length(img.strip(), "img", IMG_MAX_LENGTH)

        absolute_path: Optional[str] = None
        if upload is not None:
            absolute_path, image_ref = await file_service.validate_and_store(
                filename=upload.filename,
                content=upload.content,
                content_length=upload.content_length,
            )
        else:
            image_ref = img.strip()

        snack = Snack(
            name=clean_name,
            price=parsed_price,
            category=parsed_category,
            img=image_ref,
        )
        try:
            db.add(snack)
            await db.flush()
        except SQLAlchemyError as e:
            if absolute_path:
                await file_service.cleanup_file(absolute_path)
            logger.error("Database error adding snack: %s", str(e), exc_info=True)
            raise StoreError(
                message="Error adding snack. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Snack created: %s (%s, %.2f)", snack.id, snack.category, snack.price)
        return SnackResponse.model_validate(snack)

    async def update_snack(
        self,
        db: AsyncSession,
        snack_id: str,
        name: Optional[str] = None,
        price: Any = None,
        category: Optional[str] = None,
        img: Optional[str] = None,
        upload: Optional[ImageUpload] = None,
    ) -> Tuple[SnackResponse, Optional[str]]:
        """
        Merges the supplied fields over an existing snack.

        Returns:
            (updated snack, replaced image path or None). The caller removes
            the replaced file once the transaction has committed. A path that
            another snack still shows is not reported.

        Raises:
            NotFoundError: unknown id (→ 404)
            ValidationError: a supplied field is invalid (→ 400)
            StoreError: the write failed (→ 500)
        """
        snack = await self._load(db, snack_id)

        new_name = None if _is_blank(name) else check_length(name.strip(), "name", NAME_MAX_LENGTH)
        if upload is None and not _is_blank(img):
            check_length(img.strip(), "img", IMG_MAX_LENGTH)
        new_price = None if _is_blank(price) else parse_price(price)
        new_category = None if _is_blank(category) else validate_category(category)

        absolute_path: Optional[str] = None
        new_img: Optional[str] = None
        if upload is not None:
            absolute_path, new_img = await file_service.validate_and_store(
                filename=upload.filename,
                content=upload.content,
                content_length=upload.content_length,
            )
        elif not _is_blank(img):
            new_img = img.strip()

        previous_img = snack.img
        if new_name is not None:
            snack.name = new_name
        if new_price is not None:
            snack.price = new_price
        if new_category is not None:
            snack.category = new_category
        if new_img is not None:
            snack.img = new_img

        try:
            await db.flush()
        except SQLAlchemyError as e:
            if absolute_path:
                await file_service.cleanup_file(absolute_path)
            logger.error("Database error updating snack %s: %s", snack_id, str(e), exc_info=True)
            raise StoreError(
                message="Error updating snack. Please try again.",
                context={"snack_id": str(snack_id), "error_type": type(e).__name__},
            )

        replaced = previous_img if new_img is not None and new_img != previous_img else None
        if replaced and await self._is_referenced(db, replaced):
            replaced = None
        logger.info("Snack updated: %s", snack.id)
        return SnackResponse.model_validate(snack), replaced

    async def delete_snack(self, db: AsyncSession, snack_id: str) -> Tuple[DeleteResponse, Optional[str]]:
        """
        Permanently removes a snack.

        Returns:
            (confirmation, image path of the removed snack, or None when
            another snack still shows the same photo)
        """
        snack = await self._load(db, snack_id)
        image_ref = snack.img
        try:
            await db.delete(snack)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting snack %s: %s", snack_id, str(e), exc_info=True)
            raise StoreError(
                message="Error deleting snack. Please try again.",
                context={"snack_id": str(snack_id), "error_type": type(e).__name__},
            )

        if await self._is_referenced(db, image_ref):
            image_ref = None
        logger.info("Snack deleted: %s", snack_id)
        return DeleteResponse(id=str(snack.id)), image_ref

    async def _is_referenced(self, db: AsyncSession, img: str) -> bool:
        """
        True when a remaining snack still points at `img`.

        Query plan:
            SELECT id FROM snacks WHERE img = :img LIMIT 1 → sequential scan
        """
        try:
            result = await db.execute(select(Snack.id).where(Snack.img == img).limit(1))
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            # Keep the file when the answer is unknown
            logger.warning("Could not check references to %s: %s", img, str(e))
            return True

    async def _load(self, db: AsyncSession, snack_id: str) -> Snack:
        """
        Fetches one snack by id.

        Query plan:
            SELECT * FROM snacks WHERE id = :uuid → primary key lookup
        """
        key = _parse_id(snack_id)
        try:
            result = await db.execute(select(Snack).where(Snack.id == key))
            snack = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching snack %s: %s", snack_id, str(e))
            raise StoreError(
                message="Could not retrieve the snack. Please try again.",
                context={"snack_id": str(snack_id)},
            )

        if snack is None:
            raise NotFoundError(resource="snack", resource_id=str(snack_id), message="Snack not found")
        return snack


snack_service = SnackService()
