"""
SnackCart Backend — Snack Service Unit Tests
=============================================

What:  Tests for SnackService business logic (list, get, create, update, delete).
How:   Mock DB sessions and a patched FileService (no real DB or disk).

What we test:
    ✅ Required-field check on create ("All fields are required")
    ✅ Price 0 is present on create and applied on update
    ✅ Non-empty-or-unchanged merge for name, category, img
    ✅ Unknown and malformed ids raise NotFoundError
    ✅ SQLAlchemy failures become StoreError; a stored photo is cleaned up
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from snackcart.exceptions import NotFoundError, StoreError, ValidationError
from snackcart.models.snack import Snack
from snackcart.services.snack_service import ImageUpload, SnackService, parse_price


def _result_with(snack):
    result = MagicMock()
    result.scalar_one_or_none.return_value = snack
    return result


def _assign_identity_on_flush(session):
    """Mimics the INSERT defaults the database would apply on flush."""
    async def flush():
        added = session.add.call_args[0][0]
        added.id = uuid.uuid4()
        added.created_at = datetime.now(timezone.utc)
    session.flush = AsyncMock(side_effect=flush)


class TestParsePrice:

    def test_numeric_strings(self):
        assert parse_price("30") == 30.0
        assert parse_price(" 12.50 ") == 12.5

    def test_zero_is_valid(self):
        assert parse_price(0) == 0.0
        assert parse_price("0") == 0.0

    @pytest.mark.parametrize("value", ["", "   ", None, "abc", "-5", "nan", "inf", True])
    def test_rejected_values(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_price(value)
        assert exc_info.value.field == "price"


class TestSnackServiceRead:

    def setup_method(self):
        self.service = SnackService()

    @pytest.mark.asyncio
    async def test_list_snacks(self, mock_db_session, sample_snack_data):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [Snack(**sample_snack_data)]
        mock_db_session.execute = AsyncMock(return_value=result)

        snacks = await self.service.list_snacks(mock_db_session)

        assert len(snacks) == 1
        assert snacks[0].name == "Chips"
        assert snacks[0].id == sample_snack_data["id"]

    @pytest.mark.asyncio
    async def test_list_snacks_store_failure(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))

        with pytest.raises(StoreError, match="Error fetching snacks"):
            await self.service.list_snacks(mock_db_session)

    @pytest.mark.asyncio
    async def test_get_snack_not_found(self, mock_db_session):
        mock_db_session.execute = AsyncMock(return_value=_result_with(None))

        with pytest.raises(NotFoundError, match="Snack not found"):
            await self.service.get_snack(mock_db_session, str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_snack(mock_db_session, "not-a-uuid")
        mock_db_session.execute.assert_not_awaited()


class TestSnackServiceCreate:

    def setup_method(self):
        self.service = SnackService()

    @pytest.mark.asyncio
    async def test_create_with_image_url(self, mock_db_session):
        _assign_identity_on_flush(mock_db_session)

        result = await self.service.create_snack(
            mock_db_session,
            name=" Soda ",
            price="30",
            category="Juice",
            img="https://cdn.example.com/soda.jpg",
        )

        assert result.name == "Soda"
        assert result.price == 30.0
        assert result.category == "Juice"
        assert result.img == "https://cdn.example.com/soda.jpg"
        mock_db_session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_price_zero_is_present(self, mock_db_session):
        _assign_identity_on_flush(mock_db_session)

        result = await self.service.create_snack(
            mock_db_session, name="Water", price="0", category="Juice", img="/uploads/water.jpg"
        )

        assert result.price == 0.0

    @pytest.mark.asyncio
    async def test_create_missing_fields(self, mock_db_session):
        with pytest.raises(ValidationError, match="All fields are required") as exc_info:
            await self.service.create_snack(mock_db_session, name="Chips", price="", category="Vegetarian")

        assert exc_info.value.context["missing"] == ["price", "img"]
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_rejects_negative_price(self, mock_db_session):
        with pytest.raises(ValidationError, match="non-negative"):
            await self.service.create_snack(
                mock_db_session, name="Chips", price="-5", category="Vegetarian", img="/uploads/c.jpg"
            )

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_category(self, mock_db_session):
        with pytest.raises(ValidationError, match="not supported"):
            await self.service.create_snack(
                mock_db_session, name="Chips", price="5", category="Dessert", img="/uploads/c.jpg"
            )

    @pytest.mark.asyncio
    async def test_create_rejects_long_name(self, mock_db_session):
        with pytest.raises(ValidationError, match="at most 120") as exc_info:
            await self.service.create_snack(
                mock_db_session, name="x" * 121, price="5", category="Vegetarian", img="/uploads/c.jpg"
            )

        assert exc_info.value.context["field"] == "name"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_accepts_name_at_limit(self, mock_db_session):
        _assign_identity_on_flush(mock_db_session)

        result = await self.service.create_snack(
            mock_db_session, name="x" * 120, price="5", category="Vegetarian", img="/uploads/c.jpg"
        )

        assert len(result.name) == 120

    @pytest.mark.asyncio
    async def test_create_rejects_long_img(self, mock_db_session):
        with pytest.raises(ValidationError, match="at most 512") as exc_info:
            await self.service.create_snack(
                mock_db_session,
                name="Chips",
                price="5",
                category="Vegetarian",
                img="https://cdn.example.com/" + "a" * 500,
            )

        assert exc_info.value.context["field"] == "img"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_with_upload_stores_file(self, mock_db_session, sample_image_bytes):
        _assign_identity_on_flush(mock_db_session)
        upload = ImageUpload(filename="soda.jpg", content=sample_image_bytes)

        with patch("snackcart.services.snack_service.file_service") as mock_file:
            mock_file.validate_and_store = AsyncMock(
                return_value=("/srv/uploads/2026/10/17/x.jpg", "/uploads/2026/10/17/x.jpg")
            )
            result = await self.service.create_snack(
                mock_db_session, name="Soda", price="30", category="Juice",
                img="https://ignored.example.com/a.jpg", upload=upload,
            )

        assert result.img == "/uploads/2026/10/17/x.jpg"
        mock_file.validate_and_store.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_store_failure_removes_stored_file(self, mock_db_session, sample_image_bytes):
        mock_db_session.flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("down")))
        upload = ImageUpload(filename="soda.jpg", content=sample_image_bytes)

        with patch("snackcart.services.snack_service.file_service") as mock_file:
            mock_file.validate_and_store = AsyncMock(
                return_value=("/srv/uploads/2026/10/17/x.jpg", "/uploads/2026/10/17/x.jpg")
            )
            mock_file.cleanup_file = AsyncMock()

            with pytest.raises(StoreError, match="Error adding snack"):
                await self.service.create_snack(
                    mock_db_session, name="Soda", price="30", category="Juice", upload=upload
                )

            mock_file.cleanup_file.assert_awaited_once_with("/srv/uploads/2026/10/17/x.jpg")


class TestSnackServiceUpdateDelete:

    def setup_method(self):
        self.service = SnackService()

    @pytest.mark.asyncio
    async def test_update_price_zero_applied(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(return_value=_result_with(snack))

        result, replaced = await self.service.update_snack(
            mock_db_session, str(snack.id), price=0
        )

        assert result.price == 0.0
        assert replaced is None

    @pytest.mark.asyncio
    async def test_update_empty_fields_keep_values(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(return_value=_result_with(snack))

        result, _ = await self.service.update_snack(
            mock_db_session, str(snack.id), name="", category="  ", img="", price=None
        )

        assert result.name == "Chips"
        assert result.category == "Vegetarian"
        assert result.img == sample_snack_data["img"]
        assert result.price == 50.0

    @pytest.mark.asyncio
    async def test_update_new_image_reports_replaced(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(side_effect=[_result_with(snack), _result_with(None)])

        result, replaced = await self.service.update_snack(
            mock_db_session, str(snack.id), img="https://cdn.example.com/new.jpg"
        )

        assert result.img == "https://cdn.example.com/new.jpg"
        assert replaced == sample_snack_data["img"]

    @pytest.mark.asyncio
    async def test_update_keeps_image_another_snack_shows(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(side_effect=[_result_with(snack), _result_with(uuid.uuid4())])

        result, replaced = await self.service.update_snack(
            mock_db_session, str(snack.id), img="https://cdn.example.com/new.jpg"
        )

        assert result.img == "https://cdn.example.com/new.jpg"
        assert replaced is None

    @pytest.mark.asyncio
    async def test_update_rejects_long_name(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(return_value=_result_with(snack))

        with pytest.raises(ValidationError, match="at most 120") as exc_info:
            await self.service.update_snack(mock_db_session, str(snack.id), name="x" * 121)

        assert exc_info.value.context["field"] == "name"
        assert snack.name == "Chips"
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_rejects_long_img(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(return_value=_result_with(snack))

        with pytest.raises(ValidationError, match="at most 512") as exc_info:
            await self.service.update_snack(
                mock_db_session, str(snack.id), img="https://cdn.example.com/" + "a" * 500
            )

        assert exc_info.value.context["field"] == "img"
        assert snack.img == sample_snack_data["img"]

    @pytest.mark.asyncio
    async def test_update_invalid_price_leaves_snack(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(return_value=_result_with(snack))

        with pytest.raises(ValidationError):
            await self.service.update_snack(mock_db_session, str(snack.id), name="Crisps", price="abc")

        assert snack.name == "Chips"
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, mock_db_session):
        mock_db_session.execute = AsyncMock(return_value=_result_with(None))

        with pytest.raises(NotFoundError):
            await self.service.update_snack(mock_db_session, str(uuid.uuid4()), price=10)

    @pytest.mark.asyncio
    async def test_delete_snack(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(side_effect=[_result_with(snack), _result_with(None)])

        confirmation, image_ref = await self.service.delete_snack(mock_db_session, str(snack.id))

        assert confirmation.message == "Snack deleted successfully"
        assert confirmation.id == str(snack.id)
        assert image_ref == sample_snack_data["img"]
        mock_db_session.delete.assert_awaited_once_with(snack)

    @pytest.mark.asyncio
    async def test_delete_keeps_image_another_snack_shows(self, mock_db_session, sample_snack_data):
        snack = Snack(**sample_snack_data)
        mock_db_session.execute = AsyncMock(side_effect=[_result_with(snack), _result_with(uuid.uuid4())])

        _, image_ref = await self.service.delete_snack(mock_db_session, str(snack.id))

        assert image_ref is None
        mock_db_session.delete.assert_awaited_once_with(snack)

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, mock_db_session):
        mock_db_session.execute = AsyncMock(return_value=_result_with(None))

        with pytest.raises(NotFoundError):
            await self.service.delete_snack(mock_db_session, str(uuid.uuid4()))
        mock_db_session.delete.assert_not_awaited()
