"""
SnackCart Backend — Snack SQLAlchemy Model
===========================================

What:  ORM model representing the `snacks` table.
Who:   Used by SnackService for CRUD operations and by Alembic for schema management.

Table Design:
    - UUID primary key: opaque to clients, generated in Python so the same
      model works on PostgreSQL and SQLite
    - price: non-negative float; zero is a valid price
    - category: one of the fixed categories, enforced by the service layer
    - img: absolute URL or server-relative upload path
    - created_at: UTC; the list endpoint sorts on it newest-first

    Index on created_at DESC backs the only query the catalog runs.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from snackcart.database import Base

NAME_MAX_LENGTH = 120
IMG_MAX_LENGTH = 512


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snack(Base):
    """
    A snack sold at the counter.

    Lifecycle:
        1. Created by POST /api/snacks with all four fields
        2. Patched by PUT /api/snacks/{id} (any subset of fields)
        3. Removed permanently by DELETE /api/snacks/{id}
    """

    __tablename__ = "snacks"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Opaque snack identifier",
    )

    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=False,
        comment="Display name shown on the counter grid",
    )

    price: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Unit price; zero is allowed",
    )

    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Vegetarian, Non Vegetarian or Juice",
    )

    # Why 512: remote image URLs can carry long query strings
    img: Mapped[str] = mapped_column(
        String(IMG_MAX_LENGTH),
        nullable=False,
        comment="Absolute image URL or server-relative upload path",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        comment="When this snack was created (UTC)",
    )

    __table_args__ = (
        Index("idx_snacks_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Snack(id={self.id}, name='{self.name}', category='{self.category}', "
            f"price={self.price})>"
        )
