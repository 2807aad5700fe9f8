"""Create snacks table

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Creates the `snacks` table behind /api/snacks.
How:   Portable column types (sa.Uuid, timezone-aware DateTime) so the same
       revision applies to PostgreSQL and SQLite. Ids and timestamps are
       assigned by the application.

Rollback: downgrade() drops the table and every snack in it.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "snacks",
        sa.Column(
            "id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Opaque snack identifier",
        ),
        sa.Column(
            "name",
            sa.String(120),
            nullable=False,
            comment="Display name shown on the counter grid",
        ),
        sa.Column(
            "price",
            sa.Float(),
            nullable=False,
            comment="Unit price; zero is allowed",
        ),
        sa.Column(
            "category",
            sa.String(50),
            nullable=False,
            comment="Vegetarian, Non Vegetarian or Juice",
        ),
        sa.Column(
            "img",
            sa.String(512),
            nullable=False,
            comment="Absolute image URL or server-relative upload path",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When this snack was created (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # The catalog lists newest first
    op.create_index(
        "idx_snacks_created_at",
        "snacks",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_snacks_created_at", table_name="snacks")
    op.drop_table("snacks")
