"""create_index_items

Revision ID: 0001_create_index_items
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_create_index_items"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "index_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("letter", sa.String(length=1), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("campus", sa.String(length=100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("char_length(letter) = 1", name="check_letter_length"),
    )

    # Listing queries filter by letter or campus and sort by title
    op.create_index(
        "ix_index_items_letter_title", "index_items", ["letter", "title"]
    )
    op.create_index(
        "ix_index_items_campus_letter", "index_items", ["campus", "letter"]
    )


def downgrade() -> None:
    op.drop_index("ix_index_items_campus_letter", table_name="index_items")
    op.drop_index("ix_index_items_letter_title", table_name="index_items")
    op.drop_table("index_items")
