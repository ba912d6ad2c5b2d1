"""Seed the default item catalog

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:00:01.000000+00:00

The icon files themselves are deployed into STORAGE_ROOT alongside uploads.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from ecol.models.item import DEFAULT_ITEMS

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

items_table = sa.table(
    "items",
    sa.column("title", sa.String),
    sa.column("image", sa.String),
)


def upgrade() -> None:
    op.bulk_insert(items_table, DEFAULT_ITEMS)


def downgrade() -> None:
    images = [item["image"] for item in DEFAULT_ITEMS]
    op.execute(items_table.delete().where(items_table.c.image.in_(images)))
