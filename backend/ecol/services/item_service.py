"""
Ecol Backend: Item Service
==========================

What:  Read access to the item catalog and seeding of the default items.
Who:   GET /items, PointService (item id checks) and the startup bootstrap.
"""

import logging
from typing import Iterable, List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ecol.exceptions import DatabaseError
from ecol.models.item import DEFAULT_ITEMS, Item
from ecol.schemas.item import ItemResponse
from ecol.services.file_service import image_url_for

logger = logging.getLogger(__name__)


class ItemService:

    async def list_items(self, db: AsyncSession) -> List[ItemResponse]:
        """All items ordered by id, with absolute icon URLs."""
        try:
            result = await db.execute(select(Item).order_by(Item.id))
            items = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing items: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve items. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [
            ItemResponse(id=item.id, title=item.title, image_url=image_url_for(item.image))
            for item in items
        ]

    async def find_missing_item_ids(self, db: AsyncSession, item_ids: Iterable[int]) -> List[int]:
        """Return the ids in `item_ids` that have no row in `items`, in input order."""
        wanted = list(dict.fromkeys(item_ids))
        if not wanted:
            return []
        result = await db.execute(select(Item.id).where(Item.id.in_(wanted)))
        existing = set(result.scalars().all())
        return [item_id for item_id in wanted if item_id not in existing]

    async def seed_default_items(self, db: AsyncSession) -> int:
        """
        Insert DEFAULT_ITEMS into an empty catalog.

        Returns the number of rows inserted (0 when items already exist).
        The caller owns the transaction.
        """
        count = (await db.execute(select(func.count(Item.id)))).scalar() or 0
        if count:
            logger.debug("Item catalog already has %d rows, skipping seed", count)
            return 0

        db.add_all([Item(**data) for data in DEFAULT_ITEMS])
        await db.flush()
        logger.info("Seeded %d default items", len(DEFAULT_ITEMS))
        return len(DEFAULT_ITEMS)


item_service = ItemService()
