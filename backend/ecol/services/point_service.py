"""
Ecol Backend: Point Service (Business Logic)
============================================

What:  Listing, detail lookup and creation of collection points.
Why:   Keeps query building and the create transaction out of the routes.
Who:   Called by the /points route handlers.

Create Flow (POST /points):
    ┌────────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐
    │ Check item │───▶│ Store image  │───▶│ INSERT point │───▶│ INSERT       │
    │ ids exist  │    │ (optional)   │    │ flush → id   │    │ point_items  │
    └────────────┘    └──────────────┘    └──────────────┘    └──────────────┘

    Both inserts share the request session; get_db_session commits once the
    handler returns, or rolls back everything on error. A stored image is
    removed when any later step fails.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ecol.config import settings
from ecol.exceptions import DatabaseError, EcolError, NotFoundError, ValidationError
from ecol.models import Item, Point, PointItem
from ecol.schemas.item import ItemTitle
from ecol.schemas.point import (
    MAX_ID,
    PointCreate,
    PointDetailResponse,
    PointFilter,
    PointResponse,
)
from ecol.services.file_service import file_service, image_url_for
from ecol.services.item_service import item_service

logger = logging.getLogger(__name__)


def to_point_response(point: Point) -> PointResponse:
    return PointResponse(
        id=point.id,
        image=point.image,
        image_url=image_url_for(point.image),
        name=point.name,
        email=point.email,
        whatsapp=point.whatsapp,
        latitude=point.latitude,
        longitude=point.longitude,
        city=point.city,
        state=point.state,
    )


class PointService:
    """
    Stateless service; every method receives the request's session.

    Error Handling:
        SQLAlchemy errors are wrapped in DatabaseError (details logged only).
        Application errors (ValidationError, NotFoundError, FileStorageError)
        propagate unchanged to the global handlers.
    """

    async def list_points(self, db: AsyncSession, filters: PointFilter) -> List[PointResponse]:
        """
        Points accepting ANY of `filters.item_ids` in the given city and state.

        Query plan (all filters set):
            SELECT DISTINCT points.* FROM points
            JOIN point_items ON points.id = point_items.point_id
            WHERE point_items.item_id IN (:ids)
              AND points.city = :city AND points.state = :state
            ORDER BY points.id

        A point linked to several of the requested items appears once.
        """
        query = select(Point)

        if filters.item_ids:
            query = query.join(PointItem, PointItem.point_id == Point.id).where(
                PointItem.item_id.in_(filters.item_ids)
            )
        if filters.city:
            query = query.where(Point.city == filters.city)
        if filters.state:
            query = query.where(Point.state == filters.state)

        query = query.distinct().order_by(Point.id)

        try:
            result = await db.execute(query)
            points = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing points: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve points. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.debug(
            "Listed %d points (city=%s, state=%s, items=%s)",
            len(points), filters.city, filters.state, filters.item_ids,
        )
        return [to_point_response(point) for point in points]

    async def get_point(self, db: AsyncSession, point_id: int) -> PointDetailResponse:
        """
        A point and the titles of the items it accepts.

        Raises:
            NotFoundError: no point with this id ("Point not found", HTTP 400)
            DatabaseError: query execution failed
        """
        # No row can hold an id outside the INTEGER column range
        if not 1 <= point_id <= MAX_ID:
            raise NotFoundError(resource="point", resource_id=str(point_id))

        try:
            result = await db.execute(select(Point).where(Point.id == point_id))
            point = result.scalar_one_or_none()

            if point is None:
                raise NotFoundError(resource="point", resource_id=str(point_id))

            titles = await db.execute(
                select(Item.title)
                .join(PointItem, PointItem.item_id == Item.id)
                .where(PointItem.point_id == point_id)
                .order_by(Item.id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error fetching point %s: %s", point_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the point. Please try again.",
                context={"point_id": point_id},
            )

        return PointDetailResponse(
            point=to_point_response(point),
            items=[ItemTitle(title=title) for title in titles.scalars().all()],
        )

    async def create_point(
        self,
        db: AsyncSession,
        payload: PointCreate,
        image_filename: Optional[str] = None,
        image_content: Optional[bytes] = None,
        image_size: Optional[int] = None,
    ) -> PointResponse:
        """
        Insert a point and one point_items row per distinct item id.

        Args:
            db: Request session (commit/rollback handled by get_db_session)
            payload: Validated body; `items` is already de-duplicated
            image_filename / image_content / image_size: optional upload

        Raises:
            ValidationError: unknown item ids, invalid upload
            FileStorageError: upload could not be written
            DatabaseError: insert failed
        """
        stored_image: Optional[str] = None

        try:
            missing = await item_service.find_missing_item_ids(db, payload.items)
            if missing:
                raise ValidationError(
                    message=f"Unknown item ids: {', '.join(str(i) for i in missing)}",
                    field="items",
                    context={"missing": missing},
                )

            if image_content is not None:
                stored_image = await file_service.validate_and_store(
                    filename=image_filename or "upload.jpg",
                    content=image_content,
                    content_length=image_size,
                )

            point = Point(
                image=stored_image or settings.default_point_image,
                name=payload.name,
                email=payload.email,
                whatsapp=payload.whatsapp,
                latitude=payload.latitude,
                longitude=payload.longitude,
                city=payload.city,
                state=payload.state,
            )
            db.add(point)
            await db.flush()  # assigns point.id

            db.add_all([PointItem(point_id=point.id, item_id=item_id) for item_id in payload.items])
            await db.flush()

        except EcolError:
            if stored_image:
                await file_service.cleanup_file(stored_image)
            raise
        except SQLAlchemyError as e:
            if stored_image:
                await file_service.cleanup_file(stored_image)
            logger.error("Database error creating point: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while registering the point. Please try again.",
                context={"original_error": type(e).__name__},
            )

        logger.info(
            "Point %s created in %s/%s accepting items %s",
            point.id, point.city, point.state, payload.items,
        )
        return to_point_response(point)


point_service = PointService()
