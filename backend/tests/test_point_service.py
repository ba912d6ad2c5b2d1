"""
Ecol Backend: Point Service Tests
=================================

Unit tests with a mocked session for error translation, and database tests
(in-memory SQLite) for the filter query and the create transaction.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ecol.exceptions import DatabaseError, NotFoundError, ValidationError
from ecol.models import PointItem
from ecol.schemas.point import PointCreate, PointFilter
from ecol.services.point_service import PointService


def make_payload(items, city="Belo Horizonte", state="MG", name="Ecoponto"):
    return PointCreate(
        name=name,
        email="contato@ecoponto.org",
        whatsapp="31999990000",
        latitude=-19.87,
        longitude=-44.02,
        city=city,
        state=state,
        items=items,
    )


class TestPointServiceUnit:

    def setup_method(self):
        self.service = PointService()

    @pytest.mark.asyncio
    async def test_get_point_not_found(self, mock_db_session):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = mock_result

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_point(mock_db_session, 42)
        assert exc_info.value.message == "Point not found"

    @pytest.mark.asyncio
    async def test_get_point_out_of_range_id_skips_query(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_point(mock_db_session, 2**63)
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_points_wraps_database_errors(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=SQLAlchemyError("connection lost"))

        with pytest.raises(DatabaseError):
            await self.service.list_points(mock_db_session, PointFilter())

    @pytest.mark.asyncio
    async def test_create_point_cleans_up_image_on_insert_failure(self, mock_db_session):
        existing = MagicMock()
        existing.scalars.return_value.all.return_value = [1]
        mock_db_session.execute.return_value = existing
        mock_db_session.flush = AsyncMock(side_effect=SQLAlchemyError("insert failed"))

        with patch("ecol.services.point_service.file_service") as mock_files:
            mock_files.validate_and_store = AsyncMock(return_value="points/abc.png")
            mock_files.cleanup_file = AsyncMock()

            with pytest.raises(DatabaseError):
                await self.service.create_point(
                    mock_db_session,
                    make_payload([1]),
                    image_filename="abc.png",
                    image_content=b"png",
                )

            mock_files.cleanup_file.assert_awaited_once_with("points/abc.png")

    @pytest.mark.asyncio
    async def test_create_point_unknown_items_stores_nothing(self, mock_db_session):
        none_found = MagicMock()
        none_found.scalars.return_value.all.return_value = []
        mock_db_session.execute.return_value = none_found

        with patch("ecol.services.point_service.file_service") as mock_files:
            mock_files.validate_and_store = AsyncMock()
            with pytest.raises(ValidationError, match="Unknown item ids: 7"):
                await self.service.create_point(
                    mock_db_session,
                    make_payload([7]),
                    image_filename="abc.png",
                    image_content=b"png",
                )
            mock_files.validate_and_store.assert_not_awaited()

        mock_db_session.add.assert_not_called()


class TestPointServiceDatabase:

    def setup_method(self):
        self.service = PointService()

    @pytest.mark.asyncio
    async def test_create_point_writes_one_join_row_per_item(self, db_session, seeded_items):
        item_ids = [seeded_items["Batteries"], seeded_items["Electronics"], seeded_items["Organic"]]

        created = await self.service.create_point(db_session, make_payload(item_ids))
        await db_session.commit()

        count = await db_session.execute(
            select(func.count(PointItem.id)).where(PointItem.point_id == created.id)
        )
        assert count.scalar() == 3
        assert created.id is not None
        assert created.image.startswith("https://")
        assert created.image_url == created.image

        listed = await self.service.list_points(
            db_session,
            PointFilter(city="Belo Horizonte", state="MG", item_ids=[seeded_items["Electronics"]]),
        )
        assert [point.id for point in listed] == [created.id]

    @pytest.mark.asyncio
    async def test_list_points_is_distinct_across_matching_items(self, db_session, seeded_items):
        ids = [seeded_items["Batteries"], seeded_items["Cooking oil"]]
        await self.service.create_point(db_session, make_payload(ids))
        await db_session.commit()

        listed = await self.service.list_points(db_session, PointFilter(item_ids=ids))
        assert len(listed) == 1

    @pytest.mark.asyncio
    async def test_list_points_filters_city_state_and_items(self, db_session, seeded_items):
        batteries, oil = seeded_items["Batteries"], seeded_items["Cooking oil"]
        bh = await self.service.create_point(db_session, make_payload([batteries], name="BH"))
        contagem = await self.service.create_point(
            db_session, make_payload([batteries], city="Contagem", name="Contagem")
        )
        oil_only = await self.service.create_point(db_session, make_payload([oil], name="Oil"))
        await db_session.commit()

        by_city = await self.service.list_points(
            db_session, PointFilter(city="Belo Horizonte", state="MG", item_ids=[batteries])
        )
        assert [p.id for p in by_city] == [bh.id]

        any_item = await self.service.list_points(
            db_session, PointFilter(city="Belo Horizonte", item_ids=[batteries, oil])
        )
        assert [p.id for p in any_item] == [bh.id, oil_only.id]

        unfiltered = await self.service.list_points(db_session, PointFilter())
        assert [p.id for p in unfiltered] == [bh.id, contagem.id, oil_only.id]

        other_state = await self.service.list_points(db_session, PointFilter(state="SP"))
        assert other_state == []

    @pytest.mark.asyncio
    async def test_get_point_returns_item_titles(self, db_session, seeded_items):
        created = await self.service.create_point(
            db_session,
            make_payload([seeded_items["Cooking oil"], seeded_items["Light bulb"]]),
        )
        await db_session.commit()

        detail = await self.service.get_point(db_session, created.id)

        assert detail.point.name == "Ecoponto"
        assert [item.title for item in detail.items] == ["Light bulb", "Cooking oil"]
