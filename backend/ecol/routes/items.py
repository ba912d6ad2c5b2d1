"""GET /items: the catalog shown as a selectable grid on the registration form."""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ecol.database import get_db_session
from ecol.schemas.item import ItemResponse
from ecol.services.item_service import item_service

router = APIRouter(tags=["Items"])


@router.get(
    "/items",
    response_model=List[ItemResponse],
    summary="List accepted item categories",
)
async def list_items(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> List[ItemResponse]:
    items = await item_service.list_items(db)
    # The catalog only changes through migrations
    response.headers["Cache-Control"] = "public, max-age=300"
    return items
