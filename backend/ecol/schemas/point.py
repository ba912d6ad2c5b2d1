"""
Ecol Backend: Point Request/Response Schemas
============================================

What:  Pydantic models for listing, showing and creating collection points.
Why:   One validation path for both body encodings accepted by POST /points:
       JSON (items as a list of ints) and multipart form (items as "1,2,3").
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from ecol.schemas.item import ItemTitle

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Largest value an INTEGER primary key column holds
MAX_ID = 2**31 - 1


def parse_item_ids(value: Any) -> List[int]:
    """
    Normalize an item id collection into a list of ints.

    Accepts a comma-separated string ("1, 2,3"), a list of ints, or a list
    of strings (repeated form fields). Blank segments are skipped; anything
    that is not an integer in 1..MAX_ID raises ValueError. Order is kept and
    duplicates are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw = []
        for entry in value:
            raw.extend(entry.split(",") if isinstance(entry, str) else [entry])
    else:
        raw = [value]

    ids: List[int] = []
    for entry in raw:
        if isinstance(entry, str):
            entry = entry.strip()
            if not entry:
                continue
        if isinstance(entry, bool):
            raise ValueError(f"Invalid item id '{entry}'")
        try:
            item_id = int(entry)
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"Invalid item id '{entry}'")
        if isinstance(entry, float) and entry != item_id:
            raise ValueError(f"Invalid item id '{entry}'")
        if not 1 <= item_id <= MAX_ID:
            raise ValueError(f"Invalid item id '{entry}'")
        if item_id not in ids:
            ids.append(item_id)
    return ids


class PointCreate(BaseModel):
    """
    Body of POST /points.

    Coordinates come from the marker the user drops on the map; city and
    state from the two selects under it.
    """
    name: str = Field(min_length=1, max_length=255, description="Entity name")
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    whatsapp: str = Field(min_length=1, max_length=50)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    items: List[int] = Field(min_length=1, description="Ids of the accepted items")

    @field_validator("name", "email", "whatsapp", "city", "state", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("items", mode="before")
    @classmethod
    def split_items(cls, v: Any) -> List[int]:
        return parse_item_ids(v)


class PointResponse(BaseModel):
    """A point as returned by the list, detail and create endpoints."""
    id: int
    image: str = Field(description="Stored image reference (URL or uploaded file name)")
    image_url: str = Field(description="Absolute URL of the point image")
    name: str
    email: str
    whatsapp: str
    latitude: float
    longitude: float
    city: str
    state: str


class PointDetailResponse(BaseModel):
    """GET /points/{id}: the point plus the titles of the items it accepts."""
    point: PointResponse
    items: List[ItemTitle]


class PointFilter(BaseModel):
    """Parsed query string of GET /points. Unset fields do not filter."""
    city: Optional[str] = None
    state: Optional[str] = None
    item_ids: List[int] = Field(default_factory=list)
