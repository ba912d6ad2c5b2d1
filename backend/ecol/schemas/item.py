"""Schemas for the item catalog (GET /items)."""

from pydantic import BaseModel, Field


class ItemResponse(BaseModel):
    id: int = Field(description="Item identifier, used in the `items` filter and create body")
    title: str = Field(description="Display name, e.g. 'Batteries'")
    image_url: str = Field(description="Absolute URL of the item icon")


class ItemTitle(BaseModel):
    """Item as embedded in a point detail response."""
    title: str
