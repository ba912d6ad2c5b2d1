"""
Ecol Backend: Item SQLAlchemy Model
===================================

What:  ORM model for the `items` table: the residue categories a point can accept.
Who:   Read by ItemService (GET /items) and PointService (title lookup, id checks).

Items are reference data. They are created by the seed migration and never
modified through the API.
"""

from typing import List, TYPE_CHECKING

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ecol.database import Base

if TYPE_CHECKING:
    from ecol.models.point import PointItem

# Seed catalog; icons live in STORAGE_ROOT next to uploaded point images
DEFAULT_ITEMS = [
    {"title": "Light bulb", "image": "lampadas.svg"},
    {"title": "Batteries", "image": "baterias.svg"},
    {"title": "Paper and cardboard", "image": "papeis-papelao.svg"},
    {"title": "Electronics", "image": "eletronicos.svg"},
    {"title": "Organic", "image": "organicos.svg"},
    {"title": "Cooking oil", "image": "oleo.svg"},
]


class Item(Base):
    """A category of recyclable/disposable material (e.g. batteries, cooking oil)."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # File name relative to STORAGE_ROOT, e.g. "baterias.svg"
    image: Mapped[str] = mapped_column(String(255), nullable=False)

    point_links: Mapped[List["PointItem"]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, title='{self.title}')>"
