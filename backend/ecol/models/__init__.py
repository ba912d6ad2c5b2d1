"""ORM models. Importing this package registers every table on Base.metadata."""

from ecol.models.item import Item
from ecol.models.point import Point, PointItem

__all__ = ["Item", "Point", "PointItem"]
