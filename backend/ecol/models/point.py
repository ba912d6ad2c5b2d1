"""
Ecol Backend: Point and PointItem SQLAlchemy Models
===================================================

What:  ORM models for collection points and the point ↔ item join table.
Why:   A point accepts many item categories and an item is accepted by many
       points; `point_items` realizes that many-to-many relationship.
Who:   Used by PointService for the list filter, detail lookup and creation,
       and by Alembic for schema management.

Table Design:
    - Integer primary keys, assigned by the database on insert
    - image: absolute URL (placeholder) or file name under STORAGE_ROOT
    - point_items carries both foreign keys and a unique (point_id, item_id)
      pair, so a point cannot list the same item twice

Query Patterns:
    - List: points JOIN point_items WHERE item_id IN (...) AND city AND state
      → idx_points_city, idx_points_state, idx_point_items_item_id
    - Detail: items JOIN point_items WHERE point_id = :id
      → uq_point_items_point_item (leading point_id column)
"""

from typing import List, TYPE_CHECKING

from sqlalchemy import Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ecol.database import Base

if TYPE_CHECKING:
    from ecol.models.item import Item


class Point(Base):
    """A physical residue collection location."""

    __tablename__ = "points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    image: Mapped[str] = mapped_column(String(512), nullable=False)

    # ── Contact ───────────────────────────────────────────────────────────
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    whatsapp: Mapped[str] = mapped_column(String(50), nullable=False)

    # ── Location ──────────────────────────────────────────────────────────
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)

    item_links: Mapped[List["PointItem"]] = relationship(
        back_populates="point",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_points_city", "city"),
        Index("idx_points_state", "state"),
    )

    def __repr__(self) -> str:
        return f"<Point(id={self.id}, name='{self.name}', city='{self.city}')>"


class PointItem(Base):
    """Association row: the point `point_id` accepts the item `item_id`."""

    __tablename__ = "point_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    point_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("points.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
    )

    point: Mapped["Point"] = relationship(back_populates="item_links")
    item: Mapped["Item"] = relationship(back_populates="point_links")

    __table_args__ = (
        UniqueConstraint("point_id", "item_id", name="uq_point_items_point_item"),
        Index("idx_point_items_item_id", "item_id"),
    )

    def __repr__(self) -> str:
        return f"<PointItem(point_id={self.point_id}, item_id={self.item_id})>"
