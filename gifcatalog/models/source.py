"""
SQLModel-based Sources model

Attribution URLs for an item. Unique per (url, item) pair and owned by the
item.
"""

from sqlalchemy import ForeignKeyConstraint, Index
from sqlmodel import Field, SQLModel

from gifcatalog.config import MAX_SOURCE_LENGTH


class Sources(SQLModel, table=True):
    """Database table for item source URLs."""

    __tablename__ = "sources"

    __table_args__ = (
        ForeignKeyConstraint(
            ["item_id"],
            ["items.file_unique_id"],
            ondelete="CASCADE",
            name="fk_sources_item_id",
        ),
        Index("idx_sources_item_id", "item_id"),
    )

    url: str = Field(primary_key=True, max_length=MAX_SOURCE_LENGTH)
    item_id: str = Field(primary_key=True, max_length=256)
