"""
SQLModel-based ItemTags model

Junction table connecting tags to items. Owned by the item: deleting either
the item or the tag removes the link.
"""

from sqlalchemy import ForeignKeyConstraint, Index
from sqlmodel import Field, SQLModel

from gifcatalog.config import MAX_TAG_LENGTH


class ItemTags(SQLModel, table=True):
    """Database table for item-tag links."""

    __tablename__ = "item_tags"

    __table_args__ = (
        ForeignKeyConstraint(
            ["item_id"],
            ["items.file_unique_id"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_item_tags_item_id",
        ),
        ForeignKeyConstraint(
            ["tag_name"],
            ["tags.name"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_item_tags_tag_name",
        ),
        Index("idx_item_tags_tag_name", "tag_name"),
    )

    # Junction table primary keys
    item_id: str = Field(primary_key=True, max_length=256)
    tag_name: str = Field(primary_key=True, max_length=MAX_TAG_LENGTH)
