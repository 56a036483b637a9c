"""
SQLModel-based TagAliases model

An alias is an alternative name that resolves to exactly one canonical tag.
The alias name is globally unique (primary key).
"""

from sqlalchemy import ForeignKeyConstraint, Index
from sqlmodel import Field, SQLModel

from gifcatalog.config import MAX_TAG_LENGTH


class TagAliases(SQLModel, table=True):
    """Database table mapping alias names to canonical tags."""

    __tablename__ = "tag_aliases"

    __table_args__ = (
        ForeignKeyConstraint(
            ["tag_name"],
            ["tags.name"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_tag_aliases_tag_name",
        ),
        Index("idx_tag_aliases_tag_name", "tag_name"),
    )

    alias: str = Field(primary_key=True, max_length=MAX_TAG_LENGTH)
    tag_name: str = Field(max_length=MAX_TAG_LENGTH)
