"""
SQLModel-based TagImplications model

Records that one tag implies another. Stored for moderation tooling only:
search and tagging never expand implications.
"""

from sqlalchemy import ForeignKeyConstraint
from sqlmodel import Field, SQLModel

from gifcatalog.config import MAX_TAG_LENGTH


class TagImplications(SQLModel, table=True):
    """Database table for tag implications."""

    __tablename__ = "tag_implications"

    __table_args__ = (
        ForeignKeyConstraint(
            ["tag_name"],
            ["tags.name"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_tag_implications_tag_name",
        ),
        ForeignKeyConstraint(
            ["implied_tag_name"],
            ["tags.name"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_tag_implications_implied_tag_name",
        ),
    )

    tag_name: str = Field(primary_key=True, max_length=MAX_TAG_LENGTH)
    implied_tag_name: str = Field(primary_key=True, max_length=MAX_TAG_LENGTH)
