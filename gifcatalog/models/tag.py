"""
SQLModel-based Tag models

Tags are keywords describing an item's content. The tag name is the primary
key; renaming cascades to every association through ON UPDATE CASCADE.

TagBase (shared public fields)
    └─> Tags (database table)
"""

from sqlmodel import Field, SQLModel

from gifcatalog.config import MAX_TAG_LENGTH, TagCategory


class TagBase(SQLModel):
    """Base model with shared public fields for Tags."""

    name: str = Field(primary_key=True, max_length=MAX_TAG_LENGTH)
    category: TagCategory = Field(
        default=TagCategory.general,
        description="Tag category: artist, character, copyright, general, meta, species",
    )


class Tags(TagBase, table=True):
    """
    Database table for canonical tags.

    Note: Relationships are intentionally omitted.
    Foreign keys on tag_aliases, item_tags and tag_implications are
    sufficient for queries and keep loading explicit.
    """

    __tablename__ = "tags"
