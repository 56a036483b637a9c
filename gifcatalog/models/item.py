"""
SQLModel-based Item models

This module defines the Items database model using SQLModel, which combines
SQLAlchemy and Pydantic functionality. The inheritance structure is:

ItemBase (fields supplied on ingestion)
    ├─> Items (database table, adds moderation fields)
    └─> ItemCreate (ingestion schema, defined in gifcatalog/schemas)

An item is one short animation. It is keyed by ``file_unique_id``, which
stays the same over time, rather than ``file_id``, which is a transient
download handle.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Index, func
from sqlmodel import Field, SQLModel

from gifcatalog.config import Rating


class ItemBase(SQLModel):
    """
    Base model with the fields reported for an uploaded animation.

    These fields are shared between:
    - The database table (Items)
    - The ingestion schema (ItemCreate)
    """

    file_unique_id: str = Field(primary_key=True, max_length=256)
    file_id: str = Field(max_length=256)

    # Animation
    width: int
    height: int
    duration: int = Field(description="Duration in seconds")
    file_name: str | None = Field(default=None, max_length=128)
    mime_type: str | None = Field(default=None, max_length=16)
    file_size: int | None = Field(default=None, description="File size in bytes")

    # Preview asset
    thumb_file_id: str = Field(max_length=256)
    thumb_file_unique_id: str = Field(max_length=256)
    thumb_width: int
    thumb_height: int
    thumb_file_size: int | None = None


class Items(ItemBase, table=True):
    """
    Database table for items with moderation fields.

    Extends ItemBase with:
    - Content rating (NULL until a moderator vets the item)
    - Uploading and approving actors
    - Date tracking
    """

    __tablename__ = "items"

    __table_args__ = (
        Index("idx_items_rating", "rating"),
        Index("idx_items_uploaded_by_id", "uploaded_by_id"),
        Index("idx_items_approved_by_id", "approved_by_id"),
    )

    __mapper_args__ = {"eager_defaults": True}

    rating: Rating | None = Field(default=None)

    # Actor identities are opaque; user records live with the identity collaborator
    uploaded_by_id: int | None = Field(default=None, sa_type=BigInteger)
    approved_by_id: int | None = Field(default=None, sa_type=BigInteger)

    # Stamped by the database; fetched back on insert so detached copies carry it
    date_added: datetime | None = Field(default=None, sa_column_kwargs={"server_default": func.now()})

    @property
    def is_vetted(self) -> bool:
        """True once a moderator has rated or approved the item."""
        return self.rating is not None or self.approved_by_id is not None
