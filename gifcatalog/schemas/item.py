"""
Pydantic schemas for item ingestion and editing
"""

from pydantic import BaseModel, Field, field_validator

from gifcatalog.models.item import ItemBase


class ItemCreate(ItemBase):
    """Schema for ingesting a new item from raw upload properties"""

    @field_validator("width", "height", "duration", "thumb_width", "thumb_height")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Dimensions and duration can't be negative."""
        if v < 0:
            raise ValueError("must be zero or greater")
        return v

    @field_validator("file_unique_id", "file_id", "thumb_file_id", "thumb_file_unique_id")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Trim whitespace and reject blank identifiers."""
        v = v.strip()
        if not v:
            raise ValueError("identifier can't be blank")
        return v


class ItemEdit(BaseModel):
    """Desired tag and source lists produced by applying edit tokens"""

    tags: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
