"""
Pydantic schemas for item search
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from gifcatalog.config import Rating, settings


class SearchQuery(BaseModel):
    """
    A parsed tag search.

    Tokens are already lexically valid (see services/query_parser.py);
    this schema only normalizes them and bounds pagination.
    """

    positive_tags: list[str] = Field(default_factory=list)
    negative_tags: list[str] = Field(default_factory=list)
    rating: Rating | None = None
    page: int = Field(default=0, ge=0, description="Zero-indexed page")
    limit: int = Field(default=settings.DEFAULT_PAGE_SIZE, ge=1)

    @field_validator("positive_tags", "negative_tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        """Lowercase and drop repeated tokens, keeping first-seen order."""
        return list(dict.fromkeys(token.strip().lower() for token in v if token.strip()))

    @model_validator(mode="after")
    def clamp_limit(self) -> "SearchQuery":
        """Cap page size at MAX_PAGE_SIZE."""
        if self.limit > settings.MAX_PAGE_SIZE:
            self.limit = settings.MAX_PAGE_SIZE
        return self

    @property
    def offset(self) -> int:
        return self.page * self.limit
