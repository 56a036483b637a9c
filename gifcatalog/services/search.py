"""
Boolean tag search over the item catalog.

Query semantics:
- Only rated items are visible; a rating filter narrows to exactly that
  rating, and safe-only mode forces ``safe``.
- Positive tokens are AND-ed: an item must carry, for every token, a tag
  whose name or alias equals it.
- Negative tokens are OR-ed: carrying any of them excludes the item.
- Results are ordered by item key so pages are stable.
"""

from collections.abc import Sequence

from sqlalchemy import Select, distinct, func, or_, select

from gifcatalog.config import Rating, settings
from gifcatalog.core.database import Database
from gifcatalog.core.logging import get_logger
from gifcatalog.models.item import Items
from gifcatalog.models.item_tag import ItemTags
from gifcatalog.models.tag_alias import TagAliases
from gifcatalog.schemas.actor import Actor
from gifcatalog.schemas.search import SearchQuery

logger = get_logger(__name__)


def _tagged_with_any(tokens: Sequence[str]) -> Select:
    """
    Links whose tag name, or one of that tag's aliases, is in ``tokens``.

    Aliases are joined one level deep only.
    """
    return (
        select(ItemTags.item_id)
        .outerjoin(TagAliases, TagAliases.tag_name == ItemTags.tag_name)  # type: ignore[arg-type]
        .where(
            or_(
                ItemTags.tag_name.in_(tokens),  # type: ignore[attr-defined]
                TagAliases.alias.in_(tokens),  # type: ignore[attr-defined]
            )
        )
    )


def build_search_query(query: SearchQuery, *, safe_only: bool = False) -> Select:
    """
    Build the SELECT for a parsed search.

    Positive matching groups the matching links per item and requires the
    number of distinct matched tag names to equal the number of positive
    tokens.

    Args:
        query: Parsed search
        safe_only: Restrict to ``safe`` regardless of the requested rating

    Returns:
        A SELECT over Items, paginated and ordered by item key
    """
    stmt = select(Items).where(Items.rating.is_not(None))  # type: ignore[union-attr]

    rating = Rating.safe if safe_only else query.rating
    if rating is not None:
        stmt = stmt.where(Items.rating == rating)  # type: ignore[arg-type]

    if query.positive_tags:
        matching = (
            _tagged_with_any(query.positive_tags)
            .group_by(ItemTags.item_id)
            .having(func.count(distinct(ItemTags.tag_name)) == len(query.positive_tags))
        )
        stmt = stmt.where(Items.file_unique_id.in_(matching))  # type: ignore[attr-defined]

    if query.negative_tags:
        excluded = _tagged_with_any(query.negative_tags)
        stmt = stmt.where(Items.file_unique_id.not_in(excluded))  # type: ignore[attr-defined]

    return stmt.order_by(Items.file_unique_id).offset(query.offset).limit(query.limit)


class SearchEngine:
    """Answers tag searches against the catalog."""

    def __init__(self, database: Database):
        self.database = database

    async def search(
        self,
        positive_tags: Sequence[str] = (),
        negative_tags: Sequence[str] = (),
        rating: Rating | str | None = None,
        page: int = 0,
        limit: int | None = None,
        *,
        safe_only: bool = False,
    ) -> list[Items]:
        """
        Search rated items by tags.

        Args:
            positive_tags: Every one of these must match (name or alias)
            negative_tags: Any one of these excludes the item
            rating: Only return items with exactly this rating
            page: Zero-indexed page number
            limit: Items per page (defaults to DEFAULT_PAGE_SIZE)
            safe_only: Force the ``safe`` rating (safe-for-work mode)

        Returns:
            Matching items ordered by key

        Raises:
            ValueError: rating is not a Rating value
            pydantic.ValidationError: page is negative or limit is below 1
        """
        query = SearchQuery(
            positive_tags=list(positive_tags),
            negative_tags=list(negative_tags),
            rating=Rating(rating) if rating is not None else None,
            page=page,
            limit=limit or settings.DEFAULT_PAGE_SIZE,
        )
        return await self.execute(query, safe_only=safe_only)

    async def execute(self, query: SearchQuery, *, safe_only: bool = False) -> list[Items]:
        """Run an already parsed search."""
        stmt = build_search_query(query, safe_only=safe_only)
        async with self.database.session(
            "item.search",
            positive=query.positive_tags,
            negative=query.negative_tags,
        ) as db:
            result = await db.execute(stmt)
            items = list(result.scalars().all())

        logger.debug(
            "search_executed",
            positive=query.positive_tags,
            negative=query.negative_tags,
            rating=query.rating.value if query.rating else None,
            safe_only=safe_only,
            page=query.page,
            results=len(items),
        )
        return items

    async def search_for(self, actor: Actor, query: SearchQuery) -> list[Items]:
        """Search on behalf of an actor, honoring their safe-for-work mode."""
        return await self.execute(query, safe_only=actor.sfw_mode)
