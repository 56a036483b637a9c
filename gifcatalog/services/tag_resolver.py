"""
Tag Alias Resolver

Maps a user-supplied token to its canonical tag, following at most one
alias indirection. Alias chains are not followed recursively.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gifcatalog.core.database import Database
from gifcatalog.models.tag import Tags
from gifcatalog.models.tag_alias import TagAliases


async def resolve_tag(db: AsyncSession, token: str) -> Tags | None:
    """
    Resolve a token inside an already-open session.

    The alias table is checked first; if the token is a registered alias the
    tag it points to is returned. Otherwise the token is looked up as a
    canonical tag name.

    Args:
        db: Database session
        token: Tag name or alias

    Returns:
        The canonical tag, or None if the token matches neither
    """
    result = await db.execute(
        select(Tags).join(TagAliases, TagAliases.tag_name == Tags.name).where(TagAliases.alias == token)
    )
    tag = result.scalar_one_or_none()
    if tag is not None:
        return tag

    result = await db.execute(select(Tags).where(Tags.name == token))
    return result.scalar_one_or_none()


async def resolve_tags(db: AsyncSession, tokens: Iterable[str]) -> dict[str, Tags]:
    """
    Batch variant of resolve_tag.

    Loads all aliases and all direct matches in two queries instead of two
    per token. Tokens that resolve to nothing are absent from the result.
    """
    wanted = set(tokens)
    if not wanted:
        return {}

    result = await db.execute(
        select(TagAliases.alias, Tags)
        .join(Tags, TagAliases.tag_name == Tags.name)
        .where(TagAliases.alias.in_(wanted))  # type: ignore[attr-defined]
    )
    resolved: dict[str, Tags] = {alias: tag for alias, tag in result.all()}

    # Aliases win over canonical names, so only look up what's left
    remaining = wanted - resolved.keys()
    if remaining:
        result = await db.execute(select(Tags).where(Tags.name.in_(remaining)))  # type: ignore[attr-defined]
        for tag in result.scalars().all():
            resolved[tag.name] = tag

    return resolved


class TagAliasResolver:
    """Resolves tokens to canonical tags using its own scoped sessions."""

    def __init__(self, database: Database):
        self.database = database

    async def resolve(self, token: str) -> Tags | None:
        """Return the canonical tag for a name or alias, or None if unknown."""
        async with self.database.session("tag.resolve", tag=token) as db:
            return await resolve_tag(db, token)

    async def resolve_many(self, tokens: Iterable[str]) -> dict[str, Tags]:
        """Resolve several tokens at once; unknown tokens are omitted."""
        tokens = list(tokens)
        async with self.database.session("tag.resolve_many", tags=tokens) as db:
            return await resolve_tags(db, tokens)
