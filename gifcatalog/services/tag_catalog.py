"""
Tag catalog service.

Create/read/update/delete of canonical tags, their categories and their
aliases. Name lookups always go through the alias resolver.
"""

from collections.abc import Iterable
from functools import partial

from sqlalchemy import delete, select
from gifcatalog.config import TagCategory, settings
from gifcatalog.core.database import Database
from gifcatalog.core.exceptions import ConflictError, NotFoundError, StorageError
from gifcatalog.core.logging import get_logger
from gifcatalog.models.tag import Tags
from gifcatalog.models.tag_alias import TagAliases
from gifcatalog.services.reconcile import AssociationReconciler, ReconcileResult
from gifcatalog.services.tag_resolver import TagAliasResolver

logger = get_logger(__name__)


class TagCatalog:
    """Service class for tag operations."""

    def __init__(self, database: Database, resolver: TagAliasResolver | None = None):
        self.database = database
        self.resolver = resolver or TagAliasResolver(database)

    async def find(self, name: str) -> Tags | None:
        """Find a tag by canonical name or alias."""
        return await self.resolver.resolve(name)

    async def get(self, name: str) -> Tags:
        """
        Get a tag by canonical name or alias.

        Raises:
            NotFoundError: Neither a tag nor an alias has this name
        """
        tag = await self.resolver.resolve(name)
        if tag is None:
            raise NotFoundError("tag", name)
        return tag

    async def ensure(self, name: str) -> Tags:
        """
        Get-or-create a tag.

        Resolves ``name`` (alias first, then canonical). If nothing matches a
        new ``general`` tag is created. Two callers racing on the same new
        name both see "not found" and both insert; the loser gets a
        primary-key conflict and returns the winner's row instead.
        """
        tag = await self.resolver.resolve(name)
        if tag is not None:
            return tag

        tag = Tags(name=name, category=TagCategory.general)
        try:
            async with self.database.session("tag.create", tag=name) as db:
                db.add(tag)
        except ConflictError:
            existing = await self.resolver.resolve(name)
            if existing is None:
                raise
            logger.debug("tag_create_conflict_resolved", tag=name)
            return existing

        logger.info("tag_created", tag=name)
        return tag

    async def ensure_many(self, names: Iterable[str]) -> dict[str, Tags]:
        """
        Get-or-create several tags.

        Known names are resolved in one batch; only the unknown ones go
        through ensure().

        Returns:
            Mapping of each requested name to its canonical tag
        """
        names = list(dict.fromkeys(names))
        resolved = await self.resolver.resolve_many(names)
        for name in names:
            if name not in resolved:
                resolved[name] = await self.ensure(name)
        return resolved

    async def set_category(self, tag: Tags, category: TagCategory | str) -> Tags:
        """
        Change a tag's category.

        Raises:
            ValueError: category is not one of the TagCategory values
        """
        tag.category = TagCategory(category)
        async with self.database.session("tag.update", tag=tag.name) as db:
            db.add(tag)

        logger.info("tag_category_changed", tag=tag.name, category=tag.category.value)
        return tag

    async def delete(self, tag: Tags) -> None:
        """Delete a tag. Item links and aliases are removed by cascade."""
        async with self.database.session("tag.delete", tag=tag.name) as db:
            await db.execute(delete(Tags).where(Tags.name == tag.name))  # type: ignore[arg-type]

        logger.info("tag_deleted", tag=tag.name)

    async def search(self, fragment: str = "", limit: int | None = None) -> list[Tags]:
        """
        Search canonical tags whose name contains ``fragment``.

        Args:
            fragment: Substring to look for; empty lists every tag
            limit: Maximum number of tags (defaults to TAG_SEARCH_LIMIT)

        Returns:
            Tags ordered by name
        """
        query = select(Tags).order_by(Tags.name).limit(limit or settings.TAG_SEARCH_LIMIT)
        if fragment:
            query = query.where(Tags.name.contains(fragment, autoescape=True))  # type: ignore[attr-defined]

        async with self.database.session("tag.search", fragment=fragment) as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def list_aliases(self, tag: Tags) -> set[str]:
        """Read every alias pointing at this tag."""
        async with self.database.session("tag.list_aliases", tag=tag.name) as db:
            result = await db.execute(
                select(TagAliases.alias).where(TagAliases.tag_name == tag.name)  # type: ignore[arg-type]
            )
            return set(result.scalars().all())

    async def replace_aliases(self, tag: Tags, desired: Iterable[str]) -> ReconcileResult:
        """
        Make the tag's alias set equal ``desired``.

        An alias may not shadow a canonical tag name nor belong to another
        tag. Collisions are rejected before anything is written.

        Raises:
            ConflictError: A desired alias collides with a tag or another tag's alias
            ReconcileError: The add or remove phase failed part-way
        """
        desired_set = {alias.strip().lower() for alias in desired if alias.strip()}
        current = await self.list_aliases(tag)
        await self._check_alias_collisions(tag, desired_set - current)

        reconciler = AssociationReconciler(
            "tag_aliases",
            add=partial(self._add_alias, tag.name),
            remove=partial(self._remove_alias, tag.name),
            parent=tag.name,
        )
        return await reconciler.reconcile(current, desired_set)

    async def _check_alias_collisions(self, tag: Tags, new_aliases: set[str]) -> None:
        if not new_aliases:
            return

        async with self.database.session("tag.check_aliases", tag=tag.name) as db:
            result = await db.execute(select(Tags.name).where(Tags.name.in_(new_aliases)))  # type: ignore[attr-defined]
            shadowed = set(result.scalars().all())
            result = await db.execute(
                select(TagAliases.alias).where(
                    TagAliases.alias.in_(new_aliases),  # type: ignore[attr-defined]
                    TagAliases.tag_name != tag.name,
                )
            )
            taken = set(result.scalars().all())

        if shadowed or taken:
            raise ConflictError(
                "tag.replace_aliases",
                message=f"Aliases already in use: {', '.join(sorted(shadowed | taken))}",
                tag=tag.name,
                shadowed_tags=sorted(shadowed),
                taken_aliases=sorted(taken),
            )

    async def _add_alias(self, tag_name: str, alias: str) -> None:
        try:
            async with self.database.session("tag_alias.create", tag=tag_name, alias=alias) as db:
                db.add(TagAliases(alias=alias, tag_name=tag_name))
        except ConflictError as exc:
            # Identical row already present is success; anything else isn't
            async with self.database.session("tag_alias.read", alias=alias) as db:
                existing = await db.get(TagAliases, alias)
            if existing is None or existing.tag_name != tag_name:
                raise StorageError(
                    "tag_alias.create",
                    message=f"Alias '{alias}' could not be assigned to '{tag_name}'",
                    tag=tag_name,
                    alias=alias,
                ) from exc

    async def _remove_alias(self, tag_name: str, alias: str) -> None:
        async with self.database.session("tag_alias.delete", tag=tag_name, alias=alias) as db:
            await db.execute(
                delete(TagAliases).where(
                    TagAliases.tag_name == tag_name,
                    TagAliases.alias == alias,
                )
            )
