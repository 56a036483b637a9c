"""
Item catalog service.

Ingestion, moderation fields, deletion, and tag/source editing for items.
Tag and source edits take the full desired list and apply only the
difference (see services/reconcile.py).

Concurrent edits of the same item are serialized within this process by a
per-item lock. Separate processes can still interleave; each row then ends
up last-writer-wins.
"""

import asyncio
from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any
from weakref import WeakValueDictionary

from sqlalchemy import delete, select

from gifcatalog.config import Rating
from gifcatalog.core.database import Database
from gifcatalog.core.exceptions import ConflictError, NotFoundError, StorageError, UnauthorizedError
from gifcatalog.core.logging import actor_context, get_logger
from gifcatalog.models.item import Items
from gifcatalog.models.item_tag import ItemTags
from gifcatalog.models.source import Sources
from gifcatalog.models.tag import Tags
from gifcatalog.schemas.actor import Actor
from gifcatalog.schemas.item import ItemCreate
from gifcatalog.services.reconcile import AssociationReconciler, ReconcileResult
from gifcatalog.services.tag_catalog import TagCatalog

logger = get_logger(__name__)


def can_delete_item(actor: Actor, item: Items) -> bool:
    """
    Check whether an actor may delete an item.

    Rules:
    - Moderators and administrators: always
    - The uploader: only until the item has been rated or approved
    - Everyone else: never
    """
    if actor.is_elevated:
        return True
    return item.uploaded_by_id == actor.id and not item.is_vetted


class ItemCatalog:
    """Service class for item operations."""

    def __init__(self, database: Database, tags: TagCatalog | None = None):
        self.database = database
        self.tags = tags or TagCatalog(database)
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, item_id: str) -> asyncio.Lock:
        lock = self._locks.get(item_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[item_id] = lock
        return lock

    async def find(self, item_id: str) -> Items | None:
        """Find an item by its unique key."""
        async with self.database.session("item.read", item_id=item_id) as db:
            return await db.get(Items, item_id)

    async def get(self, item_id: str) -> Items:
        """
        Get an item by its unique key.

        Raises:
            NotFoundError: No item has this key
        """
        item = await self.find(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    async def ingest(self, actor_id: int, properties: ItemCreate | Mapping[str, Any]) -> Items:
        """
        Add an item to the catalog, or return it if it's already there.

        Ingestion is keyed by ``file_unique_id``. Re-ingesting a known key
        returns the stored record untouched; the original uploader is kept.

        Args:
            actor_id: The uploading user
            properties: Raw upload properties (validated through ItemCreate)

        Raises:
            pydantic.ValidationError: properties are malformed
        """
        data = properties if isinstance(properties, ItemCreate) else ItemCreate.model_validate(properties)

        with actor_context(actor_id):
            existing = await self.find(data.file_unique_id)
            if existing is not None:
                logger.debug("item_already_ingested", item_id=data.file_unique_id)
                return existing

            item = Items.model_validate(data, update={"uploaded_by_id": actor_id})
            try:
                async with self.database.session("item.create", item_id=item.file_unique_id) as db:
                    db.add(item)
            except ConflictError:
                # Lost a race with a concurrent ingest of the same file
                existing = await self.find(data.file_unique_id)
                if existing is None:
                    raise
                return existing

            logger.info("item_ingested", item_id=item.file_unique_id)
            return item

    async def set_rating(self, item: Items, rating: Rating | str | None) -> Items:
        """
        Set (or clear, with None) an item's content rating.

        The stored row is updated by key; ``item`` is refreshed only after
        the write commits.

        Raises:
            ValueError: rating is not a Rating value
            NotFoundError: The item no longer exists
        """
        value = Rating(rating) if rating is not None else None
        stored = await self._update(item, rating=value)

        logger.info(
            "item_rated",
            item_id=stored.file_unique_id,
            rating=value.value if value else None,
        )
        return stored

    async def set_approver(self, item: Items, actor_id: int | None) -> Items:
        """
        Record which moderator approved the item.

        Raises:
            NotFoundError: The item no longer exists
        """
        stored = await self._update(item, approved_by_id=actor_id)

        logger.info("item_approved", item_id=stored.file_unique_id, approved_by_id=actor_id)
        return stored

    async def _update(self, item: Items, **values: Any) -> Items:
        item_id = item.file_unique_id
        async with self.database.session("item.update", item_id=item_id, fields=sorted(values)) as db:
            stored = await db.get(Items, item_id)
            if stored is None:
                raise NotFoundError("item", item_id)
            for field, value in values.items():
                setattr(stored, field, value)

        for field, value in values.items():
            setattr(item, field, value)
        return stored

    async def delete(self, actor: Actor, item: Items) -> None:
        """
        Delete an item along with its tag links and sources.

        Authorization is checked against the stored record, not the
        possibly stale ``item`` passed in.

        Raises:
            NotFoundError: The item no longer exists
            UnauthorizedError: See can_delete_item for the rules
        """
        with actor_context(actor.id):
            current = await self.get(item.file_unique_id)
            if not can_delete_item(actor, current):
                logger.warning("item_delete_denied", item_id=current.file_unique_id)
                raise UnauthorizedError(
                    "Only moderators or administrators can delete items. "
                    "Original submitters can delete an item before it's vetted.",
                    actor_id=actor.id,
                    action="item.delete",
                )

            async with self.database.session("item.delete", item_id=current.file_unique_id) as db:
                await db.execute(delete(Items).where(Items.file_unique_id == current.file_unique_id))  # type: ignore[arg-type]

            logger.info("item_deleted", item_id=current.file_unique_id)

    async def list_tags(self, item: Items) -> list[Tags]:
        """Read the item's tags, ordered by name."""
        async with self.database.session("item.list_tags", item_id=item.file_unique_id) as db:
            result = await db.execute(
                select(Tags)
                .join(ItemTags, ItemTags.tag_name == Tags.name)  # type: ignore[arg-type]
                .where(ItemTags.item_id == item.file_unique_id)  # type: ignore[arg-type]
                .order_by(Tags.name)
            )
            return list(result.scalars().all())

    async def list_tag_names(self, item: Items) -> set[str]:
        """Read the names of the item's tags."""
        async with self.database.session("item.list_tags", item_id=item.file_unique_id) as db:
            result = await db.execute(
                select(ItemTags.tag_name).where(ItemTags.item_id == item.file_unique_id)  # type: ignore[arg-type]
            )
            return set(result.scalars().all())

    async def list_sources(self, item: Items) -> list[str]:
        """Read the item's source URLs, sorted."""
        async with self.database.session("item.list_sources", item_id=item.file_unique_id) as db:
            result = await db.execute(
                select(Sources.url)
                .where(Sources.item_id == item.file_unique_id)  # type: ignore[arg-type]
                .order_by(Sources.url)
            )
            return list(result.scalars().all())

    async def replace_tags(self, item: Items, desired_names: Iterable[str]) -> ReconcileResult:
        """
        Make the item's tag set equal ``desired_names``.

        Each name is resolved through its alias (or created as a new general
        tag), so the stored set only ever holds canonical names.

        Raises:
            NotFoundError: The item no longer exists
            ReconcileError: The add or remove phase failed part-way; retrying
                with the same list converges
        """
        item_id = item.file_unique_id
        names = [name.strip().lower() for name in desired_names if name.strip()]

        async with self._lock_for(item_id):
            await self.get(item_id)
            resolved = await self.tags.ensure_many(names)
            desired = {tag.name for tag in resolved.values()}
            current = await self.list_tag_names(item)

            reconciler = AssociationReconciler(
                "item_tags",
                add=partial(self._link_tag, item_id),
                remove=partial(self._unlink_tag, item_id),
                parent=item_id,
            )
            return await reconciler.reconcile(current, desired)

    async def replace_sources(self, item: Items, desired_urls: Iterable[str]) -> ReconcileResult:
        """
        Make the item's source set equal ``desired_urls``.

        Raises:
            NotFoundError: The item no longer exists
            ReconcileError: The add or remove phase failed part-way
        """
        item_id = item.file_unique_id
        desired = {url.strip() for url in desired_urls if url.strip()}

        async with self._lock_for(item_id):
            await self.get(item_id)
            current = set(await self.list_sources(item))

            reconciler = AssociationReconciler(
                "sources",
                add=partial(self._add_source, item_id),
                remove=partial(self._remove_source, item_id),
                parent=item_id,
            )
            return await reconciler.reconcile(current, desired)

    async def _link_tag(self, item_id: str, tag_name: str) -> None:
        try:
            async with self.database.session("item_tag.create", item_id=item_id, tag=tag_name) as db:
                db.add(ItemTags(item_id=item_id, tag_name=tag_name))
        except ConflictError as exc:
            # Already linked counts as success; a dangling key does not
            async with self.database.session("item_tag.read", item_id=item_id, tag=tag_name) as db:
                existing = await db.get(ItemTags, (item_id, tag_name))
            if existing is None:
                raise StorageError(
                    "item_tag.create",
                    message=f"Tag '{tag_name}' could not be linked to item '{item_id}'",
                    item_id=item_id,
                    tag=tag_name,
                ) from exc

    async def _unlink_tag(self, item_id: str, tag_name: str) -> None:
        async with self.database.session("item_tag.delete", item_id=item_id, tag=tag_name) as db:
            await db.execute(
                delete(ItemTags).where(
                    ItemTags.item_id == item_id,  # type: ignore[arg-type]
                    ItemTags.tag_name == tag_name,  # type: ignore[arg-type]
                )
            )

    async def _add_source(self, item_id: str, url: str) -> None:
        try:
            async with self.database.session("source.create", item_id=item_id, url=url) as db:
                db.add(Sources(url=url, item_id=item_id))
        except ConflictError as exc:
            async with self.database.session("source.read", item_id=item_id, url=url) as db:
                existing = await db.get(Sources, (url, item_id))
            if existing is None:
                raise StorageError(
                    "source.create",
                    message=f"Source '{url}' could not be added to item '{item_id}'",
                    item_id=item_id,
                    url=url,
                ) from exc

    async def _remove_source(self, item_id: str, url: str) -> None:
        async with self.database.session("source.delete", item_id=item_id, url=url) as db:
            await db.execute(
                delete(Sources).where(
                    Sources.item_id == item_id,  # type: ignore[arg-type]
                    Sources.url == url,  # type: ignore[arg-type]
                )
            )
