"""
Tests for the tag catalog service.

Covers get-or-create, categories, deletion and alias replacement.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from gifcatalog.config import TagCategory
from gifcatalog.core.database import Database
from gifcatalog.core.exceptions import ConflictError, NotFoundError
from gifcatalog.models.item_tag import ItemTags
from gifcatalog.models.tag import Tags
from gifcatalog.models.tag_alias import TagAliases
from gifcatalog.services.tag_catalog import TagCatalog


async def count_rows(database: Database, model) -> int:
    async with database.session() as db:
        result = await db.execute(select(func.count()).select_from(model))
        return result.scalar_one()


class TestEnsure:
    """Tests for get-or-create of tags."""

    @pytest.mark.asyncio
    async def test_creates_unknown_tag_as_general(self, tags: TagCatalog):
        tag = await tags.ensure("fox")

        assert tag.name == "fox"
        assert tag.category == TagCategory.general
        assert (await tags.get("fox")).name == "fox"

    @pytest.mark.asyncio
    async def test_returns_existing_tag(self, tags: TagCatalog, database: Database):
        first = await tags.ensure("fox")
        await tags.set_category(first, TagCategory.species)

        second = await tags.ensure("fox")

        assert second.category == TagCategory.species
        assert await count_rows(database, Tags) == 1

    @pytest.mark.asyncio
    async def test_resolves_alias_instead_of_creating(self, tags: TagCatalog, database: Database):
        fox = await tags.ensure("fox")
        await tags.replace_aliases(fox, ["foxes"])

        tag = await tags.ensure("foxes")

        assert tag.name == "fox"
        assert await count_rows(database, Tags) == 1

    @pytest.mark.asyncio
    async def test_concurrent_ensure_creates_one_row(self, tags: TagCatalog, database: Database):
        """Racing creators of the same new name all get the same tag"""
        results = await asyncio.gather(*(tags.ensure("otter") for _ in range(5)))

        assert {tag.name for tag in results} == {"otter"}
        assert await count_rows(database, Tags) == 1

    @pytest.mark.asyncio
    async def test_insert_conflict_returns_winner(self, tags: TagCatalog, database: Database):
        """A primary-key conflict on insert falls back to the existing row"""
        async with database.session() as db:
            db.add(Tags(name="otter", category=TagCategory.species))

        winner = Tags(name="otter", category=TagCategory.species)
        # First lookup misses (as if the other writer hadn't committed yet)
        with patch.object(tags.resolver, "resolve", AsyncMock(side_effect=[None, winner])):
            tag = await tags.ensure("otter")

        assert tag is winner
        assert await count_rows(database, Tags) == 1

    @pytest.mark.asyncio
    async def test_ensure_many_maps_every_requested_name(self, tags: TagCatalog):
        fox = await tags.ensure("fox")
        await tags.replace_aliases(fox, ["vulpes"])

        resolved = await tags.ensure_many(["vulpes", "red", "fox", "red"])

        assert {name: tag.name for name, tag in resolved.items()} == {
            "vulpes": "fox",
            "red": "red",
            "fox": "fox",
        }


class TestGetAndSearch:
    """Tests for tag lookup and substring search."""

    @pytest.mark.asyncio
    async def test_get_unknown_raises_not_found(self, tags: TagCatalog):
        with pytest.raises(NotFoundError) as exc_info:
            await tags.get("missing")

        assert exc_info.value.entity == "tag"
        assert exc_info.value.key == "missing"
        assert exc_info.value.to_dict()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_find_unknown_returns_none(self, tags: TagCatalog):
        assert await tags.find("missing") is None

    @pytest.mark.asyncio
    async def test_search_by_fragment(self, tags: TagCatalog):
        for name in ("red_fox", "arctic_fox", "wolf"):
            await tags.ensure(name)

        found = await tags.search("fox")

        assert [tag.name for tag in found] == ["arctic_fox", "red_fox"]

    @pytest.mark.asyncio
    async def test_search_escapes_wildcards(self, tags: TagCatalog):
        for name in ("red_fox", "redxfox"):
            await tags.ensure(name)

        found = await tags.search("d_f")

        assert [tag.name for tag in found] == ["red_fox"]

    @pytest.mark.asyncio
    async def test_search_respects_limit(self, tags: TagCatalog):
        for name in ("aa", "bb", "cc"):
            await tags.ensure(name)

        found = await tags.search(limit=2)

        assert [tag.name for tag in found] == ["aa", "bb"]


class TestCategoryAndDelete:
    """Tests for category changes and tag deletion."""

    @pytest.mark.asyncio
    async def test_set_category(self, tags: TagCatalog):
        tag = await tags.ensure("renard")

        await tags.set_category(tag, "character")

        assert (await tags.get("renard")).category == TagCategory.character

    @pytest.mark.asyncio
    async def test_set_unknown_category_raises(self, tags: TagCatalog):
        tag = await tags.ensure("renard")

        with pytest.raises(ValueError):
            await tags.set_category(tag, "color")

        assert (await tags.get("renard")).category == TagCategory.general

    @pytest.mark.asyncio
    async def test_delete_cascades_to_aliases_and_links(self, tags: TagCatalog, add_item, database: Database):
        await add_item("item1", ["fox", "red"])
        fox = await tags.get("fox")
        await tags.replace_aliases(fox, ["foxes"])

        await tags.delete(fox)

        assert await tags.find("fox") is None
        assert await tags.find("foxes") is None
        assert await count_rows(database, TagAliases) == 0
        async with database.session() as db:
            result = await db.execute(select(ItemTags.tag_name))
            assert set(result.scalars().all()) == {"red"}


class TestReplaceAliases:
    """Tests for alias set reconciliation."""

    @pytest.mark.asyncio
    async def test_replace_applies_difference(self, tags: TagCatalog):
        fox = await tags.ensure("fox")
        await tags.replace_aliases(fox, ["foxes", "vulpes"])

        result = await tags.replace_aliases(fox, ["vulpes", "kitsune"])

        assert result.added == {"kitsune"}
        assert result.removed == {"foxes"}
        assert await tags.list_aliases(fox) == {"vulpes", "kitsune"}

    @pytest.mark.asyncio
    async def test_replace_normalizes_aliases(self, tags: TagCatalog):
        fox = await tags.ensure("fox")

        await tags.replace_aliases(fox, [" Foxes ", "", "VULPES"])

        assert await tags.list_aliases(fox) == {"foxes", "vulpes"}

    @pytest.mark.asyncio
    async def test_replace_with_same_set_is_noop(self, tags: TagCatalog):
        fox = await tags.ensure("fox")
        await tags.replace_aliases(fox, ["foxes"])

        result = await tags.replace_aliases(fox, ["foxes"])

        assert not result.changed

    @pytest.mark.asyncio
    async def test_alias_cannot_shadow_tag_name(self, tags: TagCatalog):
        fox = await tags.ensure("fox")
        await tags.ensure("wolf")

        with pytest.raises(ConflictError) as exc_info:
            await tags.replace_aliases(fox, ["foxes", "wolf"])

        assert exc_info.value.details["shadowed_tags"] == ["wolf"]
        # Nothing was written
        assert await tags.list_aliases(fox) == set()

    @pytest.mark.asyncio
    async def test_alias_cannot_belong_to_two_tags(self, tags: TagCatalog):
        fox = await tags.ensure("fox")
        wolf = await tags.ensure("wolf")
        await tags.replace_aliases(wolf, ["canis"])

        with pytest.raises(ConflictError) as exc_info:
            await tags.replace_aliases(fox, ["canis"])

        assert exc_info.value.details["taken_aliases"] == ["canis"]
        assert (await tags.get("canis")).name == "wolf"
