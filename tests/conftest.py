"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite database file (via aiosqlite) built from the
SQLModel metadata, so tests never share state.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from gifcatalog.catalog import Catalog
from gifcatalog.config import Rating, UserRole
from gifcatalog.core.database import Database
from gifcatalog.models.item import Items
from gifcatalog.schemas.actor import Actor
from gifcatalog.services.item_catalog import ItemCatalog
from gifcatalog.services.search import SearchEngine
from gifcatalog.services.tag_catalog import TagCatalog


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """
    Create an isolated database for one test.

    A file (rather than :memory:) lets every session get its own
    connection, the same way the MariaDB pool behaves.
    """
    db = Database(
        f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )
    await db.create_all()

    yield db

    await db.dispose()


@pytest.fixture
def catalog(database: Database) -> Catalog:
    return Catalog(database)


@pytest.fixture
def tags(catalog: Catalog) -> TagCatalog:
    return catalog.tags


@pytest.fixture
def items(catalog: Catalog) -> ItemCatalog:
    return catalog.items


@pytest.fixture
def search_engine(catalog: Catalog) -> SearchEngine:
    return catalog.search


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def uploader() -> Actor:
    return Actor(id=1001, role=UserRole.user, sfw_mode=False)


@pytest.fixture
def other_user() -> Actor:
    return Actor(id=1002, role=UserRole.user)


@pytest.fixture
def moderator() -> Actor:
    return Actor(id=2001, role=UserRole.moderator, sfw_mode=False)


@pytest.fixture
def administrator() -> Actor:
    return Actor(id=3001, role=UserRole.administrator, sfw_mode=False)


# =============================================================================
# Sample Data
# =============================================================================


def upload_properties(file_unique_id: str, **overrides: Any) -> dict[str, Any]:
    """Raw upload properties as a bot collaborator would report them."""
    properties: dict[str, Any] = {
        "file_id": f"CgACAgQAAx0-{file_unique_id}",
        "file_unique_id": file_unique_id,
        "width": 480,
        "height": 270,
        "duration": 4,
        "file_name": f"{file_unique_id}.mp4",
        "mime_type": "video/mp4",
        "file_size": 215_000,
        "thumb_file_id": f"AAMCBAADHQ-{file_unique_id}",
        "thumb_file_unique_id": f"thumb-{file_unique_id}",
        "thumb_width": 320,
        "thumb_height": 180,
        "thumb_file_size": 9_800,
    }
    properties.update(overrides)
    return properties


@pytest.fixture
def make_upload() -> Callable[..., dict[str, Any]]:
    """Factory for raw upload properties keyed by file_unique_id."""
    return upload_properties


@pytest.fixture
def sample_upload() -> dict[str, Any]:
    return upload_properties("AgADrgIAAh5lSVI")


AddItem = Callable[..., Awaitable[Items]]


@pytest.fixture
def add_item(catalog: Catalog, uploader: Actor) -> AddItem:
    """
    Factory that ingests an item, tags it, and optionally rates it.

    Usage:
        item = await add_item("key1", ["red", "fox"], rating=Rating.safe)
    """

    async def _add_item(
        file_unique_id: str,
        tag_names: Iterable[str] = (),
        rating: Rating | None = Rating.safe,
        sources: Iterable[str] = (),
    ) -> Items:
        item = await catalog.items.ingest(uploader.id, upload_properties(file_unique_id))
        tag_names = list(tag_names)
        if tag_names:
            await catalog.items.replace_tags(item, tag_names)
        sources = list(sources)
        if sources:
            await catalog.items.replace_sources(item, sources)
        if rating is not None:
            item = await catalog.items.set_rating(item, rating)
        return item

    return _add_item
