"""
Catalog facade.

Wires every service onto one explicitly owned Database handle:

    catalog = Catalog.from_settings()
    await catalog.database.create_all()
    item = await catalog.items.ingest(actor.id, upload)
    await catalog.items.replace_tags(item, ["red", "fox"])
    results = await catalog.search.search_for(actor, parse_search_query("red fox"))
    await catalog.close()
"""

from gifcatalog.config import Settings, settings
from gifcatalog.core.database import Database
from gifcatalog.services.item_catalog import ItemCatalog
from gifcatalog.services.search import SearchEngine
from gifcatalog.services.tag_catalog import TagCatalog
from gifcatalog.services.tag_resolver import TagAliasResolver


class Catalog:
    """The catalog's public entry point for bot and web collaborators."""

    def __init__(self, database: Database):
        self.database = database
        self.resolver = TagAliasResolver(database)
        self.tags = TagCatalog(database, self.resolver)
        self.items = ItemCatalog(database, self.tags)
        self.search = SearchEngine(database)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "Catalog":
        """Build a catalog on a new Database configured from settings."""
        config = config or settings
        return cls(
            Database(
                config.DATABASE_URL,
                echo=config.DB_ECHO,
                pool_size=config.DB_POOL_SIZE,
                max_overflow=config.DB_MAX_OVERFLOW,
            )
        )

    async def close(self) -> None:
        """Release the connection pool."""
        await self.database.dispose()
