"""
SQLModel tables for the catalog.

Importing this package registers every table with SQLModel.metadata, which
Database.create_all() relies on.
"""

from gifcatalog.models.item import ItemBase, Items
from gifcatalog.models.item_tag import ItemTags
from gifcatalog.models.source import Sources
from gifcatalog.models.tag import TagBase, Tags
from gifcatalog.models.tag_alias import TagAliases
from gifcatalog.models.tag_implication import TagImplications

__all__ = [
    # Core entity models
    "ItemBase",
    "Items",
    "TagBase",
    "Tags",
    # Tag relationships
    "TagAliases",
    "TagImplications",
    # Junction/ownership tables
    "ItemTags",
    "Sources",
]
