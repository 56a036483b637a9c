"""Pydantic schemas for catalog inputs."""

from gifcatalog.schemas.actor import Actor
from gifcatalog.schemas.item import ItemCreate, ItemEdit
from gifcatalog.schemas.search import SearchQuery

__all__ = ["Actor", "ItemCreate", "ItemEdit", "SearchQuery"]
