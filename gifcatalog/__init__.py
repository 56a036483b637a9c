"""
gifcatalog - tag resolution, boolean tag search and set reconciliation for
a catalog of short animations.
"""

from gifcatalog.catalog import Catalog
from gifcatalog.core.database import Database

__all__ = ["Catalog", "Database"]
