"""Catalog module recording playable assets.

Owns the catalog store: one entry per title with its manifest and thumbnail
paths, written only after packaging completes.
"""

from streamgate.modules.catalog.models import CatalogEntry
from streamgate.modules.catalog.repository import CatalogRepository
from streamgate.modules.catalog.schemas import (
    CatalogSnapshot,
    CatalogVideo,
)
from streamgate.modules.catalog.service import (
    CatalogUpdater,
    CatalogWriteError,
    get_catalog_snapshot,
)

__all__ = [
    # Models
    "CatalogEntry",
    # Repositories
    "CatalogRepository",
    # Schemas
    "CatalogSnapshot",
    "CatalogVideo",
    # Service
    "CatalogUpdater",
    "CatalogWriteError",
    "get_catalog_snapshot",
]
