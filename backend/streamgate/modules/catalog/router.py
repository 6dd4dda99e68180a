"""Catalog API router.

Serves the playback listing read by the browser client.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.core.database import get_db
from streamgate.modules.catalog.schemas import CatalogSnapshot
from streamgate.modules.catalog.service import get_catalog_snapshot

router = APIRouter(tags=["catalog"])


@router.get("/data", response_model=CatalogSnapshot)
@router.get("/data.json", response_model=CatalogSnapshot, include_in_schema=False)
async def get_catalog(db: AsyncSession = Depends(get_db)) -> CatalogSnapshot:
    """Return every playable asset."""
    return await get_catalog_snapshot(db)
