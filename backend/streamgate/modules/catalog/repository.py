"""Repository for catalog database operations."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.modules.catalog.models import CatalogEntry


class CatalogRepository:
    """Repository for CatalogEntry operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_title(self, title: str) -> Optional[CatalogEntry]:
        """Get an entry by its title."""
        return await self.session.get(CatalogEntry, title)

    async def upsert(
        self,
        title: str,
        manifest_path: str,
        thumbnail_path: str,
        date: str = "",
        info: str = "",
    ) -> CatalogEntry:
        """Insert an entry or replace the one with the same title.

        The caller owns the transaction and must commit.

        Args:
            title: Asset title (primary key)
            manifest_path: Published manifest path
            thumbnail_path: Published thumbnail path
            date: Free-form date metadata
            info: Free-form description

        Returns:
            The stored CatalogEntry
        """
        entry = await self.get_by_title(title)
        if entry is None:
            entry = CatalogEntry(
                title=title,
                manifest_path=manifest_path,
                thumbnail_path=thumbnail_path,
                date=date,
                info=info,
            )
            self.session.add(entry)
        else:
            entry.manifest_path = manifest_path
            entry.thumbnail_path = thumbnail_path
            entry.date = date
            entry.info = info

        await self.session.flush()
        return entry

    async def list_all(self) -> list[CatalogEntry]:
        """List all entries in upload order."""
        result = await self.session.execute(
            select(CatalogEntry).order_by(CatalogEntry.created_at, CatalogEntry.title)
        )
        return list(result.scalars().all())

    async def delete(self, title: str) -> bool:
        """Delete an entry by title.

        Returns:
            True if an entry was deleted
        """
        entry = await self.get_by_title(title)
        if entry is None:
            return False
        await self.session.delete(entry)
        await self.session.flush()
        return True
