"""Catalog updater and reader.

The catalog is the only state shared between concurrent upload pipelines.
Every write is one transaction (read current row, apply upsert, commit) and
writes are serialized in-process, so concurrent uploads of different titles
never lose each other's entries and a re-upload of a title replaces it.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamgate.modules.catalog.models import CatalogEntry
from streamgate.modules.catalog.repository import CatalogRepository
from streamgate.modules.catalog.schemas import CatalogSnapshot, CatalogVideo

logger = logging.getLogger(__name__)


class CatalogWriteError(Exception):
    """Raised when the catalog store is unavailable or rejects a write."""
    pass


class CatalogUpdater:
    """Durably records packaged assets in the catalog store."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        """Initialize updater.

        Args:
            session_maker: Factory for sessions on the catalog database
        """
        self.session_maker = session_maker
        self._write_lock = asyncio.Lock()

    async def record_asset(
        self,
        title: str,
        manifest_path: str,
        thumbnail_path: str,
        date: Optional[str] = None,
        info: Optional[str] = None,
    ) -> CatalogEntry:
        """Append or replace the entry for a title.

        Args:
            title: Asset title
            manifest_path: Published manifest path
            thumbnail_path: Published thumbnail path
            date: Optional date metadata
            info: Optional description

        Returns:
            The committed CatalogEntry

        Raises:
            CatalogWriteError: If the store is unavailable or the write fails
        """
        async with self._write_lock:
            try:
                async with self.session_maker() as session:
                    repo = CatalogRepository(session)
                    entry = await repo.upsert(
                        title=title,
                        manifest_path=manifest_path,
                        thumbnail_path=thumbnail_path,
                        date=date or "",
                        info=info or "",
                    )
                    await session.commit()
            except SQLAlchemyError as e:
                logger.error("Catalog write failed for %s: %s", title, e)
                raise CatalogWriteError(f"Failed to record catalog entry for {title!r}") from e

        logger.info("Catalog entry recorded for %s", title)
        return entry

    async def remove_asset(self, title: str) -> bool:
        """Remove the entry for a title.

        Raises:
            CatalogWriteError: If the store is unavailable or the write fails
        """
        async with self._write_lock:
            try:
                async with self.session_maker() as session:
                    deleted = await CatalogRepository(session).delete(title)
                    await session.commit()
            except SQLAlchemyError as e:
                raise CatalogWriteError(f"Failed to remove catalog entry for {title!r}") from e
        return deleted


async def get_catalog_snapshot(session: AsyncSession) -> CatalogSnapshot:
    """Build the playback listing from committed entries.

    Args:
        session: Database session

    Returns:
        CatalogSnapshot with one video per entry
    """
    entries = await CatalogRepository(session).list_all()
    return CatalogSnapshot(
        videos=[
            CatalogVideo(
                title=entry.title,
                video=entry.manifest_path,
                thumb=entry.thumbnail_path,
                date=entry.date,
                info=entry.info,
            )
            for entry in entries
        ]
    )
