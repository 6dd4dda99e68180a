"""Database models for the asset catalog."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from streamgate.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogEntry(Base):
    """A playable asset, keyed by title.

    Written only after the asset's manifest exists on disk.
    """
    __tablename__ = "catalog_entries"

    title = Column(String(255), primary_key=True)
    manifest_path = Column(String(1024), nullable=False)
    thumbnail_path = Column(String(1024), nullable=False)

    # Free-form metadata captured at upload
    date = Column(String(64), nullable=False, default="")
    info = Column(Text, nullable=False, default="")

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<CatalogEntry {self.title} - {self.manifest_path}>"
