"""Pydantic schemas for the packaging pipeline."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class SourceAsset(BaseModel):
    """An accepted upload waiting to be packaged."""
    source_path: Path = Field(..., description="Path of the staged upload")
    original_filename: str = Field(default="", description="Client-side filename")
    title: Optional[str] = Field(None, description="Declared title; defaults to the filename stem")
    date: Optional[str] = Field(None, description="Free-form date metadata")
    info: Optional[str] = Field(None, description="Free-form description")

    def resolved_title(self) -> str:
        """Title to package under, falling back to the original filename stem."""
        if self.title:
            return self.title
        name = self.original_filename or self.source_path.name
        return Path(name).stem


class IngestResult(BaseModel):
    """Outcome of a successful upload pipeline."""
    success: bool = True
    title: str
    manifest_path: str
    thumbnail_path: str
    has_audio: bool
