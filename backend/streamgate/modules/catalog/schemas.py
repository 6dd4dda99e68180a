"""Pydantic schemas for the asset catalog."""

from pydantic import BaseModel


class CatalogVideo(BaseModel):
    """One asset in the playback listing."""
    title: str
    video: str
    thumb: str
    date: str = ""
    info: str = ""


class CatalogSnapshot(BaseModel):
    """Playback listing consumed by the browser client."""
    videos: list[CatalogVideo] = []
