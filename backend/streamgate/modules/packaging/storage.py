"""Filesystem layout of packaged assets.

Each asset lives in `<public_dir>/videos/<title>/` with one manifest, one
thumbnail and its segments. The title is used unescaped as the directory
name, so it must be a single safe path segment.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from streamgate.modules.packaging.abr import MANIFEST_NAME, THUMBNAIL_NAME
from streamgate.modules.packaging.ffmpeg import PackagingError

logger = logging.getLogger(__name__)

VIDEOS_DIR = "videos"

# Characters a URL path segment carries without percent-encoding
# (RFC 3986 unreserved and sub-delims).
TITLE_PATTERN = re.compile(r"[A-Za-z0-9._~!$&'()*+,;=-]+")


class InvalidTitleError(PackagingError, ValueError):
    """Raised when a title cannot be used as a single path segment."""
    pass


def validate_title(title: str) -> str:
    """Check that a title is usable as a catalog key and a path segment.

    The title must appear byte-for-byte in the manifest URL a player
    fetches, so anything a client would percent-encode is rejected.

    Args:
        title: Asset title

    Returns:
        The title, unchanged

    Raises:
        InvalidTitleError: If the title is empty, a relative marker, or
            contains characters that need escaping in a URL path
    """
    if not title:
        raise InvalidTitleError("Title must not be empty")
    if title in (".", ".."):
        raise InvalidTitleError(f"Title cannot be '{title}'")
    if not TITLE_PATTERN.fullmatch(title):
        raise InvalidTitleError(
            f"Title contains characters that need escaping in a URL: {title!r}"
        )
    return title


@dataclass(frozen=True)
class AssetLayout:
    """Paths of one packaged asset."""
    public_dir: Path
    title: str

    @property
    def directory(self) -> Path:
        return self.public_dir / VIDEOS_DIR / self.title

    @property
    def manifest_file(self) -> Path:
        return self.directory / MANIFEST_NAME

    @property
    def thumbnail_file(self) -> Path:
        return self.directory / THUMBNAIL_NAME

    @property
    def manifest_key(self) -> str:
        return f"{VIDEOS_DIR}/{self.title}/{MANIFEST_NAME}"

    @property
    def thumbnail_key(self) -> str:
        return f"{VIDEOS_DIR}/{self.title}/{THUMBNAIL_NAME}"

    def ensure_directory(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory


def get_public_url(key: str, cdn_url: str = "") -> str:
    """Get the published path for a storage key.

    Args:
        key: Relative key such as videos/demo/index.mpd
        cdn_url: Optional CDN prefix

    Returns:
        CDN-prefixed URL when a prefix is configured, else the relative key
    """
    if cdn_url:
        return f"{cdn_url.rstrip('/')}/{key}"
    return key


def cleanup_local_file(file_path: Union[str, Path]) -> bool:
    """Delete a consumed source file.

    Args:
        file_path: Local file path to delete

    Returns:
        True if a file was deleted, False if it was already gone
    """
    path = Path(file_path)
    if not path.exists():
        return False
    path.unlink()
    return True


def clear_temp_uploads(directory: Union[str, Path]) -> int:
    """Remove every leftover entry of the upload staging directory.

    Only called at process startup, never while pipelines are running.

    Args:
        directory: Staging directory; created if it does not exist

    Returns:
        Number of entries removed
    """
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)

    removed = 0
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            os.remove(entry)
        removed += 1

    if removed:
        logger.info("Cleared %d leftover upload(s) from %s", removed, path)
    return removed
