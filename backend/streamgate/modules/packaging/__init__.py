"""Packaging module for adaptive streaming output.

Probes an uploaded source, plans the rendition ladder and packages every
rendition into one DASH manifest with FFmpeg, then records the asset in
the catalog.
"""

from streamgate.modules.packaging.abr import (
    AudioRendition,
    DEFAULT_LADDER,
    EncodeJobParams,
    RenditionSpec,
    build_adaptation_sets,
    get_ffmpeg_args_for_job,
    plan_encode_job,
)
from streamgate.modules.packaging.ffmpeg import (
    FFmpegPackager,
    MediaProbe,
    PackagingError,
    ProbeError,
    TranscodeError,
)
from streamgate.modules.packaging.schemas import IngestResult, SourceAsset
from streamgate.modules.packaging.service import PackagingService
from streamgate.modules.packaging.storage import (
    AssetLayout,
    InvalidTitleError,
    clear_temp_uploads,
    validate_title,
)

__all__ = [
    # Ladder planning
    "AudioRendition",
    "DEFAULT_LADDER",
    "EncodeJobParams",
    "RenditionSpec",
    "build_adaptation_sets",
    "get_ffmpeg_args_for_job",
    "plan_encode_job",
    # FFmpeg
    "FFmpegPackager",
    "MediaProbe",
    "PackagingError",
    "ProbeError",
    "TranscodeError",
    # Schemas
    "IngestResult",
    "SourceAsset",
    # Service
    "PackagingService",
    # Storage
    "AssetLayout",
    "InvalidTitleError",
    "clear_temp_uploads",
    "validate_title",
]
