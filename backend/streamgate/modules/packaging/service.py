"""Service layer for the upload packaging pipeline.

Runs one upload through probe -> plan -> encode -> catalog update as a
sequence of suspendable steps. Any failure aborts the remaining stages of
that asset only; the catalog is written last, after the manifest exists.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from streamgate.core.config import Settings, settings as default_settings
from streamgate.core.logging import correlation_id_var, log_error, log_info, set_correlation_id
from streamgate.core.metrics import PIPELINE_RUNS_TOTAL, PIPELINE_STAGE_DURATION_SECONDS
from streamgate.modules.catalog.service import CatalogUpdater, CatalogWriteError
from streamgate.modules.packaging.abr import (
    DEFAULT_LADDER,
    EncodeJobParams,
    RenditionSpec,
    plan_encode_job,
)
from streamgate.modules.packaging.ffmpeg import (
    FFmpegPackager,
    PackagingError,
    ProgressCallback,
    TranscodeError,
)
from streamgate.modules.packaging.schemas import IngestResult, SourceAsset
from streamgate.modules.packaging.storage import (
    AssetLayout,
    cleanup_local_file,
    get_public_url,
    validate_title,
)

logger = logging.getLogger(__name__)


class PackagingService:
    """Turns one uploaded source into a published, cataloged DASH asset."""

    def __init__(
        self,
        catalog: CatalogUpdater,
        packager: Optional[FFmpegPackager] = None,
        config: Settings = default_settings,
        renditions: tuple[RenditionSpec, ...] = DEFAULT_LADDER,
    ):
        """Initialize service.

        Args:
            catalog: Catalog updater shared by all pipelines
            packager: FFmpeg packager (built from config if not provided)
            config: Application settings
            renditions: Video ladder to encode
        """
        self.catalog = catalog
        self.packager = packager or FFmpegPackager(
            ffmpeg_path=config.FFMPEG_BINARY_PATH,
            ffprobe_path=config.FFPROBE_BINARY_PATH,
        )
        self.public_dir = Path(config.PUBLIC_DIR)
        self.cdn_url = config.CDN_URL
        self.renditions = renditions

    async def ingest(
        self,
        asset: SourceAsset,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> IngestResult:
        """Package an upload and record it in the catalog.

        On success the source file is deleted. On failure it is left in
        place for inspection.

        Args:
            asset: The accepted upload
            progress_callback: Optional callback receiving encode percentages

        Returns:
            IngestResult with the published manifest and thumbnail paths

        Raises:
            InvalidTitleError: If the title is not a single path segment
            ProbeError: If the source is unreadable or not media
            TranscodeError: If the encoder fails
            CatalogWriteError: If the asset was packaged but not recorded
        """
        title = validate_title(asset.resolved_title())
        layout = AssetLayout(public_dir=self.public_dir, title=title)

        previous_correlation_id = correlation_id_var.get()
        set_correlation_id(f"ingest-{uuid.uuid4()}")
        log_info(logger, f"Packaging {title!r}", source_path=str(asset.source_path))
        try:
            result = await self._run_pipeline(asset, layout, progress_callback)
        except (PackagingError, CatalogWriteError) as e:
            PIPELINE_RUNS_TOTAL.labels(outcome=type(e).__name__).inc()
            log_error(
                logger,
                f"Pipeline for {title!r} failed",
                exception=e,
                source_path=str(asset.source_path),
            )
            raise
        finally:
            correlation_id_var.set(previous_correlation_id)

        PIPELINE_RUNS_TOTAL.labels(outcome="success").inc()
        return result

    async def _run_pipeline(
        self,
        asset: SourceAsset,
        layout: AssetLayout,
        progress_callback: Optional[ProgressCallback],
    ) -> IngestResult:
        source = asset.source_path

        with PIPELINE_STAGE_DURATION_SECONDS.labels(stage="probe").time():
            media = await self.packager.probe(source)
        log_info(
            logger,
            "Source probed",
            title=layout.title,
            has_audio=media.has_audio,
            duration=media.duration,
        )

        params: EncodeJobParams = plan_encode_job(media.has_audio, self.renditions)

        layout.ensure_directory()
        with PIPELINE_STAGE_DURATION_SECONDS.labels(stage="thumbnail").time():
            await self.packager.generate_thumbnail(
                source,
                layout.directory,
                at_seconds=media.duration / 2,
            )

        with PIPELINE_STAGE_DURATION_SECONDS.labels(stage="package").time():
            await self.packager.package_dash(
                source,
                layout.directory,
                params,
                duration=media.duration,
                progress_callback=progress_callback,
            )

        if not layout.manifest_file.is_file():
            raise TranscodeError(f"Manifest missing after packaging: {layout.manifest_file}")

        cleanup_local_file(source)

        manifest_path = get_public_url(layout.manifest_key, self.cdn_url)
        thumbnail_path = get_public_url(layout.thumbnail_key, self.cdn_url)

        with PIPELINE_STAGE_DURATION_SECONDS.labels(stage="catalog").time():
            await self.catalog.record_asset(
                title=layout.title,
                manifest_path=manifest_path,
                thumbnail_path=thumbnail_path,
                date=asset.date,
                info=asset.info,
            )

        return IngestResult(
            title=layout.title,
            manifest_path=manifest_path,
            thumbnail_path=thumbnail_path,
            has_audio=media.has_audio,
        )

