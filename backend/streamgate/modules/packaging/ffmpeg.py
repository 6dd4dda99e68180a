"""FFmpeg packaging utilities.

Probes sources with ffprobe and packages them into a multi-rendition DASH
asset with a single ffmpeg pass. The encoder runs as an external process;
callers suspend until it exits and never block other pipelines.
"""

import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from streamgate.core.metrics import ENCODES_IN_PROGRESS
from streamgate.modules.packaging.abr import (
    EncodeJobParams,
    MANIFEST_NAME,
    THUMBNAIL_NAME,
    THUMBNAIL_WIDTH,
    get_ffmpeg_args_for_job,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ProgressCallback = Callable[[float], None]


class PackagingError(Exception):
    """Base exception for packaging pipeline errors."""
    pass


class ProbeError(PackagingError):
    """Raised when a source is unreadable or not a valid media container."""
    pass


class TranscodeError(PackagingError):
    """Raised when the encoder process fails.

    Carries the encoder's diagnostic output for inspection.
    """

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


@dataclass
class MediaProbe:
    """Stream characteristics of a source file."""
    has_video: bool
    has_audio: bool
    duration: float = 0.0
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class ProcessResult:
    """Exit status and captured output of an external process."""
    returncode: int
    stdout: str
    stderr: str


def parse_probe_output(info: dict) -> MediaProbe:
    """Interpret ffprobe JSON output.

    Args:
        info: Parsed output of ffprobe -show_format -show_streams

    Returns:
        MediaProbe for the source

    Raises:
        ProbeError: If the container has no video stream
    """
    streams = info.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    has_audio = any(s.get("codec_type") == "audio" for s in streams)

    if video is None:
        raise ProbeError("Source has no video stream")

    try:
        duration = float((info.get("format") or {}).get("duration", 0) or 0)
    except (TypeError, ValueError):
        duration = 0.0

    return MediaProbe(
        has_video=True,
        has_audio=has_audio,
        duration=duration,
        width=video.get("width"),
        height=video.get("height"),
    )


def parse_progress_line(line: str, duration: float) -> Optional[float]:
    """Convert one line of ffmpeg -progress output to a percentage.

    Args:
        line: A key=value line from the progress stream
        duration: Source duration in seconds

    Returns:
        Percentage between 0 and 100, or None if the line carries no progress
    """
    key, _, value = line.strip().partition("=")
    if key == "progress" and value == "end":
        return 100.0
    if key != "out_time_ms" or duration <= 0:
        return None
    try:
        # out_time_ms is reported in microseconds
        seconds = int(value) / 1_000_000
    except ValueError:
        return None
    return min(100.0, max(0.0, seconds / duration * 100))


class FFmpegPackager:
    """FFmpeg-based DASH packager."""

    STDERR_TAIL_LINES = 200

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        """Initialize packager.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            ffprobe_path: Path to ffprobe binary
        """
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path

    async def run_process(
        self,
        cmd: list[str],
        on_stdout_line: Optional[Callable[[str], None]] = None,
    ) -> ProcessResult:
        """Run an external process and wait for it to exit.

        stdout and stderr are drained concurrently so neither pipe can fill
        up and stall the process. Only the tail of stderr is kept.

        Args:
            cmd: Command and arguments
            on_stdout_line: Optional callback for each stdout line

        Returns:
            ProcessResult with exit code and captured output

        Raises:
            TranscodeError: If reading the output or the line callback fails;
                the process is killed first
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return ProcessResult(returncode=-1, stdout="", stderr=str(e))

        stdout_lines: list[str] = []
        stderr_lines: deque[str] = deque(maxlen=self.STDERR_TAIL_LINES)

        async def read_stdout():
            async for raw in process.stdout:
                line = raw.decode(errors="replace").rstrip("\n")
                stdout_lines.append(line)
                if on_stdout_line:
                    on_stdout_line(line)

        async def read_stderr():
            async for raw in process.stderr:
                stderr_lines.append(raw.decode(errors="replace").rstrip("\n"))

        readers = [
            asyncio.ensure_future(read_stdout()),
            asyncio.ensure_future(read_stderr()),
        ]
        try:
            await asyncio.gather(*readers)
            returncode = await process.wait()
        except Exception as e:
            raise TranscodeError(
                f"Failed to read output of {Path(cmd[0]).name}: {e}",
                stderr="\n".join(stderr_lines),
            ) from e
        finally:
            # Never leave the child running once we stop reading its pipes
            for reader in readers:
                reader.cancel()
            if process.returncode is None:
                process.kill()
                await process.wait()

        return ProcessResult(
            returncode=returncode,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
        )

    async def probe(self, input_path: PathLike) -> MediaProbe:
        """Inspect container and stream metadata of a source file.

        Args:
            input_path: Path to the source file

        Returns:
            MediaProbe describing the source

        Raises:
            ProbeError: If the file is missing, unreadable or not media
        """
        path = Path(input_path)
        if not path.is_file():
            raise ProbeError(f"Source file not found: {path}")

        cmd = [
            self.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]

        result = await self.run_process(cmd)
        if result.returncode != 0:
            message = result.stderr.strip() or "unknown ffprobe error"
            raise ProbeError(f"Cannot probe {path.name}: {message}")

        try:
            info = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(f"Unreadable ffprobe output for {path.name}") from e

        return parse_probe_output(info)

    async def has_audio_stream(self, input_path: PathLike) -> bool:
        """Check whether a source carries an audio stream."""
        media = await self.probe(input_path)
        return media.has_audio

    def build_thumbnail_command(
        self,
        input_path: PathLike,
        output_dir: PathLike,
        at_seconds: float = 0.0,
    ) -> list[str]:
        """Build the ffmpeg command extracting one representative frame."""
        return [
            self.ffmpeg_path,
            "-y",
            "-ss", f"{max(at_seconds, 0.0):.3f}",
            "-i", str(input_path),
            "-frames:v", "1",
            "-vf", f"scale={THUMBNAIL_WIDTH}:-1",
            str(Path(output_dir) / THUMBNAIL_NAME),
        ]

    def build_package_command(
        self,
        input_path: PathLike,
        output_dir: PathLike,
        params: EncodeJobParams,
    ) -> list[str]:
        """Build the single-pass DASH command producing every rendition.

        Args:
            input_path: Source file
            output_dir: Asset directory receiving manifest and segments
            params: Planned job parameters

        Returns:
            FFmpeg command as list of arguments
        """
        return [
            self.ffmpeg_path,
            "-y",
            "-progress", "pipe:1",
            "-nostats",
            "-i", str(input_path),
            *get_ffmpeg_args_for_job(params),
            str(Path(output_dir) / MANIFEST_NAME),
        ]

    async def generate_thumbnail(
        self,
        input_path: PathLike,
        output_dir: PathLike,
        at_seconds: float = 0.0,
    ) -> Path:
        """Write thumbnail.webp into the asset directory.

        Raises:
            TranscodeError: If ffmpeg fails
        """
        cmd = self.build_thumbnail_command(input_path, output_dir, at_seconds)
        logger.info("Generating thumbnail: %s", " ".join(cmd))

        result = await self.run_process(cmd)
        if result.returncode != 0:
            logger.error("Thumbnail generation failed. STDERR: %s", result.stderr)
            raise TranscodeError(
                f"Thumbnail generation failed: {result.stderr or 'unknown ffmpeg error'}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        logger.info("Thumbnail generation completed.")
        return Path(output_dir) / THUMBNAIL_NAME

    async def package_dash(
        self,
        input_path: PathLike,
        output_dir: PathLike,
        params: EncodeJobParams,
        duration: float = 0.0,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """Encode all renditions into one DASH manifest on a shared timeline.

        Args:
            input_path: Source file
            output_dir: Asset directory
            params: Planned job parameters
            duration: Source duration, used for progress percentages
            progress_callback: Optional callback for progress updates

        Returns:
            Path of the written manifest

        Raises:
            TranscodeError: If ffmpeg fails or writes no manifest
        """
        cmd = self.build_package_command(input_path, output_dir, params)
        logger.info("Spawned ffmpeg with command: %s", " ".join(cmd))

        def on_line(line: str) -> None:
            percent = parse_progress_line(line, duration)
            if percent is None:
                return
            logger.debug("Packaging progress %.1f%%", percent)
            if progress_callback:
                progress_callback(percent)

        ENCODES_IN_PROGRESS.inc()
        try:
            result = await self.run_process(cmd, on_stdout_line=on_line)
        finally:
            ENCODES_IN_PROGRESS.dec()

        if result.returncode != 0:
            logger.error("FFmpeg packaging failed. STDERR: %s", result.stderr)
            raise TranscodeError(
                f"DASH packaging failed with exit code {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        manifest = Path(output_dir) / MANIFEST_NAME
        if not manifest.is_file():
            raise TranscodeError(
                f"FFmpeg exited cleanly but wrote no manifest at {manifest}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        logger.info("Video segments generation (DASH ABR) completed.")
        return manifest
