"""Adaptive Bitrate (ABR) ladder planning for DASH packaging.

Derives the fixed video rendition ladder and the optional audio rendition,
and serializes them into the ordered ffmpeg argument list for a single
segmentation pass. Pure computation, no I/O.
"""

from dataclasses import dataclass
from typing import Optional


# GOP length in frames, fixed with scene-cut keyframes disabled so segment
# boundaries coincide with keyframes in every rendition.
KEYFRAME_INTERVAL = 48
SEGMENT_DURATION = 4  # seconds

VIDEO_CODEC = "libx264"
VIDEO_PRESET = "medium"
VIDEO_CRF = 24

MAXRATE_FACTOR = 1.2
BUFSIZE_FACTOR = 1.5

MANIFEST_NAME = "index.mpd"
THUMBNAIL_NAME = "thumbnail.webp"
THUMBNAIL_WIDTH = 320
INIT_SEGMENT_TEMPLATE = "init-$RepresentationID$.m4s"
MEDIA_SEGMENT_TEMPLATE = "segment-$RepresentationID$-$Number$.m4s"


@dataclass(frozen=True)
class RenditionSpec:
    """A single video rendition in the ladder."""
    width: int
    height: int
    bitrate_kbps: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rendition dimensions must be positive: {self.width}x{self.height}")
        if self.bitrate_kbps <= 0:
            raise ValueError(f"Rendition bitrate must be positive: {self.bitrate_kbps}")

    @property
    def bitrate(self) -> str:
        return f"{self.bitrate_kbps}k"

    @property
    def max_bitrate(self) -> str:
        return f"{_format_kbps(self.bitrate_kbps * MAXRATE_FACTOR)}k"

    @property
    def buffer_size(self) -> str:
        return f"{_format_kbps(self.bitrate_kbps * BUFSIZE_FACTOR)}k"

    @property
    def scale_filter(self) -> str:
        # Width follows the source aspect ratio, rounded to an even number.
        return f"scale=-2:{self.height}"


@dataclass(frozen=True)
class AudioRendition:
    """Audio encoding parameters, re-encoded to a fixed stereo layout."""
    codec: str = "aac"
    bitrate_kbps: int = 128
    channels: int = 2
    sample_rate_hz: int = 44100


# Order is the output stream index; the adaptation set descriptor
# references these positions, so never reorder.
DEFAULT_LADDER: tuple[RenditionSpec, ...] = (
    RenditionSpec(width=640, height=360, bitrate_kbps=800),
    RenditionSpec(width=1280, height=720, bitrate_kbps=2500),
    RenditionSpec(width=1920, height=1080, bitrate_kbps=5000),
)

DEFAULT_AUDIO = AudioRendition()


@dataclass(frozen=True)
class EncodeJobParams:
    """Immutable parameter set for one packaging job."""
    has_audio: bool
    renditions: tuple[RenditionSpec, ...] = DEFAULT_LADDER
    audio: Optional[AudioRendition] = None
    video_codec: str = VIDEO_CODEC
    preset: str = VIDEO_PRESET
    crf: int = VIDEO_CRF
    keyframe_interval: int = KEYFRAME_INTERVAL
    segment_duration: int = SEGMENT_DURATION

    @property
    def audio_stream_index(self) -> Optional[int]:
        """Output stream index of the audio rendition, if any."""
        if not self.has_audio:
            return None
        return len(self.renditions)

    @property
    def adaptation_sets(self) -> str:
        return build_adaptation_sets(len(self.renditions), self.has_audio)

    @property
    def adaptation_set_count(self) -> int:
        return 2 if self.has_audio else 1


def _format_kbps(value: float) -> str:
    """Render a kbps figure without a trailing .0 for whole numbers."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def build_adaptation_sets(video_count: int, has_audio: bool) -> str:
    """Build the ffmpeg -adaptation_sets descriptor.

    Video streams 0..N-1 form set 0 so a player can switch between them
    independently of audio; the trailing audio stream, when present, is set 1.

    Args:
        video_count: Number of video renditions
        has_audio: Whether an audio stream follows the video streams

    Returns:
        Descriptor string, e.g. "id=0,streams=0,1,2 id=1,streams=3"
    """
    if video_count < 1:
        raise ValueError("At least one video rendition is required")

    video_streams = ",".join(str(i) for i in range(video_count))
    descriptor = f"id=0,streams={video_streams}"
    if has_audio:
        descriptor += f" id=1,streams={video_count}"
    return descriptor


def plan_encode_job(
    has_audio: bool,
    renditions: tuple[RenditionSpec, ...] = DEFAULT_LADDER,
    audio: AudioRendition = DEFAULT_AUDIO,
) -> EncodeJobParams:
    """Plan the encode parameters for a source.

    Args:
        has_audio: Whether the source carries an audio stream
        renditions: Video ladder, in output stream order
        audio: Audio parameters used when has_audio is true

    Returns:
        EncodeJobParams for a single DASH pass

    Raises:
        ValueError: If the ladder is empty or not ordered by bitrate
    """
    renditions = tuple(renditions)
    is_valid, errors = validate_ladder(renditions)
    if not is_valid:
        raise ValueError("; ".join(errors))

    return EncodeJobParams(
        has_audio=has_audio,
        renditions=renditions,
        audio=audio if has_audio else None,
    )


def get_ffmpeg_args_for_rendition(index: int, rendition: RenditionSpec) -> list[str]:
    """Get the mapping and rate-control arguments for one video rendition."""
    return [
        "-map", "0:v:0",
        f"-filter:v:{index}", rendition.scale_filter,
        f"-b:v:{index}", rendition.bitrate,
        f"-maxrate:v:{index}", rendition.max_bitrate,
        f"-bufsize:v:{index}", rendition.buffer_size,
    ]


def get_ffmpeg_args_for_audio(audio: AudioRendition) -> list[str]:
    """Get the mapping and encoding arguments for the audio rendition."""
    return [
        "-map", "0:a:0",
        "-c:a", audio.codec,
        "-b:a", f"{audio.bitrate_kbps}k",
        "-ac", str(audio.channels),
        "-ar", str(audio.sample_rate_hz),
    ]


def get_ffmpeg_args_for_job(params: EncodeJobParams) -> list[str]:
    """Serialize a job into the ordered ffmpeg output argument list.

    The output path is not included; the caller appends it.

    Args:
        params: Planned job parameters

    Returns:
        List of ffmpeg arguments
    """
    args = [
        "-c:v", params.video_codec,
        "-preset", params.preset,
        "-crf", str(params.crf),
        "-keyint_min", str(params.keyframe_interval),
        "-g", str(params.keyframe_interval),
        "-sc_threshold", "0",
    ]

    for index, rendition in enumerate(params.renditions):
        args.extend(get_ffmpeg_args_for_rendition(index, rendition))

    if params.has_audio:
        args.extend(get_ffmpeg_args_for_audio(params.audio or DEFAULT_AUDIO))

    args.extend([
        "-f", "dash",
        "-seg_duration", str(params.segment_duration),
        "-use_template", "1",
        "-use_timeline", "1",
        "-init_seg_name", INIT_SEGMENT_TEMPLATE,
        "-media_seg_name", MEDIA_SEGMENT_TEMPLATE,
        "-adaptation_sets", params.adaptation_sets,
    ])

    return args


def validate_ladder(renditions: tuple[RenditionSpec, ...]) -> tuple[bool, list[str]]:
    """Validate a rendition ladder.

    Args:
        renditions: Ladder to validate

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    if not renditions:
        errors.append("Ladder must have at least one rendition")

    prev_bitrate = 0
    for rendition in renditions:
        if rendition.bitrate_kbps <= prev_bitrate:
            errors.append("Renditions must be ordered by increasing bitrate")
            break
        prev_bitrate = rendition.bitrate_kbps

    return len(errors) == 0, errors
