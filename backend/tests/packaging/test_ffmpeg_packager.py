"""Tests for FFmpeg command building, probe parsing and progress parsing.

No encoder binary is executed. Process runs are faked at run_process, or a
short Python child stands in for the encoder.
"""

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

from streamgate.core.metrics import REGISTRY
from streamgate.modules.packaging.abr import plan_encode_job
from streamgate.modules.packaging.ffmpeg import (
    FFmpegPackager,
    ProbeError,
    ProcessResult,
    TranscodeError,
    parse_probe_output,
    parse_progress_line,
)

PROBE_WITH_AUDIO = {
    "streams": [
        {"codec_type": "video", "width": 1920, "height": 1080},
        {"codec_type": "audio", "channels": 2},
    ],
    "format": {"duration": "12.5"},
}


class ScriptedPackager(FFmpegPackager):
    """Packager returning canned process results."""

    def __init__(self, result: ProcessResult, stdout_lines: tuple[str, ...] = ()):
        super().__init__(ffmpeg_path="/opt/ffmpeg", ffprobe_path="/opt/ffprobe")
        self.result = result
        self.stdout_lines = stdout_lines
        self.commands: list[list[str]] = []

    async def run_process(
        self,
        cmd: list[str],
        on_stdout_line: Optional[Callable[[str], None]] = None,
    ) -> ProcessResult:
        self.commands.append(cmd)
        if on_stdout_line:
            for line in self.stdout_lines:
                on_stdout_line(line)
        return self.result


class TestParseProbeOutput:
    def test_video_and_audio(self) -> None:
        media = parse_probe_output(PROBE_WITH_AUDIO)

        assert media.has_video
        assert media.has_audio
        assert media.duration == 12.5
        assert (media.width, media.height) == (1920, 1080)

    def test_video_only(self) -> None:
        media = parse_probe_output({"streams": [{"codec_type": "video"}], "format": {}})

        assert not media.has_audio
        assert media.duration == 0.0

    def test_no_video_stream_is_a_probe_error(self) -> None:
        """An audio-only container SHALL be rejected before encoding."""
        with pytest.raises(ProbeError):
            parse_probe_output({"streams": [{"codec_type": "audio"}]})

    def test_unparseable_duration_defaults_to_zero(self) -> None:
        media = parse_probe_output(
            {"streams": [{"codec_type": "video"}], "format": {"duration": "N/A"}}
        )
        assert media.duration == 0.0


class TestParseProgressLine:
    @pytest.mark.parametrize(
        "line,expected",
        [
            ("out_time_ms=5000000", 50.0),
            ("out_time_ms=0", 0.0),
            ("out_time_ms=20000000", 100.0),
            ("progress=end", 100.0),
            ("progress=continue", None),
            ("frame=42", None),
            ("out_time_ms=N/A", None),
        ],
    )
    def test_lines(self, line: str, expected: Optional[float]) -> None:
        assert parse_progress_line(line, duration=10.0) == expected

    def test_unknown_duration_reports_nothing_until_end(self) -> None:
        assert parse_progress_line("out_time_ms=5000000", duration=0.0) is None
        assert parse_progress_line("progress=end", duration=0.0) == 100.0


class TestCommandBuilding:
    def test_package_command(self, tmp_path: Path) -> None:
        packager = FFmpegPackager(ffmpeg_path="/opt/ffmpeg")
        cmd = packager.build_package_command(
            tmp_path / "in.mp4", tmp_path / "out", plan_encode_job(has_audio=False)
        )

        assert cmd[:7] == ["/opt/ffmpeg", "-y", "-progress", "pipe:1", "-nostats", "-i", str(tmp_path / "in.mp4")]
        assert cmd[-1] == str(tmp_path / "out" / "index.mpd")
        assert cmd[-3:-1] == ["-adaptation_sets", "id=0,streams=0,1,2"]

    def test_thumbnail_command(self, tmp_path: Path) -> None:
        packager = FFmpegPackager(ffmpeg_path="/opt/ffmpeg")
        cmd = packager.build_thumbnail_command(tmp_path / "in.mp4", tmp_path, at_seconds=6.25)

        assert cmd == [
            "/opt/ffmpeg",
            "-y",
            "-ss", "6.250",
            "-i", str(tmp_path / "in.mp4"),
            "-frames:v", "1",
            "-vf", "scale=320:-1",
            str(tmp_path / "thumbnail.webp"),
        ]


class TestProbe:
    @pytest.mark.asyncio
    async def test_probe_parses_ffprobe_json(self, tmp_path: Path) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"\x00")
        packager = ScriptedPackager(ProcessResult(0, json.dumps(PROBE_WITH_AUDIO), ""))

        media = await packager.probe(source)

        assert media.has_audio
        assert packager.commands[0][0] == "/opt/ffprobe"
        assert packager.commands[0][-1] == str(source)

    @pytest.mark.asyncio
    async def test_has_audio_stream(self, tmp_path: Path) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"\x00")
        packager = ScriptedPackager(ProcessResult(0, json.dumps(PROBE_WITH_AUDIO), ""))

        assert await packager.has_audio_stream(source) is True

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path) -> None:
        packager = ScriptedPackager(ProcessResult(0, "{}", ""))

        with pytest.raises(ProbeError, match="not found"):
            await packager.probe(tmp_path / "missing.mp4")
        assert packager.commands == []

    @pytest.mark.asyncio
    async def test_ffprobe_failure(self, tmp_path: Path) -> None:
        source = tmp_path / "notes.txt"
        source.write_text("not a video")
        packager = ScriptedPackager(ProcessResult(1, "", "Invalid data found when processing input"))

        with pytest.raises(ProbeError, match="Invalid data"):
            await packager.probe(source)

    @pytest.mark.asyncio
    async def test_garbage_output(self, tmp_path: Path) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"\x00")
        packager = ScriptedPackager(ProcessResult(0, "not json", ""))

        with pytest.raises(ProbeError):
            await packager.probe(source)


class TestPackageDash:
    @pytest.mark.asyncio
    async def test_failure_carries_stderr(self, tmp_path: Path) -> None:
        packager = ScriptedPackager(ProcessResult(1, "", "Conversion failed!"))

        with pytest.raises(TranscodeError) as exc_info:
            await packager.package_dash(tmp_path / "in.mp4", tmp_path, plan_encode_job(True))

        assert exc_info.value.returncode == 1
        assert "Conversion failed!" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_clean_exit_without_manifest(self, tmp_path: Path) -> None:
        packager = ScriptedPackager(ProcessResult(0, "", ""))

        with pytest.raises(TranscodeError, match="no manifest"):
            await packager.package_dash(tmp_path / "in.mp4", tmp_path, plan_encode_job(True))

    @pytest.mark.asyncio
    async def test_reports_progress(self, tmp_path: Path) -> None:
        (tmp_path / "index.mpd").write_text("<MPD/>")
        packager = ScriptedPackager(
            ProcessResult(0, "", ""),
            stdout_lines=("out_time_ms=2500000", "progress=continue", "progress=end"),
        )
        reported: list[float] = []

        manifest = await packager.package_dash(
            tmp_path / "in.mp4",
            tmp_path,
            plan_encode_job(True),
            duration=10.0,
            progress_callback=reported.append,
        )

        assert manifest == tmp_path / "index.mpd"
        assert reported == [25.0, 100.0]

    @pytest.mark.asyncio
    async def test_thumbnail_failure(self, tmp_path: Path) -> None:
        packager = ScriptedPackager(ProcessResult(1, "", "bad frame"))

        with pytest.raises(TranscodeError):
            await packager.generate_thumbnail(tmp_path / "in.mp4", tmp_path)


class TestRunProcess:
    @pytest.mark.asyncio
    async def test_missing_binary_is_a_failed_result(self, tmp_path: Path) -> None:
        packager = FFmpegPackager(ffmpeg_path=str(tmp_path / "no-such-ffmpeg"))

        result = await packager.run_process([packager.ffmpeg_path, "-version"])

        assert result.returncode == -1
        assert result.stderr

    @pytest.mark.asyncio
    async def test_failing_line_callback_kills_process(self) -> None:
        """If the stdout line callback fails, the child SHALL be killed and
        the failure surfaced as TranscodeError.
        """
        script = (
            "import os, time\n"
            "print(os.getpid(), flush=True)\n"
            "print('out_time_ms=1000000', flush=True)\n"
            "time.sleep(60)\n"
        )
        pids: list[int] = []

        def on_line(line: str) -> None:
            if not pids:
                pids.append(int(line))
                return
            raise RuntimeError("progress consumer crashed")

        packager = FFmpegPackager(ffmpeg_path=sys.executable)

        with pytest.raises(TranscodeError, match="progress consumer crashed") as exc_info:
            await asyncio.wait_for(
                packager.run_process([sys.executable, "-c", script], on_stdout_line=on_line),
                timeout=20,
            )

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        with pytest.raises(ProcessLookupError):
            os.kill(pids[0], 0)

    @pytest.mark.asyncio
    async def test_failing_progress_callback_during_packaging(self, tmp_path: Path) -> None:
        script = "import time\nprint('out_time_ms=2500000', flush=True)\ntime.sleep(60)\n"

        class SlowEncoder(FFmpegPackager):
            def build_package_command(self, input_path, output_dir, params):
                return [sys.executable, "-c", script]

        def crash(percent: float) -> None:
            raise RuntimeError("progress consumer crashed")

        with pytest.raises(TranscodeError):
            await asyncio.wait_for(
                SlowEncoder().package_dash(
                    tmp_path / "in.mp4",
                    tmp_path,
                    plan_encode_job(True),
                    duration=10.0,
                    progress_callback=crash,
                ),
                timeout=20,
            )

        assert REGISTRY.get_sample_value("packaging_encodes_in_progress") == 0
