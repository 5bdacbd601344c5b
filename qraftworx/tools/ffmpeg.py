"""Construction of validated ffmpeg command lines.

Commands are argument lists, never shell strings. Codecs come from an
allowlist; frame rate and duration are clamped to safe ranges.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from qraftworx.tools.base import ToolError

ALLOWED_CODECS = frozenset(
    {"libx264", "libx265", "libvpx", "libaom", "copy", "aac",
     "libopus", "mjpeg", "png", "rawvideo"}
)

MIN_FPS = 1
MAX_FPS = 60
MIN_DURATION = 0.001
MAX_DURATION = 24 * 60 * 60.0

_RESOLUTION = re.compile(r"[0-9]{1,5}x[0-9]{1,5}")


class FFmpegError(ToolError):
    """Raised for a missing binary or a rejected transcoding option."""


@dataclass
class TranscodeOpts:
    """Transcoding options; ``duration`` is in seconds."""

    codec: str
    resolution: str = ""
    fps: int = 0
    duration: float = 0.0


def validate_codec(codec: str) -> bool:
    """Whether the codec is in the allowlist."""
    return codec in ALLOWED_CODECS


def clamp_fps(fps: int) -> int:
    """Clamp a frame rate to [1, 60]."""
    return max(MIN_FPS, min(MAX_FPS, fps))


def clamp_duration(duration: float) -> float:
    """Clamp a duration in seconds to [0.001, 86400]."""
    return max(MIN_DURATION, min(MAX_DURATION, duration))


class FFmpegBuilder:
    """Builds ffmpeg argument lists for a binary checked at construction."""

    def __init__(
        self,
        binary_path: str,
        allowed_in: Iterable[str | Path] = (),
        allowed_out: Iterable[str | Path] = (),
    ) -> None:
        resolved = shutil.which(binary_path)
        if resolved is None:
            raise FFmpegError(f"ffmpeg: binary not found at {binary_path!r}")
        self.binary = resolved
        self.allowed_in = [str(p) for p in allowed_in]
        self.allowed_out = [str(p) for p in allowed_out]

    def capture_frame(self, device: str | Path, output: str | Path) -> list[str]:
        """Command that grabs one frame from a V4L2 device."""
        return [
            self.binary,
            "-y",
            "-f", "v4l2",
            "-i", str(device),
            "-frames:v", "1",
            str(output),
        ]

    def transcode(
        self, input_path: str | Path, output: str | Path, opts: TranscodeOpts
    ) -> list[str]:
        """Command that transcodes ``input_path`` into ``output``."""
        if not validate_codec(opts.codec):
            raise FFmpegError(f"ffmpeg: codec {opts.codec!r} not in allowlist")
        if opts.resolution and not _RESOLUTION.fullmatch(opts.resolution):
            raise FFmpegError(
                f"ffmpeg: invalid resolution format {opts.resolution!r}, expected WxH"
            )
        argv = [
            self.binary,
            "-y",
            "-i", str(input_path),
            "-c:v", opts.codec,
            "-r", str(clamp_fps(opts.fps)),
            "-t", f"{clamp_duration(opts.duration):.3f}",
        ]
        if opts.resolution:
            argv += ["-s", opts.resolution]
        argv.append(str(output))
        return argv