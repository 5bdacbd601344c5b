"""Video transcoding of files inside the work directory."""

from __future__ import annotations

import os
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from qraftworx.tools.base import (
    Tool,
    ToolArgs,
    ToolError,
    ToolPermission,
    resolve_output,
    resolve_within,
)
from qraftworx.tools.ffmpeg import FFmpegBuilder, FFmpegError, TranscodeOpts

_UNITS = {
    "ns": 1e-9, "us": 1e-6, "µs": 1e-6, "μs": 1e-6,
    "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0,
}
_COMPONENT = re.compile(r"([0-9]*\.?[0-9]*)(ns|us|µs|μs|ms|s|m|h)")

DEFAULT_DURATION = 10.0
DEFAULT_FPS = 30


def parse_duration(text: str) -> float:
    """Parse a duration such as "30s", "1h30m" or "250ms" into seconds."""
    rest = text
    sign = 1.0
    if rest[:1] in ("+", "-"):
        sign = -1.0 if rest[0] == "-" else 1.0
        rest = rest[1:]
    if rest == "0":
        return 0.0
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if not match or match.group(1) in ("", "."):
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    return sign * total


class ProcessVideoTool(Tool):
    """Transcodes a video already in the work directory."""

    name = "process_video"
    description = "Transcode a video file using ffmpeg"

    def __init__(self, builder: FFmpegBuilder, work_dir: str | Path) -> None:
        self.builder = builder
        self.work_dir = Path(work_dir)

    def parameters(self) -> dict[str, Any]:
        return {
            "input": {"type": "STRING",
                      "description": "input video file path (must be within work directory)",
                      "required": True},
            "output": {"type": "STRING",
                       "description": "output filename (placed in work directory)",
                       "required": True},
            "codec": {"type": "STRING",
                      "description": "video codec (e.g., libx264, libx265, copy)",
                      "required": True},
            "resolution": {"type": "STRING",
                           "description": "output resolution WxH (e.g., 1920x1080)"},
            "fps": {"type": "NUMBER", "description": "frames per second (clamped to 1-60)"},
            "duration": {"type": "STRING",
                         "description": "maximum duration (e.g., 30s, 5m, 1h)"},
        }

    def requires_confirmation(self) -> bool:
        return False

    def permissions(self) -> ToolPermission:
        return ToolPermission(file_system=True)

    def execute(self, args: ToolArgs, timeout: float | None = None) -> dict[str, Any]:
        data = self._decode_args(args)
        input_raw = self._str_arg(data, "input")
        output_name = self._str_arg(data, "output")
        codec = self._str_arg(data, "codec")
        resolution = self._str_arg(data, "resolution")
        duration_text = self._str_arg(data, "duration")
        fps = data.get("fps") or 0
        if isinstance(fps, bool) or not isinstance(fps, int):
            raise ToolError("process_video: invalid args: 'fps' must be an integer")

        if not input_raw:
            raise ToolError("process_video: input is required")
        if not output_name:
            raise ToolError("process_video: output is required")
        if not codec:
            raise ToolError("process_video: codec is required")

        try:
            input_path = resolve_within(input_raw, [self.work_dir])
        except ToolError as exc:
            raise ToolError(f"process_video: input path validation: {exc}") from exc

        if os.path.basename(output_name) != output_name:
            raise ToolError("process_video: output must be a filename, not a path")
        try:
            output_path = resolve_output(self.work_dir / output_name, [self.work_dir])
        except ToolError as exc:
            raise ToolError(f"process_video: output path validation: {exc}") from exc

        duration = DEFAULT_DURATION
        if duration_text:
            try:
                duration = parse_duration(duration_text)
            except ValueError as exc:
                raise ToolError(
                    f"process_video: invalid duration {duration_text!r}: {exc}"
                ) from exc

        opts = TranscodeOpts(codec=codec, resolution=resolution,
                             fps=fps or DEFAULT_FPS, duration=duration)
        try:
            argv = self.builder.transcode(input_path, output_path, opts)
        except FFmpegError as exc:
            raise ToolError(f"process_video: {exc}") from exc

        try:
            subprocess.run(argv, capture_output=True, timeout=timeout, check=True)
        except (OSError, subprocess.SubprocessError) as exc:
            raise ToolError(f"process_video: ffmpeg: {exc}") from exc

        try:
            size = output_path.stat().st_size
        except OSError as exc:
            raise ToolError(f"process_video: output file not created: {exc}") from exc

        return {
            "status": "processed",
            "input": str(input_path),
            "output": str(output_path),
            "size": size,
            "codec": codec,
            "processed": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }