"""Frame capture from a configured media device."""

from __future__ import annotations

import os
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from qraftworx.tools.base import Tool, ToolArgs, ToolError, ToolPermission, resolve_output
from qraftworx.tools.ffmpeg import FFmpegBuilder


class CaptureMediaTool(Tool):
    """Captures a single frame into the work directory.

    The device comes from configuration only, never from call arguments.
    """

    name = "capture_media"
    description = "Capture a frame or short video from a media device"

    def __init__(self, builder: FFmpegBuilder, work_dir: str | Path, device_path: str | Path) -> None:
        self.builder = builder
        self.work_dir = Path(work_dir)
        self.device_path = Path(device_path)

    def parameters(self) -> dict[str, Any]:
        return {
            "filename": {
                "type": "STRING",
                "description": "output filename (placed in work directory)",
                "required": True,
            },
        }

    def requires_confirmation(self) -> bool:
        return True

    def permissions(self) -> ToolPermission:
        return ToolPermission(hardware=True, media_capture=True, file_system=True)

    def execute(self, args: ToolArgs, timeout: float | None = None) -> dict[str, Any]:
        data = self._decode_args(args)
        filename = self._str_arg(data, "filename")
        if not filename:
            raise ToolError("capture_media: filename is required")
        if os.path.basename(filename) != filename:
            raise ToolError("capture_media: filename must not contain path separators")

        try:
            output = resolve_output(self.work_dir / filename, [self.work_dir])
        except ToolError as exc:
            raise ToolError(f"capture_media: output path validation: {exc}") from exc

        argv = self.builder.capture_frame(self.device_path, output)
        try:
            subprocess.run(argv, capture_output=True, timeout=timeout, check=True)
        except (OSError, subprocess.SubprocessError) as exc:
            raise ToolError(f"capture_media: ffmpeg: {exc}") from exc

        try:
            size = output.stat().st_size
        except OSError as exc:
            raise ToolError(f"capture_media: output file not created: {exc}") from exc

        return {
            "status": "captured",
            "path": str(output),
            "size": size,
            "captured": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }