"""Upload of media files to external platforms, with a per-hour limit."""

from __future__ import annotations

import os
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from qraftworx.tools.base import (
    PathError,
    Tool,
    ToolArgs,
    ToolError,
    ToolPermission,
    resolve_within,
)
from qraftworx.tools.mime import validate_media_file

RATE_WINDOW = 3600.0


@dataclass
class UploadMetadata:
    """Title, description, tags and privacy of an upload.

    ``privacy`` is "private", "unlisted" or "public"; empty means private.
    """

    title: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    privacy: str = ""


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded file ended up."""

    platform: str
    url: str
    id: str


class Uploader(ABC):
    """Platform-specific upload logic."""

    platform: str

    @abstractmethod
    def upload(
        self, file: Path, metadata: UploadMetadata, timeout: float | None = None
    ) -> UploadResult:
        """Send ``file`` to the platform; ``timeout`` is in seconds."""


class RateLimitError(ToolError):
    """Raised when the upload limit for the current window is used up."""


class UploadTool(Tool):
    """Uploads a media file from the media directory to a platform.

    Only files inside the media directory (after resolving symlinks) whose
    content is an accepted media type may be uploaded, and only one upload
    per hour succeeds.
    """

    name = "upload_media"
    description = "Upload media to an external platform"

    def __init__(
        self, media_dir: str | Path, platforms: Mapping[str, Uploader] | None = None
    ) -> None:
        self.media_dir = Path(media_dir)
        self.max_per_hour = 1
        self.platforms: dict[str, Uploader] = dict(platforms or {})
        self._lock = threading.Lock()
        self._uploads = 0
        self._window_start: float | None = None

    def parameters(self) -> dict[str, Any]:
        return {
            "file": {"type": "STRING",
                     "description": "path to media file (must be within media directory)",
                     "required": True},
            "platform": {"type": "STRING",
                         "description": "target platform (e.g., youtube, tiktok)",
                         "required": True},
            "title": {"type": "STRING", "description": "title for the upload",
                      "required": True},
            "description": {"type": "STRING", "description": "description for the upload"},
            "tags": {"type": "ARRAY", "description": "tags for the upload"},
            "privacy": {"type": "STRING",
                        "description": "privacy setting: private, unlisted, or public"},
        }

    def requires_confirmation(self) -> bool:
        return True

    def permissions(self) -> ToolPermission:
        return ToolPermission(network=True, upload=True, file_system=True)

    def execute(self, args: ToolArgs, timeout: float | None = None) -> dict[str, Any]:
        data = self._decode_args(args)
        file_raw = self._str_arg(data, "file")
        platform = self._str_arg(data, "platform")
        title = self._str_arg(data, "title")
        description = self._str_arg(data, "description")
        privacy = self._str_arg(data, "privacy")
        tags = data.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise ToolError("upload_media: invalid args: 'tags' must be a list of strings")

        if not file_raw:
            raise ToolError("upload_media: file is required")
        if not platform:
            raise ToolError("upload_media: platform is required")
        if not title:
            raise ToolError("upload_media: title is required")

        self._check_rate_limit()
        file_path = self._validate_file_path(file_raw)

        try:
            mime = validate_media_file(file_path)
        except ToolError as exc:
            raise ToolError(f"upload_media: {exc}") from exc

        uploader = self.platforms.get(platform.lower())
        if uploader is None:
            raise ToolError(f"upload_media: unknown platform {platform!r}")

        metadata = UploadMetadata(
            title=title, description=description, tags=list(tags), privacy=privacy
        )
        try:
            result = uploader.upload(file_path, metadata, timeout)
        except (ToolError, OSError) as exc:
            raise ToolError(f"upload_media: upload failed: {exc}") from exc

        self._record_upload()
        return {
            "status": "uploaded",
            "platform": result.platform,
            "url": result.url,
            "id": result.id,
            "mime": mime,
        }

    def _validate_file_path(self, raw: str) -> Path:
        if not os.path.isabs(raw):
            raise PathError("upload_media: file path must be absolute")
        try:
            return resolve_within(raw, [self.media_dir])
        except ToolError as exc:
            raise PathError(f"upload_media: path validation: {exc}") from exc

    def _check_rate_limit(self) -> None:
        with self._lock:
            now = time.monotonic()
            if self._window_start is None or now - self._window_start > RATE_WINDOW:
                self._uploads = 0
                self._window_start = now
            if self._uploads >= self.max_per_hour:
                raise RateLimitError(
                    f"upload_media: rate limit exceeded (max {self.max_per_hour} per hour)"
                )

    def _record_upload(self) -> None:
        with self._lock:
            if self._window_start is None:
                self._window_start = time.monotonic()
            self._uploads += 1