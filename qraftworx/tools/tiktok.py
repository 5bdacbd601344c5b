"""Upload to TikTok through the Content Posting API."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from qraftworx.tools.base import ToolError
from qraftworx.tools.upload import UploadMetadata, UploadResult, Uploader


class TikTokUploader(Uploader):
    """Posts the file as the request body, with metadata in a header."""

    platform = "tiktok"

    def __init__(self, api_url: str, access_token: str) -> None:
        self.api_url = api_url
        self.access_token = access_token

    def _metadata_header(self, metadata: UploadMetadata) -> str:
        body: dict[str, Any] = {
            "title": metadata.title,
            "description": metadata.description,
        }
        if metadata.tags:
            body["tags"] = list(metadata.tags)
        body["privacy_level"] = metadata.privacy or "private"
        body["video_data"] = ""
        return json.dumps(body, separators=(",", ":"))

    def upload(
        self, file: Path, metadata: UploadMetadata, timeout: float | None = None
    ) -> UploadResult:
        """Upload the file and return the new video's id and URL."""
        try:
            content = Path(file).read_bytes()
        except OSError as exc:
            raise ToolError(f"tiktok: read file: {exc}") from exc

        request = urllib.request.Request(self.api_url, data=content, method="POST")
        request.add_header("Authorization", "Bearer " + self.access_token)
        request.add_header("Content-Type", "application/octet-stream")
        request.add_header("X-TikTok-Metadata", self._metadata_header(metadata))

        kwargs: dict[str, Any] = {} if timeout is None else {"timeout": timeout}
        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                status = response.status
                payload = response.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", "replace")
            raise ToolError(
                f"tiktok: upload failed with status {exc.code}: {detail}"
            ) from exc
        except OSError as exc:
            raise ToolError(f"tiktok: request failed: {exc}") from exc

        if status != 200:
            raise ToolError(
                f"tiktok: upload failed with status {status}: "
                f"{payload.decode('utf-8', 'replace')}"
            )

        try:
            decoded = json.loads(payload)
        except ValueError as exc:
            raise ToolError(f"tiktok: decode response: {exc}") from exc
        data = decoded.get("data") if isinstance(decoded, dict) else None
        video_id = data.get("video_id") if isinstance(data, dict) else None
        if video_id is None:
            video_id = ""
        if not isinstance(video_id, str):
            raise ToolError("tiktok: decode response: video_id is not a string")

        return UploadResult(
            platform="tiktok",
            url=f"https://www.tiktok.com/@user/video/{video_id}",
            id=video_id,
        )