"""Upload to YouTube as a multipart request with OAuth."""

from __future__ import annotations

import json
import secrets
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from qraftworx.tools.base import ToolError
from qraftworx.tools.upload import UploadMetadata, UploadResult, Uploader


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class YouTubeUploader(Uploader):
    """Sends JSON metadata and the file content as two multipart parts."""

    platform = "youtube"

    def __init__(self, api_url: str, oauth_token: str) -> None:
        self.api_url = api_url
        self.oauth_token = oauth_token

    @staticmethod
    def _snippet(metadata: UploadMetadata) -> bytes:
        body = {
            "snippet": {
                "title": metadata.title,
                "description": metadata.description,
                "tags": list(metadata.tags),
            },
            "status": {"privacyStatus": metadata.privacy or "private"},
        }
        return (json.dumps(body, separators=(",", ":")) + "\n").encode("utf-8")

    def _multipart(self, file: Path, metadata: UploadMetadata) -> tuple[bytes, str]:
        try:
            content = Path(file).read_bytes()
        except OSError as exc:
            raise ToolError(f"youtube: open file: {exc}") from exc

        boundary = secrets.token_hex(30)
        delimiter = f"--{boundary}".encode("ascii")
        disposition = (
            f'Content-Disposition: form-data; name="file"; '
            f'filename="{_quote(str(file))}"'
        ).encode("utf-8")
        body = b"".join([
            delimiter, b"\r\n",
            b"Content-Type: application/json\r\n\r\n",
            self._snippet(metadata),
            b"\r\n", delimiter, b"\r\n",
            disposition, b"\r\n",
            b"Content-Type: application/octet-stream\r\n\r\n",
            content,
            b"\r\n", delimiter, b"--\r\n",
        ])
        return body, f"multipart/form-data; boundary={boundary}"

    def upload(
        self, file: Path, metadata: UploadMetadata, timeout: float | None = None
    ) -> UploadResult:
        """Upload the file and return the new video's id and URL."""
        body, content_type = self._multipart(file, metadata)

        request = urllib.request.Request(self.api_url, data=body, method="POST")
        request.add_header("Authorization", "Bearer " + self.oauth_token)
        request.add_header("Content-Type", content_type)

        kwargs: dict[str, Any] = {} if timeout is None else {"timeout": timeout}
        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                status = response.status
                payload = response.read()
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", "replace")
            raise ToolError(
                f"youtube: upload failed with status {exc.code}: {detail}"
            ) from exc
        except OSError as exc:
            raise ToolError(f"youtube: request failed: {exc}") from exc

        if status != 200:
            raise ToolError(
                f"youtube: upload failed with status {status}: "
                f"{payload.decode('utf-8', 'replace')}"
            )

        try:
            decoded = json.loads(payload)
        except ValueError as exc:
            raise ToolError(f"youtube: decode response: {exc}") from exc
        video_id = decoded.get("id") if isinstance(decoded, dict) else None
        if video_id is None:
            video_id = ""
        if not isinstance(video_id, str):
            raise ToolError("youtube: decode response: id is not a string")

        return UploadResult(
            platform="youtube",
            url=f"https://youtube.com/watch?v={video_id}",
            id=video_id,
        )