"""Media type checks based on file content rather than file name."""

from __future__ import annotations

from pathlib import Path

from qraftworx.tools.base import ToolError

ALLOWED_MIME_TYPES = frozenset({"video/mp4", "image/jpeg"})

_SNIFF_LEN = 512

_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"OggS\x00", "application/ogg"),
)

_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


class MediaTypeError(ToolError):
    """Raised when a file cannot be read or is not an accepted media type."""


def _is_mp4(data: bytes) -> bool:
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return False
    if data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            continue
        if data[start:start + 3] == b"mp4":
            return True
    return False


def detect_content_type(data: bytes) -> str:
    """Guess a MIME type from up to the first 512 bytes of content."""
    data = data[:_SNIFF_LEN]
    for signature, mime in _SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if _is_mp4(data):
        return "video/mp4"
    if data.startswith(b"\xef\xbb\xbf") or not _BINARY_BYTES.intersection(data):
        return "text/plain; charset=utf-8"
    return "application/octet-stream"


def validate_media_file(path: str | Path) -> str:
    """Return the file's MIME type if it is an accepted upload type."""
    try:
        with open(path, "rb") as handle:
            header = handle.read(_SNIFF_LEN)
    except OSError as exc:
        raise MediaTypeError(f"validate media: open: {exc}") from exc
    mime = detect_content_type(header)
    if mime not in ALLOWED_MIME_TYPES:
        raise MediaTypeError(f"validate media: MIME type {mime!r} not allowed")
    return mime