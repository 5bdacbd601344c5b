"""The tool interface, permission flags and filesystem boundary checks.

Tools are the action layer: the model picks a tool, the executor enforces
permissions and confirmation, and the tool does the work. Every path a tool
touches is resolved through ``resolve_within`` or ``resolve_output`` so that
symlinks cannot lead outside the allowed directories.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Union

ToolArgs = Union[str, bytes, Mapping[str, Any]]


class ToolError(Exception):
    """Raised when a tool cannot carry out a call."""


class PathError(ToolError):
    """Raised when a path is missing or lies outside the allowed directories."""


@dataclass(frozen=True)
class ToolPermission:
    """Capabilities a tool needs."""

    network: bool = False
    file_system: bool = False
    hardware: bool = False
    media_capture: bool = False
    upload: bool = False


class Tool(ABC):
    """A named action the model may call with JSON arguments."""

    name: str
    description: str

    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Describe the accepted arguments."""

    @abstractmethod
    def requires_confirmation(self) -> bool:
        """Whether a user must confirm each call."""

    @abstractmethod
    def permissions(self) -> ToolPermission:
        """The capabilities this tool uses."""

    @abstractmethod
    def execute(self, args: ToolArgs, timeout: float | None = None) -> Any:
        """Run the tool; ``timeout`` bounds any work in seconds."""

    def _decode_args(self, args: ToolArgs) -> dict[str, Any]:
        """Turn raw JSON (or a mapping) into a dict of arguments."""
        if isinstance(args, Mapping):
            return dict(args)
        try:
            data = json.loads(args)
        except (ValueError, TypeError) as exc:
            raise ToolError(f"{self.name}: invalid args: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ToolError(f"{self.name}: invalid args: expected a JSON object")
        return data

    def _str_arg(self, data: Mapping[str, Any], key: str) -> str:
        value = data.get(key)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ToolError(f"{self.name}: invalid args: {key!r} must be a string")
        return value


def _resolved_bases(bases: Iterable[str | Path]) -> list[Path]:
    return [Path(base).resolve() for base in bases]


def _check_within(path: Path, raw: str | Path, bases: Iterable[str | Path]) -> Path:
    for base in _resolved_bases(bases):
        if path == base or base in path.parents:
            return path
    raise PathError(f"path {str(raw)!r} is outside the allowed directories")


def resolve_within(raw: str | Path, bases: Iterable[str | Path]) -> Path:
    """Resolve an existing path, following symlinks, and require it under a base."""
    if not str(raw):
        raise PathError("path is empty")
    try:
        path = Path(raw).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise PathError(f"path {str(raw)!r} cannot be resolved: {exc}") from exc
    return _check_within(path, raw, bases)


def resolve_output(raw: str | Path, bases: Iterable[str | Path]) -> Path:
    """Resolve a path that may not exist yet; its directory must exist under a base."""
    if not str(raw):
        raise PathError("path is empty")
    candidate = Path(raw)
    try:
        parent = candidate.parent.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise PathError(f"path {str(raw)!r}: directory cannot be resolved: {exc}") from exc
    path = parent / candidate.name
    if path.is_symlink() or path.exists():
        path = path.resolve()
    return _check_within(path, raw, bases)