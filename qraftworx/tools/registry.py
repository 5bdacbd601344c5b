"""Name-keyed collection of the tools available to the model."""

from __future__ import annotations

from qraftworx.tools.base import Tool


class DuplicateToolError(ValueError):
    """Raised when two tools are registered under the same name."""


class Registry:
    """Holds registered tools by name."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Add a tool; a second tool with the same name is an error."""
        name = tool.name
        if name in self._tools:
            raise DuplicateToolError(f"tools: duplicate registration for {name!r}")
        self._tools[name] = tool

    def get(self, name: str) -> Tool | None:
        """Return the tool with this name, or None."""
        return self._tools.get(name)

    def all(self) -> list[Tool]:
        """Return every registered tool."""
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)