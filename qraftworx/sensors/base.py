"""Interface shared by every source of live hardware state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class SensorValidationError(ValueError):
    """Raised when sensor data falls outside its declared schema or ranges."""


class SensorProvider(ABC):
    """A source of current hardware state, such as a printer or an MQTT topic.

    Subclasses set ``name``, which labels the provider's data when results
    are merged. ``poll`` returns ``None`` when the sensor cannot be reached,
    so callers can carry on without its data instead of failing.
    """

    name: str

    @abstractmethod
    def poll(self) -> dict[str, Any] | None:
        """Fetch the current state, or ``None`` if the sensor is unreachable."""

    def close(self) -> None:
        """Release any resources held by the provider."""

    def __enter__(self) -> SensorProvider:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()