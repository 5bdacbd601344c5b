"""Printer status polling through the Moonraker HTTP API."""

from __future__ import annotations

import http.client
import json
import urllib.request
from dataclasses import dataclass
from enum import Enum
from typing import Any

from qraftworx.sensors.base import SensorProvider, SensorValidationError

_STATUS_PATH = "/printer/objects/query?extruder&heater_bed&print_stats&display_status"


class PrinterStateEnum(str, Enum):
    """Printer states that Klipper reports and that are accepted."""

    IDLE = "idle"
    PRINTING = "printing"
    PAUSED = "paused"
    ERROR = "error"


@dataclass
class PrinterState:
    """Validated, typed subset of Moonraker data.

    Only these typed fields are passed on, never the raw response.
    """

    extruder_temp_c: float
    bed_temp_c: float
    print_progress: float
    state: PrinterStateEnum | str
    filename: str

    @property
    def state_name(self) -> str:
        """The state as a plain string."""
        if isinstance(self.state, PrinterStateEnum):
            return self.state.value
        return str(self.state)

    def validate(self) -> PrinterState:
        """Check the state and ranges; return self when valid."""
        try:
            PrinterStateEnum(self.state_name)
        except ValueError:
            raise SensorValidationError(
                f"printer state: invalid state {self.state_name!r}"
            ) from None
        if not 0 <= self.extruder_temp_c <= 300:
            raise SensorValidationError(
                f"printer state: extruder temp {self.extruder_temp_c:.1f} "
                "out of range [0, 300]"
            )
        if not 0 <= self.bed_temp_c <= 150:
            raise SensorValidationError(
                f"printer state: bed temp {self.bed_temp_c:.1f} out of range [0, 150]"
            )
        if not 0 <= self.print_progress <= 1.0:
            raise SensorValidationError(
                f"printer state: print progress {self.print_progress:.2f} "
                "out of range [0, 1.0]"
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the state as a plain mapping for prompt context."""
        return {
            "extruder_temp_c": self.extruder_temp_c,
            "bed_temp_c": self.bed_temp_c,
            "print_progress": self.print_progress,
            "state": self.state_name,
            "filename": self.filename,
        }


class _MalformedResponse(Exception):
    """The response body does not have the expected shape."""


def _reject_constant(token: str) -> Any:
    raise ValueError(f"invalid JSON constant {token}")


def _object(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _MalformedResponse(f"expected object, got {type(value).__name__}")
    return value


def _number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _MalformedResponse(f"expected number, got {type(value).__name__}")
    return float(value)


def _string(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _MalformedResponse(f"expected string, got {type(value).__name__}")
    return value


def _parse_status(body: bytes) -> PrinterState:
    payload = json.loads(body, parse_constant=_reject_constant)
    status = _object(_object(_object(payload).get("result")).get("status"))
    print_stats = _object(status.get("print_stats"))
    return PrinterState(
        extruder_temp_c=_number(_object(status.get("extruder")).get("temperature")),
        bed_temp_c=_number(_object(status.get("heater_bed")).get("temperature")),
        print_progress=_number(_object(status.get("display_status")).get("progress")),
        state=_string(print_stats.get("state")),
        filename=_string(print_stats.get("filename")),
    )


class MoonrakerSensor(SensorProvider):
    """Polls a Moonraker server for Klipper printer status."""

    def __init__(self, name: str, base_url: str, timeout: float) -> None:
        self.name = name
        self.base_url = base_url
        self.timeout = timeout

    def poll(self) -> dict[str, Any] | None:
        """Fetch and validate printer state.

        Returns ``None`` when the server is unreachable, answers with a
        status other than 200, or sends a body that cannot be parsed.
        Raises SensorValidationError when the values are out of range.
        """
        request = urllib.request.Request(self.base_url + _STATUS_PATH, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                if response.status != 200:
                    return None
                body = response.read()
        except (OSError, http.client.HTTPException):
            return None

        try:
            state = _parse_status(body)
        except (ValueError, _MalformedResponse):
            return None

        return state.validate().to_dict()

    def close(self) -> None:
        """Nothing to release: each poll opens its own connection."""