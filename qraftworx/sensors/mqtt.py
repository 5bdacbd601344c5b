"""MQTT topic subscription with schema-checked caching of the last message."""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from qraftworx.sensors.base import SensorProvider, SensorValidationError

MessageHandler = Callable[[str, bytes], None]

_SECURE_SCHEMES = ("ssl://", "tls://", "mqtts://", "wss://")
_PLAINTEXT_SCHEMES = ("tcp://", "mqtt://", "ws://")


class MQTTClient(ABC):
    """The subset of an MQTT client that a sensor needs.

    ``connect`` and ``subscribe`` raise on failure. The subscription
    callback receives the topic and the raw payload of each message.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the broker."""

    @abstractmethod
    def subscribe(self, topic: str, qos: int, callback: MessageHandler) -> None:
        """Subscribe to a topic, delivering messages to the callback."""

    @abstractmethod
    def disconnect(self, quiesce: int) -> None:
        """Disconnect, waiting up to ``quiesce`` milliseconds for pending work."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Report whether the client is connected."""


class MQTTConfigError(ValueError):
    """Raised for an incomplete or insecure MQTT configuration."""


@dataclass
class MQTTConfig:
    """Connection settings for an MQTT sensor.

    Plaintext broker URLs are refused unless ``allow_insecure`` is set.
    """

    name: str = ""
    broker_url: str = ""
    topic: str = ""
    ca_cert: str = ""
    client_cert: str = ""
    client_key: str = ""
    username: str = ""
    password: str = ""
    allow_insecure: bool = False

    def validate(self) -> MQTTConfig:
        """Check required fields and transport security; return self when valid."""
        if not self.name:
            raise MQTTConfigError("mqtt config: name is required")
        if not self.broker_url:
            raise MQTTConfigError("mqtt config: broker URL is required")
        if not self.topic:
            raise MQTTConfigError("mqtt config: topic is required")

        lower = self.broker_url.lower()
        is_secure = lower.startswith(_SECURE_SCHEMES)
        is_plaintext = lower.startswith(_PLAINTEXT_SCHEMES)

        if is_plaintext and not self.allow_insecure:
            raise MQTTConfigError(
                f"mqtt config: plaintext broker URL {self.broker_url!r} "
                "requires allow_insecure=True"
            )
        if not is_secure and not is_plaintext:
            raise MQTTConfigError(
                f"mqtt config: unsupported broker URL scheme {self.broker_url!r}"
            )
        return self


class SchemaError(SensorValidationError):
    """Raised when a message field does not match its FieldSpec."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class FieldSpec:
    """Expected type, numeric range and allowed values of one field.

    ``type`` is one of "float64", "int", "string" or "enum".
    """

    type: str
    min: float | None = None
    max: float | None = None
    allowed: tuple[str, ...] = ()

    def validate(self, name: str, value: Any) -> Any:
        """Check one value against this spec; return it when valid."""
        if self.type == "float64":
            if not _is_number(value):
                raise SchemaError(
                    f"field {name!r}: expected float64, got {type(value).__name__}"
                )
            self._check_range(name, value)
        elif self.type == "int":
            if not _is_number(value):
                raise SchemaError(
                    f"field {name!r}: expected int (numeric), got {type(value).__name__}"
                )
            if isinstance(value, float) and not value.is_integer():
                raise SchemaError(f"field {name!r}: expected integer, got {value}")
            self._check_range(name, value)
        elif self.type == "string":
            if not isinstance(value, str):
                raise SchemaError(
                    f"field {name!r}: expected string, got {type(value).__name__}"
                )
        elif self.type == "enum":
            if not isinstance(value, str):
                raise SchemaError(
                    f"field {name!r}: expected enum string, got {type(value).__name__}"
                )
            if value not in self.allowed:
                raise SchemaError(
                    f"field {name!r}: value {value!r} not in allowed set {list(self.allowed)}"
                )
        else:
            raise SchemaError(f"field {name!r}: unknown type {self.type!r} in schema")
        return value

    def _check_range(self, name: str, value: float) -> None:
        if self.min is not None and value < self.min:
            raise SchemaError(f"field {name!r}: value {value} below minimum {self.min}")
        if self.max is not None and value > self.max:
            raise SchemaError(f"field {name!r}: value {value} above maximum {self.max}")


@dataclass
class ValueSchema:
    """Field specs that incoming messages are checked against."""

    fields: dict[str, FieldSpec] = field(default_factory=dict)

    def validate_value(self, data: dict[str, Any]) -> dict[str, Any]:
        """Check every specified field present in ``data``; return ``data``.

        Fields missing from ``data`` are not an error.
        """
        for name, spec in self.fields.items():
            if name in data:
                spec.validate(name, data[name])
        return data


def _reject_constant(token: str) -> Any:
    raise ValueError(f"invalid JSON constant {token}")


class MQTTSensor(SensorProvider):
    """Subscribes to an MQTT topic and keeps the last valid message."""

    def __init__(
        self,
        config: MQTTConfig,
        client: MQTTClient,
        schema: ValueSchema | None = None,
    ) -> None:
        config.validate()
        self.name = config.name
        self.topic = config.topic
        self._client = client
        self._schema = schema
        self._lock = threading.Lock()
        self._last_value: dict[str, Any] | None = None

        try:
            client.connect()
        except Exception as exc:
            raise ConnectionError(f"mqtt connect: {exc}") from exc
        try:
            client.subscribe(config.topic, 0, self._handle_message)
        except Exception as exc:
            raise ConnectionError(f"mqtt subscribe: {exc}") from exc

    def _handle_message(self, topic: str, payload: bytes) -> None:
        """Cache a message when it is a JSON object that passes the schema."""
        try:
            data = json.loads(payload, parse_constant=_reject_constant)
        except ValueError:
            return
        if data is not None and not isinstance(data, dict):
            return
        if self._schema is not None and data is not None:
            try:
                self._schema.validate_value(data)
            except SensorValidationError:
                return
        with self._lock:
            self._last_value = data

    def poll(self) -> dict[str, Any] | None:
        """Return a copy of the last cached message, or None if there is none."""
        with self._lock:
            if self._last_value is None:
                return None
            return dict(self._last_value)

    def close(self) -> None:
        """Disconnect from the broker."""
        self._client.disconnect(250)