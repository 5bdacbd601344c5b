import pytest

from qraftworx.sensors.base import SensorValidationError
from qraftworx.sensors.mqtt import (
    FieldSpec,
    MQTTClient,
    MQTTConfig,
    MQTTConfigError,
    MQTTSensor,
    SchemaError,
    ValueSchema,
)


class MockMQTTClient(MQTTClient):
    def __init__(self, connect_error=None, subscribe_error=None):
        self.connect_error = connect_error
        self.subscribe_error = subscribe_error
        self.handler = None
        self.subscribed = None
        self.disconnected_with = None

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error

    def subscribe(self, topic, qos, callback):
        self.handler = callback
        self.subscribed = (topic, qos)
        if self.subscribe_error is not None:
            raise self.subscribe_error

    def disconnect(self, quiesce):
        self.disconnected_with = quiesce

    def is_connected(self):
        return True

    def simulate_message(self, topic, payload):
        if self.handler is not None:
            self.handler(topic, payload)


def _config(name="temp-sensor", topic="sensors/temp"):
    return MQTTConfig(name=name, broker_url="ssl://broker:8883", topic=topic)


@pytest.mark.parametrize(
    "url", ["tcp://broker:1883", "mqtt://broker:1883", "ws://broker:8083"]
)
def test_config_rejects_plaintext(url):
    cfg = MQTTConfig(name="test", broker_url=url, topic="test/topic", allow_insecure=False)
    with pytest.raises(MQTTConfigError, match="allow_insecure"):
        cfg.validate()


def test_config_allow_insecure_accepts_plaintext():
    cfg = MQTTConfig(
        name="test", broker_url="tcp://broker:1883", topic="test/topic", allow_insecure=True
    )
    assert cfg.validate() is cfg


@pytest.mark.parametrize(
    "url",
    ["ssl://broker:8883", "tls://broker:8883", "mqtts://broker:8884", "wss://broker:8884"],
)
def test_config_accepts_secure(url):
    cfg = MQTTConfig(name="test", broker_url=url, topic="test/topic")
    assert cfg.validate() is cfg


def test_config_scheme_is_case_insensitive():
    cfg = MQTTConfig(name="test", broker_url="SSL://broker:8883", topic="t")
    assert cfg.validate().broker_url == "SSL://broker:8883"


@pytest.mark.parametrize(
    "cfg, message",
    [
        (MQTTConfig(broker_url="ssl://broker:8883", topic="t"), "name"),
        (MQTTConfig(name="s", topic="t"), "broker"),
        (MQTTConfig(name="s", broker_url="ssl://broker:8883"), "topic"),
        (MQTTConfig(name="s", broker_url="ftp://broker:21", topic="t"), "unsupported"),
    ],
    ids=["empty name", "empty broker", "empty topic", "unknown scheme"],
)
def test_config_rejects_empty_fields(cfg, message):
    with pytest.raises(MQTTConfigError, match=message):
        cfg.validate()


def test_sensor_rejects_invalid_config():
    mock = MockMQTTClient()
    with pytest.raises(MQTTConfigError):
        MQTTSensor(MQTTConfig(name="s", broker_url="tcp://b:1883", topic="t"), mock)
    assert mock.handler is None


def test_subscribe_and_cache():
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(), mock, None)
    assert mock.subscribed == ("sensors/temp", 0)

    mock.simulate_message("sensors/temp", b'{"temperature": 42.5}')
    data = sensor.poll()
    assert data is not None
    assert data["temperature"] == 42.5
    sensor.close()


def test_poll_returns_copy():
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(), mock)
    mock.simulate_message("sensors/temp", b'{"temperature": 42.5}')
    first = sensor.poll()
    first["temperature"] = 0.0
    assert sensor.poll()["temperature"] == 42.5


def test_poll_no_data():
    sensor = MQTTSensor(_config(), MockMQTTClient(), None)
    assert sensor.poll() is None


def test_schema_validation():
    schema = ValueSchema(
        fields={
            "temperature": FieldSpec(type="float64", min=0.0, max=300.0),
            "status": FieldSpec(type="enum", allowed=("ok", "warning", "error")),
        }
    )
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(), mock, schema)

    mock.simulate_message("sensors/temp", b'{"temperature": 42.5, "status": "ok"}')
    assert sensor.poll() is not None

    mock.simulate_message("sensors/temp", b'{"temperature": 500.0, "status": "ok"}')
    assert sensor.poll()["temperature"] == 42.5

    mock.simulate_message("sensors/temp", b'{"temperature": 50.0, "status": "invalid_status"}')
    assert sensor.poll()["status"] == "ok"


def test_rejects_injection():
    schema = ValueSchema(fields={"temperature": FieldSpec(type="float64")})
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(), mock, schema)
    mock.simulate_message("sensors/temp", b'{"temperature": "drop table sensors"}')
    assert sensor.poll() is None


def test_invalid_json_dropped():
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(name="test", topic="test/topic"), mock)
    mock.simulate_message("test/topic", b"not json")
    assert sensor.poll() is None


def test_non_object_json_dropped():
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(), mock)
    mock.simulate_message("sensors/temp", b"[1, 2, 3]")
    assert sensor.poll() is None


def test_name():
    sensor = MQTTSensor(_config(name="my-sensor", topic="test/topic"), MockMQTTClient())
    assert sensor.name == "my-sensor"


def test_close_disconnects():
    mock = MockMQTTClient()
    sensor = MQTTSensor(_config(), mock)
    sensor.close()
    assert mock.disconnected_with == 250


def test_connect_error():
    mock = MockMQTTClient(connect_error=OSError("refused"))
    with pytest.raises(ConnectionError, match="mqtt connect: refused"):
        MQTTSensor(_config(), mock)


def test_subscribe_error():
    mock = MockMQTTClient(subscribe_error=OSError("denied"))
    with pytest.raises(ConnectionError, match="mqtt subscribe: denied"):
        MQTTSensor(_config(), mock)


@pytest.fixture
def schema():
    return ValueSchema(
        fields={
            "count": FieldSpec(type="int", min=0.0, max=100.0),
            "label": FieldSpec(type="string"),
            "status": FieldSpec(type="enum", allowed=("on", "off")),
        }
    )


@pytest.mark.parametrize(
    "data",
    [
        {"count": 42.0},
        {"count": 42},
        {"label": "hello"},
        {"status": "on"},
        {"unknown_field": "value"},
    ],
    ids=["valid int", "valid plain int", "valid string", "valid enum", "missing field"],
)
def test_validate_value_accepts(schema, data):
    assert schema.validate_value(data) == data


@pytest.mark.parametrize(
    "data",
    [
        {"count": 42.5},
        {"count": "abc"},
        {"count": 101.0},
        {"count": -1},
        {"count": True},
        {"label": 123.0},
        {"status": "maybe"},
        {"status": 42.0},
    ],
    ids=[
        "non-integer in int",
        "string in int",
        "above maximum",
        "below minimum",
        "bool in int",
        "non-string in string",
        "invalid enum",
        "non-string in enum",
    ],
)
def test_validate_value_rejects(schema, data):
    with pytest.raises(SchemaError):
        schema.validate_value(data)


def test_empty_schema_is_noop():
    data = {"anything": "goes"}
    assert ValueSchema().validate_value(data) == data


def test_unknown_type_in_schema():
    bad = ValueSchema(fields={"x": FieldSpec(type="complex128")})
    with pytest.raises(SchemaError, match="unknown type"):
        bad.validate_value({"x": "val"})


def test_schema_error_is_validation_error():
    spec = FieldSpec(type="float64", max=1.0)
    with pytest.raises(SensorValidationError, match="above maximum"):
        spec.validate("level", 2.0)