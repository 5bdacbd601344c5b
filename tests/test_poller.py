import threading

from qraftworx.sensors.base import SensorProvider
from qraftworx.sensors.poller import Poller


class MockProvider(SensorProvider):
    def __init__(self, name, data=None, error=None, delay=0.0):
        self.name = name
        self.data = data
        self.error = error
        self.delay = delay
        self._release = threading.Event()

    def poll(self):
        if self.delay > 0:
            self._release.wait(self.delay)
        if self.error is not None:
            raise self.error
        return self.data


def test_poll_all_multiple_sensors():
    p1 = MockProvider("sensor-a", data={"temp": 42.0})
    p2 = MockProvider("sensor-b", data={"humidity": 65.0})
    result = Poller(5.0, p1, p2).poll_all()

    assert len(result) == 2
    assert result["sensor-a"]["temp"] == 42.0
    assert result["sensor-b"]["humidity"] == 65.0


def test_poll_all_timeout_skips_slow():
    fast = MockProvider("fast-sensor", data={"value": 1.0})
    slow = MockProvider("slow-sensor", data={"value": 2.0}, delay=2.0)
    result = Poller(0.2, fast, slow).poll_all()

    assert "fast-sensor" in result
    assert "slow-sensor" not in result


def test_poll_all_all_down():
    result = Poller(1.0, MockProvider("down-1"), MockProvider("down-2")).poll_all()
    assert result == {}


def test_poll_all_no_providers():
    assert Poller(1.0).poll_all() == {}


def test_poll_all_error_sensor():
    error_provider = MockProvider("error-sensor", error=TimeoutError("deadline exceeded"))
    ok_provider = MockProvider("ok-sensor", data={"status": "ok"})
    result = Poller(1.0, error_provider, ok_provider).poll_all()

    assert "error-sensor" not in result
    assert result["ok-sensor"] == {"status": "ok"}


def test_poll_all_can_repeat():
    poller = Poller(1.0, MockProvider("a", data={"n": 1.0}))
    first = poller.poll_all()
    second = poller.poll_all()
    assert first == {"a": {"n": 1.0}}
    assert second == {"a": {"n": 1.0}}