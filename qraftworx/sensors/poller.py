"""Concurrent polling of several sensors under one deadline."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any

from qraftworx.sensors.base import SensorProvider

logger = logging.getLogger(__name__)


class Poller:
    """Polls every provider concurrently and merges what arrives in time.

    ``timeout`` is in seconds. Providers that fail, are unavailable or do not
    answer before the deadline are left out of the result.
    """

    def __init__(self, timeout: float, *args: SensorProvider) -> None:
        self.timeout = timeout
        self.providers: list[SensorProvider] = list(args)

    def poll_all(self) -> dict[str, Any]:
        """Return a mapping from provider name to its data."""
        results: queue.Queue = queue.Queue()
        for provider in self.providers:
            threading.Thread(
                target=self._poll_one,
                args=(provider, results),
                name=f"sensor-poll-{provider.name}",
                daemon=True,
            ).start()

        merged: dict[str, Any] = {}
        deadline = time.monotonic() + self.timeout
        for _ in self.providers:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                name, data = results.get(timeout=remaining)
            except queue.Empty:
                break
            if data is not None:
                merged[name] = data
        return merged

    @staticmethod
    def _poll_one(provider: SensorProvider, results: queue.Queue) -> None:
        name = provider.name
        try:
            data = provider.poll()
        except Exception as exc:
            logger.warning("sensor %r poll error: %s", name, exc)
            data = None
        else:
            if data is None:
                logger.info("sensor %r unavailable, skipping", name)
        results.put((name, data))