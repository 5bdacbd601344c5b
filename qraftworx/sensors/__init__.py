"""Sensor providers for printer telemetry: Moonraker, MQTT and a concurrent poller."""