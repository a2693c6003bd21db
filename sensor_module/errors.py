from __future__ import annotations


class SensorModuleError(Exception):
    """Base class for sensor module failures."""


class PublishError(SensorModuleError):
    """A message could not be published on a channel (error or timeout)."""

    def __init__(self, channel: str, detail: str):
        super().__init__(f"publish to '{channel}' failed: {detail}")
        self.channel = channel
        self.detail = detail


class InstrumentNotReady(SensorModuleError):
    """The instrument has not produced a usable reading yet."""


class ConfigError(SensorModuleError):
    """Invalid or inconsistent configuration."""
