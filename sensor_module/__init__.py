"""
Sensor Module: positioning uplink and message relay

Provides:
- Sampler: instrument reading -> PositionSample with offsets from the reference point
- Batcher: time-windowed batch published as one JSON array on `positioning`
- Relay: pass-through of `input1` messages to `output1`
- Supervisor: periodic sample/batch loop with per-tick fault isolation
- Transports: LocalChannelHub (in-process) and MqttChannels (paho-mqtt)

Entry point:
    python -m sensor_module.service --config config/params.yaml
"""
from __future__ import annotations

from .errors import SensorModuleError, PublishError, InstrumentNotReady, ConfigError
from .channels import Message, LocalChannelHub, POSITIONING, RELAY_INPUT, RELAY_OUTPUT
from .sampler import Sampler
from .batcher import Batcher
from .relay import Relay
from .supervisor import Supervisor

__all__ = [
    "SensorModuleError",
    "PublishError",
    "InstrumentNotReady",
    "ConfigError",
    "Message",
    "LocalChannelHub",
    "POSITIONING",
    "RELAY_INPUT",
    "RELAY_OUTPUT",
    "Sampler",
    "Batcher",
    "Relay",
    "Supervisor",
]
