from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from common.geo import EAST_CORRECTION_FT, NORTH_CORRECTION_FT, REFERENCE_LAT, REFERENCE_LON
from common.utils import TIMESTAMP_OFFSET_HOURS
from sensor_module.batcher import FLUSH_WINDOW_MS, PUBLISH_TIMEOUT_S
from sensor_module.errors import ConfigError
from sensor_module.instrument import HEADING_CORRECTION_DEG, PITCH_CORRECTION_DEG, ROLL_CORRECTION_DEG
from sensor_module.supervisor import TICK_INTERVAL_MS


DEFAULT_CONFIG_PATH = "config/params.yaml"

TRANSPORTS = ("local", "mqtt")
INSTRUMENTS = ("static", "mavlink")


@dataclass
class MqttConfig:
    host: str = "127.0.0.1"
    port: int = 1883
    client_id: str = "sensor-module"
    topic_prefix: str = "sensor_module"
    qos: int = 1
    keepalive: int = 60


@dataclass
class MavlinkConfig:
    url: str = "udp:0.0.0.0:14550"
    heartbeat_timeout_s: float = 10.0
    roll_correction_deg: float = ROLL_CORRECTION_DEG
    pitch_correction_deg: float = PITCH_CORRECTION_DEG
    heading_correction_deg: float = HEADING_CORRECTION_DEG


@dataclass
class ModuleConfig:
    tick_interval_ms: float = TICK_INTERVAL_MS
    flush_window_ms: float = FLUSH_WINDOW_MS
    publish_timeout_s: float = PUBLISH_TIMEOUT_S
    timestamp_offset_hours: float = TIMESTAMP_OFFSET_HOURS

    ref_lat: float = REFERENCE_LAT
    ref_lon: float = REFERENCE_LON
    north_correction_ft: float = NORTH_CORRECTION_FT
    east_correction_ft: float = EAST_CORRECTION_FT

    instrument: str = "static"
    static_g_force: float = 10.0
    mavlink: MavlinkConfig = field(default_factory=MavlinkConfig)

    transport: str = "local"
    mqtt: MqttConfig = field(default_factory=MqttConfig)

    log_level: str = "INFO"

    def validate(self) -> "ModuleConfig":
        if self.tick_interval_ms <= 0:
            raise ConfigError("module.tick_interval_ms must be > 0")
        if self.flush_window_ms < 0:
            raise ConfigError("module.flush_window_ms must be >= 0")
        if self.publish_timeout_s <= 0:
            raise ConfigError("module.publish_timeout_s must be > 0")
        if self.transport not in TRANSPORTS:
            raise ConfigError(f"transport.kind must be one of {TRANSPORTS}, got '{self.transport}'")
        if self.instrument not in INSTRUMENTS:
            raise ConfigError(f"instrument.kind must be one of {INSTRUMENTS}, got '{self.instrument}'")
        if self.mqtt.qos not in (0, 1, 2):
            raise ConfigError("transport.mqtt.qos must be 0, 1 or 2")
        return self


def _load_yaml(path: str) -> Dict:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def from_dict(P: Dict[str, Any]) -> ModuleConfig:
    """Build a ModuleConfig from the params.yaml layout; missing keys keep defaults."""
    if not isinstance(P, dict):
        raise ConfigError("config root must be a mapping")
    d = ModuleConfig()
    module = P.get("module", {}) or {}
    ref = P.get("reference", {}) or {}
    antenna = P.get("antenna", {}) or {}
    inst = P.get("instrument", {}) or {}
    tr = P.get("transport", {}) or {}
    mav = inst.get("mavlink", {}) or {}
    mq = tr.get("mqtt", {}) or {}

    try:
        cfg = ModuleConfig(
            tick_interval_ms=float(module.get("tick_interval_ms", d.tick_interval_ms)),
            flush_window_ms=float(module.get("flush_window_ms", d.flush_window_ms)),
            publish_timeout_s=float(module.get("publish_timeout_s", d.publish_timeout_s)),
            timestamp_offset_hours=float(module.get("timestamp_offset_hours", d.timestamp_offset_hours)),
            ref_lat=float(ref.get("latitude", d.ref_lat)),
            ref_lon=float(ref.get("longitude", d.ref_lon)),
            north_correction_ft=float(antenna.get("north_correction_ft", d.north_correction_ft)),
            east_correction_ft=float(antenna.get("east_correction_ft", d.east_correction_ft)),
            instrument=str(inst.get("kind", d.instrument)),
            static_g_force=float((inst.get("static", {}) or {}).get("g_force_magnitude", d.static_g_force)),
            mavlink=MavlinkConfig(
                url=str(mav.get("url", d.mavlink.url)),
                heartbeat_timeout_s=float(mav.get("heartbeat_timeout_s", d.mavlink.heartbeat_timeout_s)),
                roll_correction_deg=float(mav.get("roll_correction_deg", d.mavlink.roll_correction_deg)),
                pitch_correction_deg=float(mav.get("pitch_correction_deg", d.mavlink.pitch_correction_deg)),
                heading_correction_deg=float(mav.get("heading_correction_deg", d.mavlink.heading_correction_deg)),
            ),
            transport=str(tr.get("kind", d.transport)),
            mqtt=MqttConfig(
                host=str(mq.get("host", d.mqtt.host)),
                port=int(mq.get("port", d.mqtt.port)),
                client_id=str(mq.get("client_id", d.mqtt.client_id)),
                topic_prefix=str(mq.get("topic_prefix", d.mqtt.topic_prefix)),
                qos=int(mq.get("qos", d.mqtt.qos)),
                keepalive=int(mq.get("keepalive", d.mqtt.keepalive)),
            ),
            log_level=str((P.get("logging", {}) or {}).get("level", d.log_level)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid config value: {e}") from e
    return cfg.validate()


def load_config(path: Optional[str] = None) -> ModuleConfig:
    """
    Load params.yaml. A missing file yields the built-in defaults
    (static instrument, local transport).
    """
    p = Path(path or DEFAULT_CONFIG_PATH)
    if not p.exists():
        return ModuleConfig().validate()
    try:
        P = _load_yaml(str(p))
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse {p}: {e}") from e
    return from_dict(P)
