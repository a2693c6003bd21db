from __future__ import annotations

"""
Sensor module service: positioning uplink + input1 -> output1 relay.

Examples:
  # Bench run: static instrument, in-process channels
  python -m sensor_module.service --config config/params.yaml

  # MQTT broker and a MAVLink position source as configured in params.yaml
  python -m sensor_module.service --config config/params.yaml --log-level DEBUG

Reconnection is not attempted: a lost connection is expected to end the
process and the container runtime restarts it.
"""

import argparse
import functools
import signal
import threading
from typing import Callable, Optional, Sequence, Tuple

from common.logging_setup import get_logger, setup_logging
from common.types import InstrumentReading
from common.utils import shifted_now
from sensor_module.batcher import Batcher
from sensor_module.channels import LocalChannelHub, Transport
from sensor_module.config import DEFAULT_CONFIG_PATH, ModuleConfig, load_config
from sensor_module.instrument import Instrument, MavlinkInstrument, StaticInstrument, open_instrument_connection
from sensor_module.mqtt_channels import MqttChannels
from sensor_module.relay import Relay
from sensor_module.sampler import Sampler
from sensor_module.supervisor import Supervisor


log = get_logger("sensor_module.service")


def build_transport(cfg: ModuleConfig, on_connection_lost: Optional[Callable[[str], None]] = None) -> Transport:
    if cfg.transport == "mqtt":
        m = cfg.mqtt
        return MqttChannels.connect(
            m.host,
            m.port,
            client_id=m.client_id,
            topic_prefix=m.topic_prefix,
            qos=m.qos,
            keepalive=m.keepalive,
            on_connection_lost=on_connection_lost,
        )
    return LocalChannelHub()


def build_instrument(cfg: ModuleConfig) -> Instrument:
    if cfg.instrument == "mavlink":
        mv = cfg.mavlink
        conn = open_instrument_connection(mv.url, timeout_s=mv.heartbeat_timeout_s)
        return MavlinkInstrument(
            conn,
            roll_correction_deg=mv.roll_correction_deg,
            pitch_correction_deg=mv.pitch_correction_deg,
            heading_correction_deg=mv.heading_correction_deg,
        )
    return StaticInstrument(InstrumentReading(g_force_magnitude=cfg.static_g_force))


def build_pipeline(cfg: ModuleConfig, transport: Transport, instrument: Instrument) -> Tuple[Relay, Supervisor]:
    """Wire relay and supervisor onto a transport; the relay is subscribed to input1."""
    relay = Relay(transport, publish_timeout_s=cfg.publish_timeout_s)
    relay.attach()

    sampler = Sampler(
        instrument,
        ref_lon=cfg.ref_lon,
        ref_lat=cfg.ref_lat,
        north_correction_ft=cfg.north_correction_ft,
        east_correction_ft=cfg.east_correction_ft,
        clock=functools.partial(shifted_now, cfg.timestamp_offset_hours),
    )
    batcher = Batcher(transport, window_ms=cfg.flush_window_ms, publish_timeout_s=cfg.publish_timeout_s)
    supervisor = Supervisor(sampler, batcher, tick_interval_ms=cfg.tick_interval_ms)
    return relay, supervisor


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Sensor module: positioning uplink and relay")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    ap.add_argument("--log-level", default=None, help="Overrides logging.level from config")
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(args.log_level or cfg.log_level)

    # Set from the transport's network thread; the loop below owns the exit.
    connection_lost = threading.Event()
    supervisor: Optional[Supervisor] = None

    def _on_connection_lost(reason: str) -> None:
        connection_lost.set()
        if supervisor is not None:
            supervisor.stop()

    transport = build_transport(cfg, on_connection_lost=_on_connection_lost)
    instrument = build_instrument(cfg)
    relay, supervisor = build_pipeline(cfg, transport, instrument)
    if connection_lost.is_set():
        supervisor.stop()

    def _on_signal(signum, frame):
        log.info("Shutdown signal received", extra={"extra": {"signal": signum}})
        supervisor.stop()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    log.info("Sensor module started", extra={"extra": {"transport": cfg.transport, "instrument": cfg.instrument}})
    try:
        supervisor.run()
    finally:
        if isinstance(transport, MqttChannels):
            transport.close()
        log.info("Sensor module stopped", extra={"extra": {"relayed": relay.counter}})

    if connection_lost.is_set():
        log.error("Exiting after lost connection", extra={"extra": {"exit_code": 1}})
        raise SystemExit(1)


if __name__ == "__main__":
    main()
