from __future__ import annotations

import logging
import os
import sys
import json
import time
from typing import IO, Optional


class JsonFormatter(logging.Formatter):
    """
    JSON line formatter used by every sensor module process:
      { "t": 169, "lvl": "INFO", "name": "sensor_module.batcher", "thread": "supervisor",
        "msg": "text", "extra": {...} }

    `thread` tells the tick loop apart from the MQTT handler workers
    (`mqtt-handler_N`) when both log about the same transport.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "t": int(time.time() * 1000),
            "lvl": record.levelname,
            "name": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):  # type: ignore[attr-defined]
            payload["extra"] = record.extra  # type: ignore[attr-defined]
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, stream: Optional[IO[str]] = None) -> None:
    """
    Configure the root logger once with JSON lines on `stream` (stdout when
    None; the container runtime collects stdout).

    Level precedence:
      - explicit `level` arg (service --log-level, then logging.level in params.yaml)
      - env SENSOR_MODULE_LOG_LEVEL, then LOG_LEVEL
      - default INFO
    A later call with an explicit `level` only adjusts the level; handlers
    and stream stay as first configured.
    """
    root = logging.getLogger()
    if getattr(root, "_sensor_module_configured", False):
        if level:
            root.setLevel(_resolve_level(level))
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    env_level = os.environ.get("SENSOR_MODULE_LOG_LEVEL") or os.environ.get("LOG_LEVEL")
    root.setLevel(_resolve_level(level or env_level or "INFO"))
    root._sensor_module_configured = True  # type: ignore[attr-defined]


def _resolve_level(name: str) -> int:
    # unknown names map to INFO
    lvl = logging.getLevelName(name.upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Get a module logger; ensures root is configured."""
    setup_logging()
    return logging.getLogger(name)
