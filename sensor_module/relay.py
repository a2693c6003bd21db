from __future__ import annotations

import threading

from common.logging_setup import get_logger
from sensor_module.channels import RELAY_INPUT, RELAY_OUTPUT, Message, Transport


log = get_logger("sensor_module.relay")


class Relay:
    """
    Pass-through from `input1` to `output1`.

    Every inbound message bumps the sequence counter (logged only). Non-empty
    payloads are republished byte-for-byte with a copy of every property.
    Publish errors are not caught: they fail this one message and leave the
    relay usable for the next.
    """

    def __init__(self, transport: Transport, *, publish_timeout_s: float = 5.0):
        self.transport = transport
        self.publish_timeout_s = float(publish_timeout_s)
        self._lock = threading.Lock()
        self._counter = 0

    @property
    def counter(self) -> int:
        with self._lock:
            return self._counter

    def _next(self) -> int:
        with self._lock:
            self._counter += 1
            return self._counter

    def attach(self) -> None:
        self.transport.subscribe(RELAY_INPUT, self.on_message)

    def on_message(self, message: Message) -> bool:
        seq = self._next()
        body = message.payload.decode("utf-8", errors="replace")
        log.info(
            f"Received message: {seq}, Body: [{body}]",
            extra={"extra": {"seq": seq, "bytes": len(message.payload), "properties": len(message.properties)}},
        )

        if message.payload:
            out = Message(payload=bytes(message.payload), properties=dict(message.properties))
            self.transport.publish(RELAY_OUTPUT, out, self.publish_timeout_s)
            log.info("Received message sent", extra={"extra": {"seq": seq}})
        return True
