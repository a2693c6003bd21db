from __future__ import annotations

import json
import threading
from typing import List

from common.logging_setup import get_logger
from common.types import PositionSample
from sensor_module.channels import POSITIONING, Message, Transport
from sensor_module.errors import PublishError


log = get_logger("sensor_module.batcher")

FLUSH_WINDOW_MS = 10000
PUBLISH_TIMEOUT_S = 5.0
CONTENT_TYPE = "application/json"
CONTENT_ENCODING = "utf-8"


def encode_batch(samples: List[PositionSample]) -> bytes:
    """JSON array of wire dicts; ASCII-only so it is valid in any JSON charset."""
    return json.dumps([s.to_wire() for s in samples], ensure_ascii=True).encode(CONTENT_ENCODING)


class Batcher:
    """
    Owns the unsent samples and the flush clock.

    A flush publishes the whole buffer as one message and only clears it once
    the transport accepted it, so samples survive a failed publish and go out
    with the next attempt (at-least-once; the buffer grows without bound while
    the channel is down).
    """

    def __init__(
        self,
        transport: Transport,
        *,
        window_ms: float = FLUSH_WINDOW_MS,
        publish_timeout_s: float = PUBLISH_TIMEOUT_S,
        channel: str = POSITIONING,
    ):
        self.transport = transport
        self.window_ms = float(window_ms)
        self.publish_timeout_s = float(publish_timeout_s)
        self.channel = channel
        self.lock = threading.Lock()
        self._buffer: List[PositionSample] = []
        self._last_flush_ms = 0.0
        self._packets_sent = 0

    @property
    def pending(self) -> int:
        with self.lock:
            return len(self._buffer)

    @property
    def last_flush_ms(self) -> float:
        with self.lock:
            return self._last_flush_ms

    @property
    def packets_sent(self) -> int:
        with self.lock:
            return self._packets_sent

    def snapshot(self) -> List[PositionSample]:
        """Copy of the buffered samples in insertion order."""
        with self.lock:
            return list(self._buffer)

    def accept(self, sample: PositionSample) -> None:
        with self.lock:
            self._buffer.append(sample)

    def maybe_flush(self, now_ms: float) -> bool:
        """
        Publish the buffer if the window has elapsed.

        Returns True when a batch went out. Publish failures are logged and
        swallowed; the buffer and flush clock stay as they were.
        """
        with self.lock:
            if not self._buffer or (now_ms - self._last_flush_ms) < self.window_ms:
                return False
            count = len(self._buffer)
            msg = Message(
                payload=encode_batch(self._buffer),
                content_type=CONTENT_TYPE,
                content_encoding=CONTENT_ENCODING,
            )
            packet_no = self._packets_sent
            try:
                self.transport.publish(self.channel, msg, self.publish_timeout_s)
            except Exception as e:
                log.error(
                    "Positioning batch publish failed",
                    exc_info=True,
                    extra={"extra": {
                        "pending": count,
                        "packet": packet_no,
                        "kind": type(e).__name__,
                        "detail": e.detail if isinstance(e, PublishError) else str(e),
                    }},
                )
                return False

            self._buffer.clear()
            self._last_flush_ms = now_ms
            self._packets_sent += 1

        log.info(
            f"sending ({count}) messages to {self.channel} topic - packet # {packet_no}",
            extra={"extra": {"count": count, "packet": packet_no, "bytes": len(msg.payload)}},
        )
        return True
