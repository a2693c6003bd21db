from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, DefaultDict, Dict, List, Optional, Protocol

from common.logging_setup import get_logger
from sensor_module.errors import PublishError


log = get_logger("sensor_module.channels")

# Fixed channel names
RELAY_INPUT = "input1"
RELAY_OUTPUT = "output1"
POSITIONING = "positioning"


@dataclass(frozen=True)
class Message:
    """
    A message on a named channel.

    Attributes:
        payload: raw body bytes (never decoded by the transport).
        properties: application metadata key/value pairs.
        content_type, content_encoding: optional system properties.
    """
    payload: bytes
    properties: Dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None


# Returns the ack (True = completed).
Handler = Callable[[Message], bool]


class Transport(Protocol):
    def publish(self, channel: str, message: Message, timeout_s: float) -> None:
        """Publish or raise PublishError; must return within timeout_s."""
        ...

    def subscribe(self, channel: str, handler: Handler) -> None:
        ...


class LocalChannelHub:
    """
    In-process transport.

    Published messages are recorded per channel and handed to any
    subscribers of that channel. `deliver()` injects inbound traffic the way
    an external broker would. While offline, every publish raises
    PublishError.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._published: DefaultDict[str, List[Message]] = defaultdict(list)
        self._online = True

    def set_online(self, online: bool) -> None:
        self._online = bool(online)

    def publish(self, channel: str, message: Message, timeout_s: float = 5.0) -> None:
        if not self._online:
            raise PublishError(channel, "hub offline")
        with self._lock:
            self._published[channel].append(message)
            handlers = list(self._handlers.get(channel, ()))
        for h in handlers:
            h(message)

    def subscribe(self, channel: str, handler: Handler) -> None:
        with self._lock:
            self._handlers[channel].append(handler)
        log.info("Handler registered", extra={"extra": {"channel": channel}})

    def deliver(self, channel: str, message: Message) -> List[bool]:
        """Inbound delivery; returns each handler's ack. Handler errors propagate."""
        with self._lock:
            handlers = list(self._handlers.get(channel, ()))
        return [h(message) for h in handlers]

    def published(self, channel: str) -> List[Message]:
        with self._lock:
            return list(self._published.get(channel, ()))
