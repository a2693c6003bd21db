from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Tuple

import paho.mqtt.client as mqtt
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.properties import Properties

from common.logging_setup import get_logger
from sensor_module.channels import Handler, Message
from sensor_module.errors import PublishError


log = get_logger("sensor_module.mqtt")


def to_publish_properties(message: Message) -> Optional[Properties]:
    """
    MQTT v5 PUBLISH properties for a Message.
    Metadata -> user properties; content type -> ContentType;
    utf-8 encoding -> PayloadFormatIndicator=1.
    """
    if not message.properties and not message.content_type and not message.content_encoding:
        return None
    props = Properties(PacketTypes.PUBLISH)
    if message.content_type:
        props.ContentType = message.content_type
    if message.content_encoding and message.content_encoding.lower() == "utf-8":
        props.PayloadFormatIndicator = 1
    if message.properties:
        props.UserProperty = [(str(k), str(v)) for k, v in message.properties.items()]
    return props


def from_mqtt_message(msg) -> Message:
    """Inverse of to_publish_properties for an inbound paho MQTTMessage."""
    props = getattr(msg, "properties", None)
    pairs: List[Tuple[str, str]] = list(getattr(props, "UserProperty", None) or [])
    content_type = getattr(props, "ContentType", None)
    encoding = "utf-8" if getattr(props, "PayloadFormatIndicator", 0) == 1 else None
    return Message(
        payload=bytes(msg.payload or b""),
        properties={k: v for k, v in pairs},
        content_type=content_type,
        content_encoding=encoding,
    )


class MqttChannels:
    """
    Transport over an MQTT v5 broker: channel `name` maps to topic `<prefix>/<name>`.

    The client's network loop must be running (loop_start) for publishes to
    complete. Inbound handlers run on a worker pool owned by this object, never
    on the network-loop thread: a handler that publishes and waits for the
    PUBACK needs that loop free to read it.

    No reconnection: an unexpected disconnect is reported once through
    `on_connection_lost` and the process is expected to exit.
    """

    def __init__(
        self,
        client: mqtt.Client,
        *,
        topic_prefix: str = "sensor_module",
        qos: int = 1,
        handler_workers: int = 4,
        on_connection_lost: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.topic_prefix = topic_prefix.rstrip("/")
        self.qos = int(qos)
        self.on_connection_lost = on_connection_lost
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, Handler] = {}
        self._closing = False
        self._workers = ThreadPoolExecutor(max_workers=handler_workers, thread_name_prefix="mqtt-handler")

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect

    @classmethod
    def connect(
        cls,
        host: str,
        port: int = 1883,
        *,
        client_id: str = "",
        topic_prefix: str = "sensor_module",
        qos: int = 1,
        keepalive: int = 60,
        on_connection_lost: Optional[Callable[[str], None]] = None,
    ) -> "MqttChannels":
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, protocol=mqtt.MQTTv5)
        channels = cls(client, topic_prefix=topic_prefix, qos=qos, on_connection_lost=on_connection_lost)
        client.connect(host, port, keepalive=keepalive)
        client.loop_start()
        log.info("MQTT client initialized", extra={"extra": {"host": host, "port": port, "client_id": client_id}})
        return channels

    def close(self) -> None:
        """Disconnect, stop the network loop and wait for in-flight handlers."""
        with self._lock:
            self._closing = True
        self.client.disconnect()
        self.client.loop_stop()
        self._workers.shutdown(wait=True)

    def topic(self, channel: str) -> str:
        return f"{self.topic_prefix}/{channel}"

    # --- Transport ---

    def publish(self, channel: str, message: Message, timeout_s: float = 5.0) -> None:
        info = self.client.publish(
            self.topic(channel),
            message.payload,
            qos=self.qos,
            properties=to_publish_properties(message),
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(channel, mqtt.error_string(info.rc))
        try:
            info.wait_for_publish(timeout=timeout_s)
        except (RuntimeError, ValueError) as e:
            raise PublishError(channel, str(e)) from e
        if not info.is_published():
            raise PublishError(channel, f"not acknowledged within {timeout_s:.1f}s")

    def subscribe(self, channel: str, handler: Handler) -> None:
        topic = self.topic(channel)

        def _dispatch(client, userdata, msg) -> None:
            # Runs on the network loop: convert and hand off, never block here.
            message = from_mqtt_message(msg)
            try:
                self._workers.submit(self._run_handler, channel, handler, message)
            except RuntimeError:
                log.warning("Inbound message dropped after close", extra={"extra": {"channel": channel}})

        with self._lock:
            self._subscriptions[topic] = handler
        self.client.message_callback_add(topic, _dispatch)
        self.client.subscribe(topic, qos=self.qos)
        log.info("Handler registered", extra={"extra": {"channel": channel, "topic": topic}})

    def _run_handler(self, channel: str, handler: Handler, message: Message) -> None:
        try:
            handler(message)
        except Exception as e:
            # Negative completion for this message only.
            log.error(
                "Inbound message handler failed",
                exc_info=True,
                extra={"extra": {"channel": channel, "kind": type(e).__name__}},
            )

    # --- Connection status ---

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        log.info("Connection changed", extra={"extra": {"status": "connected", "reason": str(reason_code)}})
        with self._lock:
            topics = list(self._subscriptions)
        for t in topics:
            client.subscribe(t, qos=self.qos)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        with self._lock:
            expected = self._closing
        if expected:
            log.info("Connection changed", extra={"extra": {"status": "closed", "reason": str(reason_code)}})
            return
        log.warning("Connection changed", extra={"extra": {"status": "disconnected", "reason": str(reason_code)}})
        if self.on_connection_lost is not None:
            self.on_connection_lost(str(reason_code))
