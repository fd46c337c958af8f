#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import paho.mqtt.client as paho_mqtt

from ...mapping.errors import ConfigError
from ..models import InboundMessage
from .base import MessageHandler, SourceAdapter

logger = logging.getLogger(__name__)

# subscriptions are "at least once"
SUBSCRIBE_QOS = 1
MAX_KEEPALIVE = 65535


@dataclass(frozen=True)
class MqttConnectionConfig:
    """
    MQTT connection settings for paho-mqtt client

    Example (input YAML, config["mqtt"]):
        host: broker.local
        port: 8883
        clientId: mqtt2db
        auth: {username: u, password: p}     # or {certFile: ..., privateKeyFile: ...}
        caFile: /etc/ssl/certs/ca.pem        # enables TLS
        connectTimeout: 10
        keepAlive: 60
    """

    host: str
    port: int = 1883
    client_id: str = "mqtt2db"
    username: Optional[str] = None
    password: Optional[str] = None
    ca_file: Optional[str] = None
    cert_file: Optional[str] = None
    private_key_file: Optional[str] = None
    connect_timeout: Optional[float] = None
    keepalive: int = 60

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "MqttConnectionConfig":
        if not isinstance(cfg, dict):
            raise ConfigError("'mqtt' must be a mapping")
        host = cfg.get("host")
        if not isinstance(host, str) or not host:
            raise ConfigError("MQTT 'host' must be a non-empty string")
        port = cfg.get("port", 1883)
        if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
            raise ConfigError(f"MQTT 'port' must be between 1 and 65535, got {port!r}")

        keepalive = cfg.get("keepAlive", 60)
        if not isinstance(keepalive, int) or isinstance(keepalive, bool) or not 0 <= keepalive <= MAX_KEEPALIVE:
            raise ConfigError(f"Keep alive time must be between 0 and {MAX_KEEPALIVE}")

        connect_timeout = cfg.get("connectTimeout")
        if connect_timeout is not None and (isinstance(connect_timeout, bool) or not isinstance(connect_timeout, (int, float))):
            raise ConfigError(f"MQTT 'connectTimeout' must be a number of seconds, got {connect_timeout!r}")

        auth = cfg.get("auth") or {}
        if not isinstance(auth, dict):
            raise ConfigError("MQTT 'auth' must be a mapping")
        username = auth.get("username")
        password = auth.get("password")
        cert_file = auth.get("certFile")
        private_key_file = auth.get("privateKeyFile")
        if auth and not ((username and password is not None) or (cert_file and private_key_file)):
            raise ConfigError("MQTT 'auth' needs either username/password or certFile/privateKeyFile")

        ca_file = cfg.get("caFile")
        if cert_file and not ca_file:
            raise ConfigError("MQTT certificate auth requires 'caFile'")

        return cls(
            host=host,
            port=port,
            client_id=str(cfg.get("clientId") or "mqtt2db"),
            username=username,
            password=password,
            ca_file=ca_file,
            cert_file=cert_file,
            private_key_file=private_key_file,
            connect_timeout=connect_timeout,
            keepalive=keepalive,
        )


class MqttSourceAdapter(SourceAdapter):
    """
    MQTT source using paho-mqtt

    Notes:
      - In tests we inject a mocked paho client via `client=...`
      - In production we create the client automatically
      - paho runs its network loop in a background thread, so the handler is
        called from that thread
    """

    def __init__(
        self,
        *,
        cfg: MqttConnectionConfig,
        subscriptions: Iterable[str],
        client: Optional[Any] = None,
    ) -> None:
        self._cfg = cfg
        self._subs = list(subscriptions or [])
        self._handler: Optional[MessageHandler] = None

        if client is None:
            self._client = paho_mqtt.Client(
                paho_mqtt.CallbackAPIVersion.VERSION2,
                client_id=cfg.client_id,
            )
        else:
            self._client = client

        if cfg.username:
            self._client.username_pw_set(cfg.username, cfg.password)
        if cfg.ca_file:
            self._client.tls_set(
                ca_certs=cfg.ca_file,
                certfile=cfg.cert_file,
                keyfile=cfg.private_key_file,
            )
        if cfg.connect_timeout is not None:
            self._client.connect_timeout = float(cfg.connect_timeout)

        # Callbacks
        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message
        self._client.on_disconnect = self._on_disconnect

    def start(self, handler: MessageHandler) -> None:
        self._handler = handler
        logger.info(
            "Starting MQTT source: host=%s port=%s subs=%d",
            self._cfg.host,
            self._cfg.port,
            len(self._subs),
        )
        self._client.connect(self._cfg.host, self._cfg.port, keepalive=self._cfg.keepalive)
        # Start network loop in background thread; subscriptions are sent from
        # on_connect so they are restored after every reconnect
        self._client.loop_start()

    def stop(self) -> None:
        logger.info("Stopping MQTT source")
        try:
            self._client.loop_stop()
        finally:
            try:
                self._client.disconnect()
            except Exception:
                logger.exception("MQTT disconnect failed")

    def _subscribe_all(self, client: Any) -> None:
        for topic in self._subs:
            logger.info("Subscribing to topic %r", topic)
            try:
                client.subscribe(topic, qos=SUBSCRIBE_QOS)
            except Exception:
                logger.exception("MQTT subscribe failed: %s", topic)

    # ---- paho callbacks ----

    def _on_connect(self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        if getattr(reason_code, "is_failure", False):
            logger.error("MQTT connect refused: %s", reason_code)
            return
        logger.info("MQTT connected: %s", reason_code)
        self._subscribe_all(client)

    def _on_disconnect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any = None, properties: Any = None
    ) -> None:
        logger.warning("MQTT disconnected: %s", reason_code)

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        if not self._handler:
            return
        payload = msg.payload
        if payload is None:
            payload = b""
        elif isinstance(payload, str):
            payload = payload.encode("utf-8")
        inbound = InboundMessage(
            topic=str(getattr(msg, "topic", "")),
            payload=bytes(payload),
            meta={"qos": getattr(msg, "qos", None), "retain": getattr(msg, "retain", None)},
        )
        try:
            self._handler(inbound)
        except Exception:
            # never let a handler error kill paho's network thread
            logger.exception("Message handler failed for topic %s", inbound.topic)
