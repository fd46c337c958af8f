#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ....mapping.errors import ConfigError
from ...models import DataPoint
from ..base import Sink, SinkWriteError
from .codec import LineProtocolCodec

logger = logging.getLogger(__name__)

SINK_TYPE = "influxdb"


@dataclass(frozen=True)
class InfluxDbConfig:
    """
    InfluxDB 1.x HTTP API settings

    Example (input YAML, one config["databases"] item):
        type: influxdb
        url: http://localhost:8086
        dbName: sensors
        measurement: mqtt
        auth: {username: writer, password: secret}
        timeout: 10                   # optional, seconds
    """

    url: str
    db_name: str
    measurement: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 10.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "InfluxDbConfig":
        if not isinstance(cfg, dict):
            raise ConfigError(f"Database entry must be a mapping, got {cfg!r}")
        if cfg.get("type") != SINK_TYPE:
            raise ConfigError(f"Unsupported database type {cfg.get('type')!r}")
        for key in ("url", "dbName", "measurement"):
            if not isinstance(cfg.get(key), str) or not cfg[key]:
                raise ConfigError(f"Database {key!r} must be a non-empty string")

        auth = cfg.get("auth") or {}
        if not isinstance(auth, dict):
            raise ConfigError("Database 'auth' must be a mapping")
        if auth and not (isinstance(auth.get("username"), str) and isinstance(auth.get("password"), str)):
            raise ConfigError("Database 'auth' needs 'username' and 'password'")

        timeout = cfg.get("timeout", 10.0)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(f"Database 'timeout' must be a positive number of seconds, got {timeout!r}")

        return cls(
            url=cfg["url"].rstrip("/"),
            db_name=cfg["dbName"],
            measurement=cfg["measurement"],
            username=auth.get("username"),
            password=auth.get("password"),
            timeout=float(timeout),
        )


class InfluxDbSink(Sink):
    """
    Writes each data point with one POST /write (precision=ms)

    Notes:
      - In tests we inject an httpx.Client with a MockTransport via `client=...`
      - httpx.Client is safe to share between dispatch threads
    """

    def __init__(self, *, cfg: InfluxDbConfig, client: Optional[httpx.Client] = None) -> None:
        self._cfg = cfg
        self._codec = LineProtocolCodec(cfg.measurement)
        self._auth = (cfg.username, cfg.password) if cfg.username is not None else None
        self._client = client or httpx.Client(timeout=cfg.timeout)

    @property
    def name(self) -> str:
        return f"influxdb:{self._cfg.db_name}"

    def write(self, point: DataPoint) -> None:
        try:
            line = self._codec.encode(point)
        except ValueError as e:
            raise SinkWriteError(str(e)) from e

        kwargs: Dict[str, Any] = {}
        if self._auth is not None:
            kwargs["auth"] = self._auth
        try:
            r = self._client.post(
                f"{self._cfg.url}/write",
                params={"db": self._cfg.db_name, "precision": "ms"},
                content=line.encode("utf-8"),
                headers={"Content-Type": "text/plain; charset=utf-8"},
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise SinkWriteError(f"Failed to write to DB: {e}") from e

        if r.status_code >= 300:
            raise SinkWriteError(f"Failed to write to DB: HTTP {r.status_code}: {r.text.strip()}")
        logger.debug("Wrote to %s: %s", self.name, line)

    def close(self) -> None:
        try:
            self._client.close()
        except Exception:
            logger.exception("influxdb client close failed")
